"""Check-in stations for church services and children's ministry."""
