"""The churchcheckin.features namespace."""
