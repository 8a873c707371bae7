"""Classes for verifying user enters valid input into Textual widgets."""

from textual import validation

from churchcheckin.features import orchestrator, security


class SearchQuery(validation.Validator):
    """Searches need enough characters to narrow down the member list."""

    def validate(self, value: str) -> validation.ValidationResult:
        if len(value.strip()) < orchestrator.MIN_QUERY_LENGTH:
            return self.failure(
                f"Type at least {orchestrator.MIN_QUERY_LENGTH} characters."
            )
        return self.success()


class SecurityCode(validation.Validator):
    """Pickup codes are letters and digits."""

    def validate(self, value: str) -> validation.ValidationResult:
        code = security.format_code(value)
        if not code:
            return self.failure("Enter the code from the pickup slip.")
        if not code.isalnum():
            return self.failure("Codes contain only letters and numbers.")
        return self.success()


class MaxLength(validation.Validator):
    """Free text notes are printed on labels, so they must be short."""

    def __init__(self, max_length: int) -> None:
        super().__init__()
        self.max_length = max_length

    def validate(self, value: str) -> validation.ValidationResult:
        if len(value) > self.max_length:
            return self.failure(f"Must be {self.max_length} characters or fewer.")
        return self.success()
