"""Sequence counter exceptions."""

from permit_trust.services.exceptions import ContentionError, ValidationError


class CounterContentionError(ContentionError):
    """Counter row lock or transaction timeout exceeded. Retry the issuance."""

    def __init__(self, period: int, reason: str):
        self.period = period
        self.reason = reason
        super().__init__(f"Could not issue a number for period {period}: {reason}")


class InvalidCounterReset(ValidationError):
    """Reset request is missing its audit fields or targets a negative value."""

    pass
