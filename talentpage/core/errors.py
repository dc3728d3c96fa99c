"""Exception types raised by the orchestrator and mapped by the API layer."""


class TalentPageError(Exception):
    """Base error for talent page operations."""


class RecordNotFoundError(TalentPageError):
    """Raised when no record exists for the requested id."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class ValidationError(TalentPageError):
    """Raised when a direct call is missing a required field."""
