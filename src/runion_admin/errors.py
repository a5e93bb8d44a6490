"""Exception hierarchy for admin operations.

Library functions raise these; ``runion_admin.results.run_action`` turns
them into structured ``ActionResult`` values at the user-facing boundary.
"""


class RunionAdminError(Exception):
    """Base class for all admin operation errors."""


class NotFoundError(RunionAdminError):
    """Referenced entity does not exist."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id {entity_id} not found")


class UnauthorizedError(RunionAdminError):
    """Caller lacks the role required for the operation."""


class CsvValidationError(RunionAdminError):
    """Uploaded CSV is malformed (empty, or required columns missing)."""


class BackupFormatError(RunionAdminError):
    """Backup document cannot be parsed or lacks ``metadata`` / ``data``."""


class TransactionFailure(RunionAdminError):
    """A multi-step database transaction failed or timed out.

    The underlying exception is chained as ``__cause__``.
    """
