"""Domain errors raised by services and the edit-history ledger.

Routes translate these into HTTP responses; the CLI prints them. Authorization
is not represented here: decision functions in ``forest.rbac`` return booleans.
"""


class ForestError(RuntimeError):
    """Base error for text, translation and ledger operations."""


class NotFoundError(ForestError):
    """Raised when a referenced entry, history record or glossary item is missing."""


class ValidationError(ForestError):
    """Raised when required fields are missing or a value is outside its vocabulary."""


class ConflictError(ForestError):
    """Raised on duplicate unique keys or a stale ``expected_version``."""
