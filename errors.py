"""
Exceptions that abort an import run.

Problems with a single task (bad path, write error) are reported and
skipped instead; only failures that make the whole run pointless are raised.
"""


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ImportAbortedError(Exception):
    """Raised when an import or rebuild cannot start."""
    pass


class DatabaseNotFoundError(ImportAbortedError):
    """Raised when no valid Things database path can be resolved."""
    pass


class DatabaseOpenError(ImportAbortedError):
    """Raised when the resolved file cannot be opened as a database."""
    pass
