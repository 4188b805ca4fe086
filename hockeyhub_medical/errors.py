"""
Exceptions raised by the medical data layer.
"""


class MedicalDataError(Exception):
    """Base class for all medical data layer errors."""
    pass


class DatabaseError(MedicalDataError):
    """Custom exception for database operations."""
    pass


class DatabaseUnavailableError(DatabaseError):
    """Raised by the fallback gateway when no connection pool could be opened."""

    def __init__(self, message: str = 'Database connection unavailable'):
        super().__init__(message)


class InvalidInputError(MedicalDataError, ValueError):
    """Raised before any database call when caller input cannot be turned into a statement."""
    pass
