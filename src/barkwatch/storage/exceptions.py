"""Custom exceptions for durable storage."""

from barkwatch.monitoring.exceptions import StorageFailure


class DatabaseError(StorageFailure):
    """Exception raised for database related errors."""

    pass


class SchemaError(DatabaseError):
    """Exception raised for database schema errors."""

    pass
