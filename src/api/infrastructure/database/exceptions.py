"""Database-specific exceptions."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseNotConfiguredError(DatabaseError):
    """Raised when a PostgreSQL-backed component is requested with the memory store."""

    def __init__(self, component: str):
        super().__init__(f"{component} requires event_store='postgres'")
        self.component = component
