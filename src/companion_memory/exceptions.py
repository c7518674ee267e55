"""
Companion memory exceptions.

Store failures surface as StorageError, generation failures as GenerationError.
"""


class MemorySystemError(Exception):
    """Base error for the memory engine."""

    pass


class StorageError(MemorySystemError):
    """A document store read or write failed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class GenerationError(MemorySystemError):
    """The generation collaborator failed or returned nothing usable."""

    pass


class GenerationUnavailableError(GenerationError):
    """No generation collaborator is configured (e.g. missing credentials)."""

    pass


class ValidationError(MemorySystemError):
    """Inbound data rejected at the engine boundary."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for '{field}': {message}")
