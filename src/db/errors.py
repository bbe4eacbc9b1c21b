"""Errors raised by token store implementations."""


class StoreError(Exception):
    """Raised when the token store cannot complete an operation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class DuplicateConstraintError(StoreError):
    """Raised when an insert violates a uniqueness constraint."""

    def __init__(self, constraint: str) -> None:
        self.constraint = constraint
        super().__init__(f"Uniqueness constraint violated: {constraint}")


class MissingReferenceError(StoreError):
    """Raised when an insert references a row that does not exist (e.g. unknown owner)."""

    def __init__(self, message: str = "Referenced owner does not exist") -> None:
        super().__init__(message)
