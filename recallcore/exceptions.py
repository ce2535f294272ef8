from typing import Optional


class InvalidRatingError(ValueError):
    """Raised when a review rating is not an integer between 1 and 10."""

    def __init__(self, rating: object):
        super().__init__(f"Invalid rating: {rating!r}. Must be 1-10.")
        self.rating = rating


class ParameterValidationError(Exception):
    """Raised when a parameter set is malformed. Treated as a fatal
    configuration error, never as a per-review error."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class CardOperationError(DatabaseError):
    """Raised for errors during card operations, including applying a review."""

    pass


class StaleCardError(CardOperationError):
    """Raised when a review was computed from a card that has since been
    reviewed again. Re-read the card and resubmit."""

    pass


class ParameterOperationError(DatabaseError):
    """Indicates an error reading or writing the stored parameter set."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass
