class StoreError(RuntimeError):
    """Raised when the record store cannot complete a query or write."""
    pass


class StoreConflictError(StoreError):
    """Raised when a write violates a uniqueness constraint of the store."""
    pass


class BookingNumberOverflowError(RuntimeError):
    """Raised when a day's 2-digit booking sequence is exhausted."""

    def __init__(self, prefix: str) -> None:
        super().__init__(f"Booking sequence for {prefix} exceeded 99")
        self.prefix = prefix
