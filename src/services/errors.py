class FitLensError(Exception):
    """Base class for errors raised by the review cache and dedup services."""


class SearchProviderError(FitLensError):
    """The external search provider timed out or answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProductNotFoundError(FitLensError, ValueError):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class InvalidMergeError(FitLensError, ValueError):
    pass


class MergeFailedError(FitLensError):
    """A persistence failure aborted a merge; nothing was changed."""
