class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ValidationError(BaseServiceError):
    """Raised when request data validation fails."""
    pass

class SessionNotFoundError(BaseServiceError):
    """Raised when no usable offline session exists for a shop."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for platform service errors."""
    pass

class ShopifyServiceError(PlatformServiceError):
    """Base exception for Shopify-specific errors."""
    pass

class ShopifyAPIError(ShopifyServiceError):
    """Raised when Shopify API calls fail."""
    pass

class ShopifyUserError(ShopifyServiceError):
    """Raised when a Shopify mutation returns userErrors."""

    def __init__(self, operation: str, user_errors):
        self.operation = operation
        self.user_errors = user_errors or []
        messages = "; ".join(err.get("message", "Unknown error") for err in self.user_errors)
        super().__init__(f"{operation} failed: {messages}")

class ScrapeError(BaseServiceError):
    """Raised when a scrape target cannot be fetched or parsed."""
    pass

class ImageProcessingError(BaseServiceError):
    """Raised when an image cannot be processed or uploaded."""
    pass

class JobError(BaseServiceError):
    """Raised when a queued job cannot be executed."""
    pass
