"""
Error types raised by the marketplace services.

Every service operation surfaces failures to its caller; nothing here is
retried or swallowed.
"""


class MarketplaceError(Exception):
    """Base class for all marketplace errors"""
    pass


class NotFoundError(MarketplaceError):
    """Raised when an entity id does not resolve"""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationError(MarketplaceError):
    """Raised on malformed input (bad quantity, missing field, ...)"""
    pass


class InvalidRatingError(ValidationError):
    """Raised when a review rating is outside 1-5"""
    pass


class NotEligibleError(MarketplaceError):
    """Raised when a buyer reviews a product without an approved request"""
    pass


class AlreadyReviewedError(MarketplaceError):
    """Raised when a buyer reviews the same product twice"""
    pass


class InvalidStateTransitionError(MarketplaceError):
    """Raised when a request leaves a terminal status"""

    def __init__(self, request_id: str, current: str, target: str):
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(
            f"Request {request_id} cannot move from '{current}' to '{target}'"
        )


class NotAuthorizedError(MarketplaceError):
    """Raised when the caller does not own the entity or lacks the admin role"""
    pass


class GeocodingError(MarketplaceError):
    """Raised when an address cannot be resolved to coordinates"""
    pass
