"""Application services shared by the booking use cases."""

from app.application.services.notification_dispatcher import NotificationDispatcher
from app.application.services.pricing_aggregator import PricingAggregator
from app.application.services.rate_limiter import RateLimiter

__all__ = [
    "NotificationDispatcher",
    "PricingAggregator",
    "RateLimiter",
]
