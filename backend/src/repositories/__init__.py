"""Repository layer with tenant isolation enforcement."""

from src.repositories.subscription_repository import SubscriptionRepository

__all__ = [
    "SubscriptionRepository",
]
