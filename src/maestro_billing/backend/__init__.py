"""Backend collaborators: REST client, catalog repository and billing service."""

from .client import ApiClientError, BillingApiClient
from .repository import CatalogRepository
from .service import BillingService

__all__ = [
    "ApiClientError",
    "BillingApiClient",
    "BillingService",
    "CatalogRepository",
]
