"""MongoDB repository for menu, extras, discount and service-fee catalogs."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pymongo import MongoClient

from ..pricing.models import Discount, Extra, MenuItem, ServiceFeeConfig
from ..utils.config import Config
from ..utils.logging import get_logger

logger = get_logger(__name__)

MENU_ITEM_COLLECTION = "MENU_ITEM"
EXTRA_COLLECTION = "EXTRA"
DISCOUNT_COLLECTION = "DISCOUNT"
SERVICE_FEE_COLLECTION = "SERVICE_FEE"


class CatalogRepository:
    """Read-only catalog snapshots for pricing.

    Prices are whatever the database holds at read time; nothing here
    reconciles a cached catalog against later server-side changes.
    """

    def __init__(self, url: Optional[str] = None, db_name: Optional[str] = None,
                 config: Optional[Config] = None) -> None:
        config = config or Config(".env")
        self._url = url or config.get("mongo_url")
        self._db = db_name or config.get("mongo_db")
        if not self._url:
            raise ValueError("DB_CONNECTION_URL is required")
        self._client: Optional[MongoClient] = None

    def __enter__(self) -> "CatalogRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self._url, serverSelectionTimeoutMS=5000)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _collection(self, name: str):
        if self._client is None:
            self.connect()
        return self._client[self._db][name]

    @staticmethod
    def _id_filter(ids: Optional[Iterable[str]]) -> Dict[str, Any]:
        if ids is None:
            return {}
        return {"_id": {"$in": list(ids)}}

    def get_menu_item(self, menu_item_id: str) -> Optional[MenuItem]:
        doc = self._collection(MENU_ITEM_COLLECTION).find_one({"_id": menu_item_id})
        if not doc:
            logger.warning("Menu item %s not found", menu_item_id)
            return None
        return MenuItem.from_api(doc)

    def get_extras(self, ids: Optional[Iterable[str]] = None, active_only: bool = True) -> List[Extra]:
        query = self._id_filter(ids)
        if active_only:
            query["isActive"] = True
        return [Extra.from_api(doc) for doc in self._collection(EXTRA_COLLECTION).find(query)]

    def get_discounts(self, ids: Optional[Iterable[str]] = None, active_only: bool = True) -> List[Discount]:
        query = self._id_filter(ids)
        if active_only:
            query["isActive"] = True
        return [Discount.from_api(doc) for doc in self._collection(DISCOUNT_COLLECTION).find(query)]

    def get_service_fee(self, service_fee_id: str) -> Optional[ServiceFeeConfig]:
        doc = self._collection(SERVICE_FEE_COLLECTION).find_one({"_id": service_fee_id})
        if not doc:
            return None
        return ServiceFeeConfig.from_api(doc)
