"""Database module."""

from ecom_grade.db.base import Base, build_engine, build_session_maker, get_db
from ecom_grade.db.models import Market, MarketOverride, Product, ProductKeyword, ProductOverride
from ecom_grade.db.store import RecordStore

__all__ = [
    "Base",
    "build_engine",
    "build_session_maker",
    "get_db",
    "Market",
    "MarketOverride",
    "Product",
    "ProductKeyword",
    "ProductOverride",
    "RecordStore",
]
