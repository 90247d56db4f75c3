"""ORM records."""
from .account import Account, SellerMarketplace
from .alert import AlertRecord
from .snapshot import SnapshotRecord

__all__ = [
    "Account",
    "SellerMarketplace",
    "AlertRecord",
    "SnapshotRecord",
]
