# Alerts Module
# Stored alerts: one envelope plus a kind-tagged payload
#
# Components:
# - models.py: Alert envelope, payload variants, enums
# - repository.py: AlertRepository and its SQLAlchemy implementation
# - schemas.py: API response schemas
# - routes.py: Read / mark-viewed endpoints

from .models import (
    Alert,
    AlertKind,
    AlertStatus,
    AlertPayload,
    ChangeType,
    ProductFinding,
    DateRange,
    SalesDropDay,
)
from .repository import (
    AlertRepository,
    SQLAlchemyAlertRepository,
    get_alert_repository,
    clamp_limit,
    DEFAULT_LIMIT,
    MAX_LIMIT,
)

__all__ = [
    # Models
    "Alert",
    "AlertKind",
    "AlertStatus",
    "AlertPayload",
    "ChangeType",
    "ProductFinding",
    "DateRange",
    "SalesDropDay",
    # Repository
    "AlertRepository",
    "SQLAlchemyAlertRepository",
    "get_alert_repository",
    "clamp_limit",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
]
