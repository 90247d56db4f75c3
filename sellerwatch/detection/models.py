"""
Detection Models

Ephemeral results of one alerts run. Nothing here is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sellerwatch.alerts.models import Alert, AlertKind


class SkipReason(str, Enum):
    """Why a detector did not evaluate. A skip is not a failure."""
    NO_DATA = "no data"
    INSUFFICIENT_HISTORY = "insufficient snapshot history"
    STALE_DATA = "stale data"
    NO_ACCOUNT_DATA = "no monitored account data"
    ALREADY_REPORTED = "already reported"


@dataclass
class DetectorOutcome:
    """Result of one detector for one account marketplace."""
    created: bool = False
    count: int = 0
    alert: Optional[Alert] = None
    skipped_reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def skip(cls, reason: SkipReason) -> "DetectorOutcome":
        return cls(skipped_reason=reason.value)

    @classmethod
    def failed(cls, error: str) -> "DetectorOutcome":
        return cls(error=error or "unknown error")

    @classmethod
    def stored(cls, alert: Alert) -> "DetectorOutcome":
        return cls(created=True, count=alert.finding_count, alert=alert)

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "count": self.count,
            "alert_id": self.alert.id if self.alert else None,
            "skipped_reason": self.skipped_reason,
            "error": self.error,
        }


@dataclass
class Marketplace:
    """A region/country pair for an account."""
    region: Optional[str]
    country: Optional[str]

    @property
    def is_configured(self) -> bool:
        return bool(self.region and self.country)


@dataclass
class MonitoredAccount:
    """A verified seller account as seen by the alerts run."""
    account_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    subscribed: Optional[bool] = True
    regions: List[Marketplace] = field(default_factory=list)

    @property
    def opted_out(self) -> bool:
        # Only an explicit False opts out
        return self.subscribed is False

    @property
    def configured_regions(self) -> List[Marketplace]:
        return [m for m in self.regions if m.is_configured]


@dataclass
class AccountRunSummary:
    """All detector outcomes for one account marketplace."""
    account_id: str
    region: Optional[str]
    country: Optional[str]
    outcomes: Dict[AlertKind, DetectorOutcome] = field(default_factory=dict)
    notified: bool = False
    skipped_reason: Optional[str] = None

    @property
    def counts(self) -> Dict[AlertKind, int]:
        return {kind: outcome.count for kind, outcome in self.outcomes.items()}

    @property
    def total_findings(self) -> int:
        return sum(outcome.count for outcome in self.outcomes.values())

    @property
    def errors(self) -> Dict[AlertKind, str]:
        return {kind: o.error for kind, o in self.outcomes.items() if o.error}

    @property
    def success(self) -> bool:
        # Isolated detector faults do not fail the account; every detector failing does
        if not self.outcomes:
            return True
        return not all(o.has_error for o in self.outcomes.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "region": self.region,
            "country": self.country,
            "total_findings": self.total_findings,
            "notified": self.notified,
            "skipped_reason": self.skipped_reason,
            "outcomes": {kind.value: o.to_dict() for kind, o in self.outcomes.items()},
        }


class RunState(str, Enum):
    """Orchestrator states for a single run."""
    IDLE = "idle"
    ENUMERATING = "enumerating"
    BATCHING = "batching"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchRunStatistics:
    """Totals for one orchestrator invocation."""
    started_at: datetime
    accounts_enumerated: int = 0
    processed_accounts: int = 0
    failed_accounts: int = 0
    total_batches: int = 0
    duration_seconds: int = 0
    summaries: List[AccountRunSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed_accounts": self.processed_accounts,
            "failed_accounts": self.failed_accounts,
            "duration_seconds": self.duration_seconds,
            "accounts_enumerated": self.accounts_enumerated,
            "total_batches": self.total_batches,
            "started_at": self.started_at.isoformat(),
        }
