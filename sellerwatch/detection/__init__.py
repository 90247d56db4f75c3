# Detection Module
# Turns stored marketplace snapshots into alerts
#
# Components:
# - snapshots.py: Snapshot store adapter (read-only)
# - accounts.py: Account enumeration source
# - base.py: DetectionContext and the Detector contract
# - detectors/: The fixed detector set, one per alert kind
# - aggregator.py: Runs all detectors for one account marketplace
# - scheduler.py: Batch orchestrator and APScheduler integration
# - models.py: Outcomes, run summaries and run statistics

from .models import (
    SkipReason,
    DetectorOutcome,
    Marketplace,
    MonitoredAccount,
    AccountRunSummary,
    RunState,
    BatchRunStatistics,
)
from .snapshots import Snapshot, SnapshotKind, SnapshotStore, get_snapshot_store
from .accounts import AccountSource, get_account_source
from .base import DetectionContext, Detector
from .detectors import default_detectors
from .aggregator import run_account_alerts
from .scheduler import (
    AlertsRunInProgress,
    AlertsRunScheduler,
    alerts_scheduler,
    setup_apscheduler,
    manual_run,
    run_alerts_for_account,
)

__all__ = [
    # Models
    "SkipReason",
    "DetectorOutcome",
    "Marketplace",
    "MonitoredAccount",
    "AccountRunSummary",
    "RunState",
    "BatchRunStatistics",
    # Adapters
    "Snapshot",
    "SnapshotKind",
    "SnapshotStore",
    "get_snapshot_store",
    "AccountSource",
    "get_account_source",
    # Detectors
    "DetectionContext",
    "Detector",
    "default_detectors",
    "run_account_alerts",
    # Scheduler
    "AlertsRunInProgress",
    "AlertsRunScheduler",
    "alerts_scheduler",
    "setup_apscheduler",
    "manual_run",
    "run_alerts_for_account",
]
