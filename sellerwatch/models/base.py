"""Column defaults shared by the ORM records."""
import secrets
from datetime import datetime, timezone
from typing import Callable


def generate_id(prefix: str) -> str:
    """Generate a unique ID with a prefix, e.g. ``alert_3f9a0c1b2d4e``."""
    return f"{prefix}_{secrets.token_hex(6)}"


def id_default(prefix: str) -> Callable[[], str]:
    """Column default producing prefixed ids."""
    return lambda: generate_id(prefix)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
