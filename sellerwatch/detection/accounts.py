"""
Account Source

Enumerates the seller accounts the alerts run covers. Only verified accounts
are returned; opt-out and missing marketplaces are filtered by the caller.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from sellerwatch.models import Account
from .models import Marketplace, MonitoredAccount


def to_monitored_account(account: Account) -> MonitoredAccount:
    return MonitoredAccount(
        account_id=account.id,
        email=account.email,
        first_name=account.first_name,
        subscribed=account.subscribed_to_alerts,
        regions=[
            Marketplace(region=m.region, country=m.country)
            for m in account.marketplaces or []
        ],
    )


class AccountSource(ABC):
    """Read interface over seller accounts."""

    @abstractmethod
    async def list_monitored_accounts(self) -> List[MonitoredAccount]:
        """All verified accounts with their marketplaces."""

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[MonitoredAccount]:
        """One account by id, verified or not."""


class SQLAlchemyAccountSource(AccountSource):
    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def list_monitored_accounts(self) -> List[MonitoredAccount]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(Account)
                .where(Account.is_verified == True)  # noqa: E712
                .options(selectinload(Account.marketplaces))
                .order_by(Account.created_at)
            )
            return [to_monitored_account(a) for a in result.scalars().all()]

    async def get_account(self, account_id: str) -> Optional[MonitoredAccount]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(Account)
                .where(Account.id == account_id)
                .options(selectinload(Account.marketplaces))
            )
            account = result.scalar_one_or_none()
            return to_monitored_account(account) if account else None


def get_account_source(session_maker: Optional[async_sessionmaker] = None) -> AccountSource:
    """Get an account source bound to the application database."""
    if session_maker is None:
        from sellerwatch.database import async_session_maker
        session_maker = async_session_maker
    return SQLAlchemyAccountSource(session_maker)
