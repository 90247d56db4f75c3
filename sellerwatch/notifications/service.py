"""
Alert Notifier

Sends one summary email per account marketplace run that stored findings.
Delivery problems are logged and reported as ``False``; they never fail the run
and are not retried.
"""

import logging
from typing import List, Optional

from sellerwatch.config import settings
from sellerwatch.detection.models import AccountRunSummary, MonitoredAccount
from .email_provider import EmailMessage, EmailProvider, get_email_provider
from .templates import AlertsEmailTemplate, build_alerts_email

logger = logging.getLogger(__name__)


class AlertNotifier:
    """Composes and sends the alerts summary email."""

    def __init__(
        self,
        template: AlertsEmailTemplate,
        email_provider: EmailProvider,
        dashboard_url: str,
        from_email: Optional[str] = None,
        bcc: Optional[List[str]] = None,
    ):
        self.template = template
        self.email_provider = email_provider
        self.dashboard_url = dashboard_url
        self.from_email = from_email
        self.bcc = list(bcc or [])

    async def notify(self, account: MonitoredAccount, summary: AccountRunSummary) -> bool:
        """
        Send the summary for ``summary`` to ``account``.

        Returns True only if the provider accepted the message.
        """
        if summary.total_findings <= 0:
            return False
        if account.opted_out:
            logger.info(f"Skipping alerts email for account {account.account_id}: unsubscribed")
            return False
        if not account.email:
            logger.warning(f"Skipping alerts email for account {account.account_id}: no email address")
            return False

        subject, html_body, plain_text = build_alerts_email(
            self.template,
            first_name=account.first_name,
            counts=summary.counts,
            dashboard_url=self.dashboard_url,
        )
        message = EmailMessage(
            to=account.email,
            subject=subject,
            html_body=html_body,
            plain_text_body=plain_text,
            from_email=self.from_email,
            bcc=[b for b in self.bcc if b and b != account.email],
        )

        try:
            result = await self.email_provider.send(message)
        except Exception as e:
            logger.error(f"Alerts email to account {account.account_id} failed: {e}")
            return False

        if not result.success:
            logger.error(f"Alerts email to account {account.account_id} failed: {result.error}")
            return False

        logger.info(
            f"Alerts email sent to account {account.account_id} "
            f"({summary.region}/{summary.country}): {summary.total_findings} finding(s)"
        )
        return True


def get_alert_notifier(
    template: Optional[AlertsEmailTemplate] = None,
    email_provider: Optional[EmailProvider] = None,
) -> AlertNotifier:
    """Build a notifier from application settings."""
    return AlertNotifier(
        template=template or AlertsEmailTemplate.load(),
        email_provider=email_provider or get_email_provider(
            resend_api_key=settings.RESEND_API_KEY or None,
            smtp_config=settings.SMTP_CONFIG,
            from_email=settings.ALERTS_FROM_EMAIL,
            console_mode=settings.APP_ENV == "development",
        ),
        dashboard_url=settings.ALERTS_DASHBOARD_URL,
        from_email=settings.ALERTS_FROM_EMAIL,
        bcc=[settings.ALERTS_BCC_EMAIL] if settings.ALERTS_BCC_EMAIL else [],
    )
