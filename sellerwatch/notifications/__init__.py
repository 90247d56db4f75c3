# Notifications Module
# Summary email after an alerts run
#
# Components:
# - email_provider.py: Resend / SMTP / console transports
# - templates.py: Summary rows, summary sentence and the HTML layout handle
# - service.py: AlertNotifier

from .email_provider import (
    EmailMessage,
    DeliveryError,
    SendResult,
    EmailProvider,
    ResendProvider,
    SMTPProvider,
    ConsoleProvider,
    get_email_provider,
)
from .templates import (
    AlertsEmailTemplate,
    SummaryRow,
    build_summary_rows,
    build_summary_text,
    build_alerts_email,
)
from .service import AlertNotifier, get_alert_notifier

__all__ = [
    # Providers
    "EmailMessage",
    "DeliveryError",
    "SendResult",
    "EmailProvider",
    "ResendProvider",
    "SMTPProvider",
    "ConsoleProvider",
    "get_email_provider",
    # Templates
    "AlertsEmailTemplate",
    "SummaryRow",
    "build_summary_rows",
    "build_summary_text",
    "build_alerts_email",
    # Service
    "AlertNotifier",
    "get_alert_notifier",
]
