"""
Email Templates

Summary email for one alerts run: a sentence listing the non-zero counts and
one labeled row per alert kind.

The HTML layout lives in ``layouts/alerts_email.html`` and is read once by
``AlertsEmailTemplate.load()`` at process start; the handle is then passed to
the notifier.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from sellerwatch.alerts.models import AlertKind

TEMPLATE_PATH = Path(__file__).parent / "layouts" / "alerts_email.html"
SUBJECT_PREFIX = "SellerWatch Alerts"

# Row order in the email, with label and count suffix
KIND_LABELS = {
    AlertKind.PRODUCT_CONTENT_CHANGE: "Product content change",
    AlertKind.NEGATIVE_REVIEWS: "Negative reviews (rating < 4)",
    AlertKind.BUY_BOX_MISSING: "Buy box missing",
    AlertKind.APLUS_MISSING: "A+ content not present",
    AlertKind.SALES_DROP: "Sales drop",
    AlertKind.CONVERSION_RATES: "Conversion rates",
    AlertKind.LOW_INVENTORY: "Low inventory / out of stock",
    AlertKind.STRANDED_INVENTORY: "Stranded inventory",
    AlertKind.INBOUND_SHIPMENT: "Inbound shipment issues",
}

# Phrases for the summary sentence, singular form
KIND_PHRASES = {
    AlertKind.PRODUCT_CONTENT_CHANGE: "product content change",
    AlertKind.NEGATIVE_REVIEWS: "negative review alert",
    AlertKind.BUY_BOX_MISSING: "buybox missing alert",
    AlertKind.APLUS_MISSING: "A+ missing alert",
    AlertKind.SALES_DROP: "sales drop alert",
    AlertKind.CONVERSION_RATES: "conversion rate alert",
    AlertKind.LOW_INVENTORY: "low inventory alert",
    AlertKind.STRANDED_INVENTORY: "stranded inventory alert",
    AlertKind.INBOUND_SHIPMENT: "inbound shipment alert",
}

_DAY_KINDS = (AlertKind.SALES_DROP, AlertKind.CONVERSION_RATES)


@dataclass(frozen=True)
class SummaryRow:
    kind: AlertKind
    label: str
    count: int

    @property
    def suffix(self) -> str:
        if self.kind in _DAY_KINDS:
            return "day" if self.count == 1 else "days"
        return "Products"

    @property
    def text(self) -> str:
        return f"{self.label} - {self.count} {self.suffix}"


@dataclass(frozen=True)
class AlertsEmailTemplate:
    """Loaded HTML layout for the alerts summary email."""
    html: str
    source: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AlertsEmailTemplate":
        path = Path(path) if path else TEMPLATE_PATH
        return cls(html=path.read_text(encoding="utf-8"), source=str(path))

    def render(
        self,
        subject: str,
        user_name: str,
        date: str,
        summary_text: str,
        summary_rows: str,
        dashboard_url: str,
    ) -> str:
        return self.html.format(
            subject=escape(subject),
            user_name=escape(user_name),
            date=escape(date),
            summary_text=escape(summary_text),
            summary_rows=summary_rows,
            dashboard_url=escape(dashboard_url, quote=True),
        )


def build_summary_rows(counts: Mapping[AlertKind, int]) -> List[SummaryRow]:
    """One row per kind with a non-zero count, in fixed email order."""
    rows = []
    for kind, label in KIND_LABELS.items():
        count = counts.get(kind, 0) or 0
        if count > 0:
            rows.append(SummaryRow(kind=kind, label=label, count=count))
    return rows


def build_summary_text(counts: Mapping[AlertKind, int]) -> str:
    """
    Sentence listing the non-zero counts.

    e.g. "you have 2 product content changes, 1 buybox missing alert."
    """
    parts = []
    for kind, phrase in KIND_PHRASES.items():
        count = counts.get(kind, 0) or 0
        if count > 0:
            parts.append(f"{count} {phrase}{'' if count == 1 else 's'}")
    if not parts:
        return "you have no new alerts."
    return f"you have {', '.join(parts)}."


def render_summary_rows_html(rows: List[SummaryRow]) -> str:
    return "".join(
        f'<tr><td>{escape(row.label)}</td>'
        f'<td style="text-align: right;"><span class="count">{row.count}</span> '
        f'{escape(row.suffix)}</td></tr>'
        for row in rows
    )


def build_alerts_email(
    template: AlertsEmailTemplate,
    first_name: Optional[str],
    counts: Mapping[AlertKind, int],
    dashboard_url: str,
    sent_at: Optional[datetime] = None,
) -> Tuple[str, str, str]:
    """
    Build the alerts summary email.

    Returns: (subject, html_body, plain_text_body)
    """
    summary_text = build_summary_text(counts)
    rows = build_summary_rows(counts)
    subject = f"{SUBJECT_PREFIX} - {summary_text}"
    user_name = first_name or "there"
    date_str = (sent_at or datetime.now(timezone.utc)).strftime("%B %d, %Y").replace(" 0", " ")

    html_body = template.render(
        subject=subject,
        user_name=user_name,
        date=date_str,
        summary_text=summary_text,
        summary_rows=render_summary_rows_html(rows),
        dashboard_url=dashboard_url,
    )

    row_lines = "\n".join(f"- {row.text}" for row in rows)
    plain_text = f"""
Hi {user_name},

Since our last check, {summary_text}

{row_lines}

View alerts: {dashboard_url}

---
SellerWatch - Amazon account monitoring
"""

    return subject, html_body, plain_text.strip()
