"""
Tests for the alert data model.

Covers the non-empty findings rule, the kind-tagged payload union and the
conversion to and from stored rows.
"""

import pytest
from types import SimpleNamespace
from pydantic import ValidationError

from sellerwatch.alerts.models import (
    Alert,
    AlertKind,
    AlertStatus,
    BuyBoxMissingPayload,
    ChangeType,
    ProductContentChangePayload,
    SalesDropPayload,
)
from sellerwatch.alerts.repository import clamp_limit, DEFAULT_LIMIT, MAX_LIMIT

from conftest import NOW


def _buy_box_alert(**overrides):
    fields = dict(
        account_id="acct_a",
        region="NA",
        country="US",
        message="1 product(s) without buy box",
        payload={"kind": "BuyBoxMissing", "products": [{"asin": "B000Y"}]},
    )
    fields.update(overrides)
    return Alert(**fields)


# =============================================================================
# Payload invariants
# =============================================================================

class TestAlertPayload:
    """Tests for the kind-tagged payload union."""

    def test_payload_variant_selected_by_kind(self):
        """The kind tag picks the payload class."""
        alert = _buy_box_alert()

        assert isinstance(alert.payload, BuyBoxMissingPayload)
        assert alert.kind == AlertKind.BUY_BOX_MISSING
        assert alert.finding_count == 1

    def test_empty_product_list_rejected(self):
        """An alert can never be built without findings."""
        with pytest.raises(ValidationError):
            _buy_box_alert(payload={"kind": "BuyBoxMissing", "products": []})

    def test_empty_sales_drops_rejected(self):
        with pytest.raises(ValidationError):
            _buy_box_alert(payload={
                "kind": "SalesDrop",
                "date_range": {"start_date": "2026-10-06", "end_date": "2026-10-13"},
                "marketplace": "US",
                "drops": [],
            })

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            _buy_box_alert(payload={"kind": "PriceWar", "products": [{"asin": "B000Y"}]})

    def test_blank_asin_rejected(self):
        with pytest.raises(ValidationError):
            _buy_box_alert(payload={"kind": "BuyBoxMissing", "products": [{"asin": ""}]})

    def test_content_change_types_parsed(self):
        alert = _buy_box_alert(payload={
            "kind": "ProductContentChange",
            "products": [{"asin": "B000X", "change_types": ["title", "images"]}],
        })

        assert isinstance(alert.payload, ProductContentChangePayload)
        assert alert.payload.products[0].change_types == [ChangeType.TITLE, ChangeType.IMAGES]

    def test_sales_drop_counts_days(self):
        day = {
            "date": "2026-10-13",
            "previous_date": "2026-10-12",
            "previous_units": 10,
            "current_units": 4,
            "previous_revenue": 100,
            "current_revenue": 40,
        }
        alert = _buy_box_alert(payload={
            "kind": "SalesDrop",
            "date_range": {"start_date": "2026-10-06", "end_date": "2026-10-13"},
            "marketplace": "US",
            "drops": [day, dict(day, date="2026-10-12", previous_date="2026-10-11")],
        })

        assert isinstance(alert.payload, SalesDropPayload)
        assert alert.finding_count == 2


# =============================================================================
# Record conversion
# =============================================================================

class TestAlertRecordConversion:
    """Tests for the mapping between Alert and stored rows."""

    def test_record_fields_split_kind_from_payload(self):
        alert = _buy_box_alert(metadata={"snapshot_id": "snap_1"})

        fields = alert.to_record_fields()

        assert fields["kind"] == "BuyBoxMissing"
        assert "kind" not in fields["payload"]
        assert fields["payload"]["products"][0]["asin"] == "B000Y"
        assert fields["status"] == "active"
        assert fields["extra_data"] == {"snapshot_id": "snap_1"}

    def test_from_record_restores_payload_variant(self):
        record = SimpleNamespace(
            id="alert_1",
            account_id="acct_a",
            region="NA",
            country="US",
            kind="BuyBoxMissing",
            status="acknowledged",
            viewed=True,
            message="1 product(s) without buy box",
            payload={"products": [{"asin": "B000Y", "sku": "SKU-1"}]},
            extra_data=None,
            created_at=NOW,
            updated_at=NOW,
        )

        alert = Alert.from_record(record)

        assert alert.id == "alert_1"
        assert alert.kind == AlertKind.BUY_BOX_MISSING
        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.payload.products[0].sku == "SKU-1"
        assert alert.metadata == {}


class TestClampLimit:
    def test_defaults_and_bounds(self):
        assert clamp_limit(None) == DEFAULT_LIMIT
        assert clamp_limit(0) == DEFAULT_LIMIT
        assert clamp_limit(-5) == DEFAULT_LIMIT
        assert clamp_limit(1) == 1
        assert clamp_limit(500) == MAX_LIMIT
        assert clamp_limit(None, 10) == 10
