"""
Tests for public projection and the diagnostic total check.
"""
import pytest
from pydantic import ValidationError

from models.schemas import LineItem, ReceiptData, ReceiptItem
from services.projection import to_public, to_public_items
from services.total_check import check_total, line_total


# ── to_public ─────────────────────────────────────────────────────────────────

class TestToPublic:

    def test_strips_internal_flag(self):
        public = to_public(LineItem(name="ORG MLK", price=12.5, needs_verification=True))
        assert "needs_verification" not in public.model_dump()

    def test_public_fields_are_strict_subset(self):
        internal = set(LineItem.model_fields)
        public = set(ReceiptItem.model_fields)
        assert public < internal
        assert internal - public == {"needs_verification"}

    def test_values_copied(self):
        item = LineItem(name="WATER", price=3.99, quantity=2, has_tax=True,
                        tax_amount=0.52, deposit=1.0, discount=-0.5)
        public = to_public(item)
        assert public.model_dump() == {
            "name": "WATER", "price": 3.99, "quantity": 2, "has_tax": True,
            "tax_amount": 0.52, "deposit": 1.0, "discount": -0.5,
        }

    def test_absent_amounts_stay_absent(self):
        public = to_public(LineItem(name="A", price=1.0))
        assert public.tax_amount is None
        assert public.deposit is None
        assert public.discount is None

    def test_public_item_is_frozen(self):
        public = to_public(LineItem(name="A", price=1.0))
        with pytest.raises(ValidationError):
            public.name = "B"

    def test_no_aliasing(self):
        items = [LineItem(name="A", price=1.0), LineItem(name="B", price=2.0)]
        public = to_public_items(items)
        public.pop()
        items[0].name = "CHANGED"
        assert len(items) == 2
        assert public[0].name == "A"

    def test_round_trip_needs_no_internal_field(self):
        public = to_public(LineItem(name="A", price=1.0, needs_verification=True))
        back = LineItem(**public.model_dump())
        assert back.needs_verification is False
        assert to_public(back) == public


# ── check_total ───────────────────────────────────────────────────────────────

class TestCheckTotal:

    def test_line_total_includes_everything(self):
        item = ReceiptItem(name="A", price=2.0, quantity=3, tax_amount=0.4,
                           deposit=1.0, discount=-0.5)
        assert line_total(item) == pytest.approx(6.9)

    def test_matching_total(self):
        receipt = ReceiptData(items=[
            ReceiptItem(name="A", price=12.5, deposit=1.0),
        ], total=13.5)
        check = check_total(receipt)
        assert check.matches is True
        assert check.items_total == 13.5
        assert check.difference == 0

    def test_within_tolerance(self):
        receipt = ReceiptData(items=[ReceiptItem(name="A", price=9.99)], total=10.0)
        assert check_total(receipt).matches is True

    def test_mismatch_reported_not_corrected(self):
        receipt = ReceiptData(items=[ReceiptItem(name="A", price=5.0)], total=7.0)
        check = check_total(receipt)
        assert check.matches is False
        assert check.difference == 2.0
        assert "Mismatch" in check.message
        assert receipt.total == 7.0

    def test_empty_receipt(self):
        check = check_total(ReceiptData(items=[], total=0))
        assert check.matches is True
