"""Conversion from internal line items to the public, immutable shape."""
from models.schemas import LineItem, ReceiptItem


def to_public(item: LineItem) -> ReceiptItem:
    """Rebuild ``item`` field by field, leaving ``needs_verification`` behind."""
    return ReceiptItem(
        name=item.name,
        price=item.price,
        quantity=item.quantity,
        has_tax=item.has_tax,
        tax_amount=item.tax_amount,
        deposit=item.deposit,
        discount=item.discount,
    )


def to_public_items(items: list[LineItem]) -> list[ReceiptItem]:
    return [to_public(item) for item in items]
