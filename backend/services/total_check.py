from models.schemas import ReceiptData, ReceiptItem, TotalCheck


def line_total(item: ReceiptItem) -> float:
    """Amount an item contributes: units, tax, deposit and (negative) discount."""
    return (
        item.price * item.quantity
        + (item.tax_amount or 0.0)
        + (item.deposit or 0.0)
        + (item.discount or 0.0)
    )


def check_total(receipt: ReceiptData, tolerance: float = 0.02) -> TotalCheck:
    """
    Compare the sum of the extracted items against the printed total.
    Diagnostic only — the printed total stays authoritative.
    """
    items_total = round(sum(line_total(item) for item in receipt.items), 2)
    expected = round(receipt.total, 2)
    diff = round(abs(items_total - expected), 2)

    if diff <= tolerance:
        message = f"Items ${items_total:.2f} = total ${expected:.2f} ✓"
    else:
        message = (
            f"Mismatch: items ${items_total:.2f} ≠ receipt total ${expected:.2f}"
            f" (diff ${diff:.2f})."
        )
    return TotalCheck(
        items_total=items_total,
        total=receipt.total,
        difference=diff,
        matches=diff <= tolerance,
        message=message,
    )
