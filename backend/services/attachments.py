"""
Attachment merging.

Deposit and discount lines have no identity of their own on a receipt; the
model emits them right after the item they belong to, flagged with
``isAttachment``.  They are folded into that item here and never surface as
items themselves.
"""
import logging

from models.schemas import AttachmentRecord, LineItem

logger = logging.getLogger("receiptscan.parser")


def _as_line_item(record: AttachmentRecord) -> LineItem:
    return LineItem(
        name=record.name,
        price=record.price,
        quantity=record.quantity,
        has_tax=record.has_tax,
        tax_amount=record.tax_amount,
        deposit=record.deposit,
        discount=record.discount,
        needs_verification=record.needs_verification,
    )


def _apply(owner: LineItem, attachment: AttachmentRecord) -> None:
    if attachment.attachment_type == "deposit":
        owner.deposit = (owner.deposit or 0) + attachment.price * attachment.quantity
    elif attachment.attachment_type == "discount":
        # The model reports discounts as positive amounts
        owner.discount = (owner.discount or 0) - attachment.price
    else:
        logger.debug("Attachment %r has no known type — ignored", attachment.name)


def merge_attachments(records: list[AttachmentRecord]) -> list[LineItem]:
    """
    Fold attachment records into the substantive item before them.

    An attachment with a valid ``attached_to`` (the raw index of an earlier,
    non-attachment record) goes to that item instead.  Attachments with no
    owner are dropped.
    """
    result: list[LineItem] = []
    owners: dict[int, LineItem] = {}
    current = None

    for record in records:
        if not record.is_attachment:
            current = _as_line_item(record)
            owners[record.position] = current
            result.append(current)
            continue

        owner = owners.get(record.attached_to) if record.attached_to is not None else None
        if owner is None:
            owner = current
        if owner is None:
            logger.debug("Dropping orphaned attachment %r at %d", record.name, record.position)
            continue
        _apply(owner, record)

    return result
