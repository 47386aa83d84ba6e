"""
Extraction Service — one call, one receipt:

  vision model → parse + merge attachments → verify names → public copy

Nothing is kept between calls, so concurrent extractions need no locking.
"""
import logging
from typing import Optional

from models.schemas import ExtractOptions, ReceiptData, TotalCheck
from services.projection import to_public_items
from services.prompts import EXTRACTION_PROMPT
from services.response_parser import parse_response
from services.total_check import check_total
from services.verify_service import orchestrate
from services.vision_service import ImageInput, call_vision

logger = logging.getLogger("receiptscan.extract")


async def extract_and_check(
    image: ImageInput,
    options: Optional[ExtractOptions] = None,
) -> tuple[ReceiptData, TotalCheck]:
    """
    Extract the purchased items and the total from a receipt image, and
    reconcile the items against the printed total.

    Raises OracleError when the vision call fails and ParseError when its reply
    is unusable.  Verification problems are logged, never raised.  A total
    mismatch is logged and reported; the printed total is never changed.
    """
    options = options or ExtractOptions()

    raw_text = await call_vision(image, EXTRACTION_PROMPT)
    items, total = parse_response(raw_text)
    items = await orchestrate(items, raw_text, options)

    receipt = ReceiptData(items=to_public_items(items), total=total)

    check = check_total(receipt)
    if not check.matches:
        logger.info("Total check: %s", check.message)
    return receipt, check


async def extract_receipt_items(
    image: ImageInput,
    options: Optional[ExtractOptions] = None,
) -> ReceiptData:
    """Extract the purchased items and the total from a receipt image."""
    receipt, _ = await extract_and_check(image, options)
    return receipt
