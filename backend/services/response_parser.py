"""
Response Parser — turns the raw text returned by the vision model into
validated line items plus the printed receipt total.

The model is asked for a bare JSON object but frequently wraps it in a
markdown fence or adds a sentence of prose.  We strip fences first, then fall
back to the outermost ``{...}`` span.  Every item is validated on its own so a
failure can name the offending index and field.
"""
import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from models.schemas import AttachmentRecord, LineItem, OracleItem, OracleResponse
from services.attachments import merge_attachments

logger = logging.getLogger("receiptscan.parser")

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class ParseError(Exception):
    """Raised when the model response is not a usable receipt payload."""

    def __init__(
        self,
        reason: str,
        raw_text: str,
        index: Optional[int] = None,
        field: Optional[str] = None,
    ):
        self.reason = reason
        self.raw_text = raw_text
        self.index = index
        self.field = field
        where = f"Invalid item at index {index}: " if index is not None else ""
        super().__init__(
            f"Failed to parse model response: {where}{reason}\n\nResponse:\n{raw_text}"
        )


def extract_json(text: str) -> str:
    """Return the JSON candidate inside ``text`` (fenced block wins)."""
    cleaned = text.strip()
    m = FENCE_RE.search(cleaned)
    if m:
        cleaned = m.group(1).strip()
    return cleaned


def _reject_constant(token: str):
    # NaN and Infinity are accepted by json.loads but are not JSON
    raise ValueError(f"{token} is not a JSON value")


def _loads(text: str):
    return json.loads(text, parse_constant=_reject_constant)


def _load_payload(raw_text: str):
    candidate = extract_json(raw_text)
    if not candidate:
        raise ParseError("response contains no JSON payload", raw_text)
    try:
        return _loads(candidate)
    except ValueError as e:
        reason = e.msg if isinstance(e, json.JSONDecodeError) else str(e)
        # Prose around an unfenced object: try the outermost braces
        start, end = candidate.find("{"), candidate.rfind("}")
        if start != -1 and end > start:
            try:
                return _loads(candidate[start:end + 1])
            except ValueError:
                pass
        raise ParseError(f"response is not valid JSON ({reason})", raw_text) from e


def _first_error(exc: ValidationError) -> tuple[Optional[str], str]:
    """Collapse a pydantic error into (field, reason) for the first failure."""
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err["loc"]) or None
    msg = err["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return field, (f"{field}: {msg}" if field else msg)


def normalize_item(raw, position: int) -> AttachmentRecord:
    """Validate one raw item.  Raises ``ValidationError`` on bad input."""
    item = OracleItem.model_validate(raw)
    return AttachmentRecord(
        name=item.name,
        price=item.price,
        quantity=item.quantity,
        has_tax=item.hasTax,
        tax_amount=item.taxAmount,
        deposit=item.deposit,
        discount=item.discount,
        needs_verification=item.needsVerification,
        position=position,
        is_attachment=item.isAttachment,
        attachment_type=item.attachmentType,
        attached_to=item.attachedTo,
    )


def parse_records(raw_text: str) -> tuple[list[AttachmentRecord], float]:
    """Parse and validate without merging attachments."""
    if not isinstance(raw_text, str):
        raise ParseError("response is not text", repr(raw_text))

    payload = _load_payload(raw_text)
    if not isinstance(payload, dict):
        raise ParseError("response is not an object", raw_text)

    try:
        response = OracleResponse.model_validate(payload)
    except ValidationError as e:
        field, reason = _first_error(e)
        raise ParseError(reason, raw_text, field=field) from e

    records = []
    for index, raw in enumerate(response.items):
        try:
            records.append(normalize_item(raw, index))
        except ValidationError as e:
            field, reason = _first_error(e)
            raise ParseError(reason, raw_text, index=index, field=field) from e

    return records, response.total


def parse_response(raw_text: str) -> tuple[list[LineItem], float]:
    """
    Parse the model response into merged line items and the printed total.
    The total is passed through untouched.
    """
    records, total = parse_records(raw_text)
    items = merge_attachments(records)
    logger.debug(
        "Parsed %d records → %d items (total %.2f)", len(records), len(items), total
    )
    return items, total
