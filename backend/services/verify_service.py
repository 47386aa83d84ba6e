"""
Verification Service

Resolves abbreviated or truncated item names ("ORG MLK", "KS 12X") that the
vision model flagged with ``needsVerification``.  Two passes, in this order:

  1. Automatic — one batched Claude request (web search enabled) covering
     every flagged item.  Enabled by default.
  2. Callback — a caller-supplied function, run item by item for whatever the
     automatic pass left unresolved.

Neither pass can fail an extraction: errors are logged and the affected items
simply keep the name printed on the receipt.
"""
import inspect
import json
import logging
import os
from typing import Optional

import anthropic

from models.schemas import (
    ExtractOptions,
    LineItem,
    VerificationCallback,
    VerificationContext,
    VerificationResult,
)
from services.projection import to_public_items
from services.response_parser import extract_json

logger = logging.getLogger("receiptscan.verify")
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
VERIFY_MODEL = os.environ.get("VERIFY_MODEL", "claude-haiku-4-5")
VERIFY_WEB_SEARCH = os.environ.get("VERIFY_WEB_SEARCH", "1").lower() not in ("0", "false", "no")


class VerificationError(Exception):
    """Raised when a verification source fails (network, auth, parse error)."""
    pass


SYSTEM_PROMPT = """You identify products from abbreviated grocery receipt lines.
Each input entry is the item name exactly as printed on a receipt, plus its unit price.
For every name, work out the full product name a shopper would recognise
(brand, product and size when known).  Search the web when the abbreviation
is store-specific.

Rules:
- Only answer for names you can identify with confidence; omit the rest.
- Keep the answer short — a product name, not a description.
- Return ONLY a JSON object mapping each original name to its full name.
  No prose, no markdown fences.

Example output: {"ORG MLK": "Organic Whole Milk 1L", "KS APPLE": "Kirkland Signature Fuji Apples"}
"""


def _reply_text(message) -> str:
    """Concatenate the text blocks of a Messages API reply."""
    parts = [
        block.text for block in message.content
        if getattr(block, "type", None) == "text" and getattr(block, "text", None)
    ]
    return "".join(parts).strip()


def _parse_name_map(raw: str, names: list[str]) -> dict[str, str]:
    candidate = extract_json(raw)
    start, end = candidate.find("{"), candidate.rfind("}")
    if start == -1 or end < start:
        raise VerificationError(f"no JSON object in verification reply: {raw[:200]!r}")
    try:
        data = json.loads(candidate[start:end + 1])
    except json.JSONDecodeError as e:
        raise VerificationError(f"invalid JSON in verification reply: {e.msg}") from e
    if not isinstance(data, dict):
        raise VerificationError("verification reply is not a JSON object")

    wanted = set(names)
    resolved = {}
    for original, full in data.items():
        if original not in wanted or not isinstance(full, str):
            continue
        full = full.strip()
        if full and full != original:
            resolved[original] = full
    return resolved


async def _call_claude(items: list[LineItem]) -> str:
    """Send one batched verification request and return the reply text."""
    if not ANTHROPIC_API_KEY:
        logger.warning("ANTHROPIC_API_KEY not set — skipping automatic verification")
        raise VerificationError("ANTHROPIC_API_KEY not set")

    payload = [{"name": item.name, "price": item.price} for item in items]
    kwargs = {}
    if VERIFY_WEB_SEARCH:
        kwargs["tools"] = [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}]

    client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
    try:
        message = await client.messages.create(
            model=VERIFY_MODEL,
            max_tokens=2048,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": json.dumps(payload, ensure_ascii=False)}],
            **kwargs,
        )
    except Exception as e:
        logger.error("Claude API error during verification: %s", e)
        raise VerificationError(str(e)) from e

    raw = _reply_text(message)
    if not raw:
        raise VerificationError("verification reply contained no text")
    return raw


async def batch_verify_items(items: list[LineItem]) -> dict[str, str]:
    """
    Resolve the names of ``items`` in a single request.
    Returns ``{original name: full name}``; names that could not be resolved
    are absent.  Raises VerificationError on any failure.
    """
    unique: dict[str, LineItem] = {}
    for item in items:
        unique.setdefault(item.name, item)
    if not unique:
        return {}

    raw = await _call_claude(list(unique.values()))
    resolved = _parse_name_map(raw, list(unique))
    logger.info("Automatic verification resolved %d of %d names", len(resolved), len(unique))
    return resolved


def _resolved_name(result) -> Optional[str]:
    if isinstance(result, VerificationResult):
        name = result.verified_name
    elif isinstance(result, str):
        name = result
    else:
        return None
    return name if name.strip() else None


async def _run_callback(callback, name: str, context: VerificationContext):
    result = callback(name, context)
    if inspect.isawaitable(result):
        result = await result
    return result


async def orchestrate(
    items: list[LineItem],
    raw_text: str,
    options: Optional[ExtractOptions] = None,
) -> list[LineItem]:
    """
    Run the automatic and callback passes over flagged items, in place.
    Length, order and unflagged items are never touched.
    """
    options = options or ExtractOptions()

    flagged = [item for item in items if item.needs_verification]
    if options.auto_verify and flagged:
        try:
            resolved = await batch_verify_items(flagged)
        except Exception as e:
            logger.warning("Automatic verification failed: %s", e)
        else:
            for item in flagged:
                name = resolved.get(item.name)
                if name:
                    item.name = name
                    item.needs_verification = False

    if options.verify_callback is not None:
        # One item at a time: each context reflects names resolved earlier in this loop
        for item in items:
            if not item.needs_verification:
                continue
            context = VerificationContext(raw_text=raw_text, all_items=to_public_items(items))
            try:
                result = await _run_callback(options.verify_callback, item.name, context)
            except Exception as e:
                logger.warning("Verification failed for item %r: %s", item.name, e)
                continue
            name = _resolved_name(result)
            if name:
                item.name = name
                item.needs_verification = False

    unresolved = sum(1 for item in items if item.needs_verification)
    if unresolved:
        logger.debug("%d item(s) left unverified", unresolved)
    return items


def make_lookup_callback(table: dict[str, str]) -> VerificationCallback:
    """
    Build a verification callback from a static abbreviation table, e.g. a
    local product list.  Lookups are case-insensitive.
    """
    lookup = {key.upper(): value for key, value in table.items()}

    def callback(name: str, context: VerificationContext) -> Optional[VerificationResult]:
        full = lookup.get(name.upper())
        if full and full != name:
            return VerificationResult(verified_name=full)
        return None

    return callback
