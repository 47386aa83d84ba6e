import math

from pydantic import BaseModel, Field, field_validator
from typing import Any, Awaitable, Callable, Literal, Optional, List, Union


def _is_number(value: Any) -> bool:
    # JSON booleans decode to bool, which is an int subclass
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return isinstance(value, int) or math.isfinite(value)


# ── Oracle payload (raw model output) ─────────────────
class OracleItem(BaseModel):
    """One entry of the model's ``items`` array, validated field by field.

    Required fields fail loudly; optional fields are coerced or dropped so that
    "absent" and "zero" stay distinct.
    """
    name: str = Field(min_length=1)
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: float = 1.0
    needsVerification: bool = False
    hasTax: bool = False
    taxAmount: Optional[float] = None
    deposit: Optional[float] = None
    discount: Optional[float] = None
    isAttachment: bool = False
    attachmentType: Optional[Literal["deposit", "discount"]] = None
    attachedTo: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_is_string(cls, v):
        if not isinstance(v, str):
            raise ValueError("name must be a string")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def price_is_number(cls, v):
        if not _is_number(v):
            raise ValueError("price must be a number")
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v):
        if not _is_number(v) or v <= 0:
            return 1.0
        return v

    @field_validator("needsVerification", "hasTax", "isAttachment", mode="before")
    @classmethod
    def only_true(cls, v):
        return v is True

    @field_validator("taxAmount", "deposit", "discount", mode="before")
    @classmethod
    def number_or_absent(cls, v):
        return v if _is_number(v) else None

    @field_validator("attachmentType", mode="before")
    @classmethod
    def known_attachment_type(cls, v):
        return v if v in ("deposit", "discount") else None

    @field_validator("attachedTo", mode="before")
    @classmethod
    def index_or_absent(cls, v):
        return v if isinstance(v, int) and not isinstance(v, bool) and v >= 0 else None


class OracleResponse(BaseModel):
    items: List[Any]
    total: float = Field(ge=0, allow_inf_nan=False)

    @field_validator("items", mode="before")
    @classmethod
    def items_is_array(cls, v):
        if not isinstance(v, list):
            raise ValueError("items must be an array")
        return v

    @field_validator("total", mode="before")
    @classmethod
    def total_is_number(cls, v):
        if not _is_number(v):
            raise ValueError("total must be a number")
        return v


# ── Line Item ──────────────────────────────────────────
class ReceiptItemBase(BaseModel):
    name: str
    price: float
    quantity: float = 1.0
    has_tax: bool = False
    tax_amount: Optional[float] = None
    deposit: Optional[float] = None      # positive charges, negative refunds
    discount: Optional[float] = None     # always stored negative

class ReceiptItem(ReceiptItemBase):
    """Public line item returned to callers."""

    class Config:
        frozen = True

class LineItem(ReceiptItemBase):
    """Internal line item; ``needs_verification`` never leaves the library."""
    needs_verification: bool = False

class AttachmentRecord(LineItem):
    """Parsed record that may still be a deposit/discount attachment."""
    position: int = 0
    is_attachment: bool = False
    attachment_type: Optional[Literal["deposit", "discount"]] = None
    attached_to: Optional[int] = None


# ── Receipt ────────────────────────────────────────────
class ReceiptData(BaseModel):
    items: List[ReceiptItem]
    total: float


class TotalCheck(BaseModel):
    items_total: float
    total: float
    difference: float
    matches: bool
    message: str


# ── Verification ───────────────────────────────────────
class VerificationContext(BaseModel):
    raw_text: str
    all_items: List[ReceiptItem]

    class Config:
        frozen = True

class VerificationResult(BaseModel):
    verified_name: str


CallbackResult = Union[VerificationResult, str, None]
VerificationCallback = Callable[
    [str, VerificationContext],
    Union[CallbackResult, Awaitable[CallbackResult]],
]


class ExtractOptions(BaseModel):
    auto_verify: bool = True
    verify_callback: Optional[VerificationCallback] = None


# ── Upload / Processing ────────────────────────────────
class ExtractionResult(BaseModel):
    items: List[ReceiptItem]
    total: float
    total_check: TotalCheck
