"""
Types du pipeline prix / remise / session / commande.
Tous immuables: construits par requête, jamais persistés.
"""
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class CartLine(_Frozen):
    item_reference: str = ""
    quantity: int = 1
    client_asserted_price: Optional[str] = None
    title: Optional[str] = None


class ResolvedLineItem(_Frozen):
    item_reference: str
    quantity: int
    unit_amount_minor: int = Field(ge=0)
    display_name: str
    currency: str


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    UNSUPPORTED = "unsupported"


class DiscountRule(_Frozen):
    kind: DiscountKind
    magnitude: Decimal = Decimal("0")
    minimum_subtotal_minor: Optional[int] = None
    source_id: Optional[str] = None


class PromotionReference(_Frozen):
    external_id: str
    code: str


class CheckoutResult(_Frozen):
    session_id: str
    redirect_url: str
    promotion: Optional[PromotionReference] = None


class ShippingAddress(_Frozen):
    first_name: str = ""
    last_name: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    province: str = ""
    country: str = ""
    zip: str = ""
    phone: str = ""


class OrderLine(_Frozen):
    item_reference: str
    quantity: int
    unit_amount_minor: Optional[int] = None


class SynthesizedOrder(_Frozen):
    source_session_id: str
    email: str = ""
    currency: str
    line_items: List[OrderLine]
    shipping_address: ShippingAddress
    financial_status: str = "paid"
    amount_total_minor: Optional[int] = None
    amount_discount_minor: int = 0
    discount_code: Optional[str] = None


class SynthesisOutcome(_Frozen):
    status: Literal["created", "skipped", "updated", "ignored"]
    session_id: Optional[str] = None
    order: Optional[SynthesizedOrder] = None
    commerce_order_id: Optional[str] = None


class PaymentEvent(_Frozen):
    event_id: str = ""
    type: str
    session_id: Optional[str] = None
    signature: str
    raw_payload: bytes
