"""
Pydantic models for request/response validation.

Field aliases follow the camelCase keys the frontend already sends.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class CanteenBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Payment Models ──────────────────────────────────────────────────

class CustomerDetails(CanteenBase):
    first_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ItemDetail(CanteenBase):
    id: str
    price: float
    quantity: int = Field(..., ge=1)
    name: str


class CreatePaymentRequest(CanteenBase):
    """
    Body of POST /create-payment.

    orderId is the gateway order id (ORDER-... / BATCH-...), not a local
    order id. Amount is validated by the orchestrator so a non-positive
    amount reaches it and is reported in the payment error format.
    """
    order_id: Optional[str] = Field(None, alias="orderId")
    amount: Optional[float] = None
    customer_details: Optional[CustomerDetails] = Field(None, alias="customerDetails")
    item_details: Optional[List[ItemDetail]] = Field(None, alias="itemDetails")
    batch_order_ids: Optional[List[str]] = Field(None, alias="batchOrderIds")
    local_order_id: Optional[str] = Field(None, alias="localOrderId")


class BatchPaymentRequest(CanteenBase):
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1)


# ── Order Models ────────────────────────────────────────────────────

class OrderStatusUpdateRequest(CanteenBase):
    status: str = Field(..., min_length=1)


# ── Menu Models ─────────────────────────────────────────────────────

class MenuItemCreateRequest(CanteenBase):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., gt=0)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    is_available: bool = Field(True, alias="isAvailable")


class MenuItemUpdateRequest(CanteenBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    is_available: Optional[bool] = Field(default=None, alias="isAvailable")


# ── Admin Models ────────────────────────────────────────────────────

class RoleUpdateRequest(CanteenBase):
    role: str = Field(..., description="parent | cashier | admin")
