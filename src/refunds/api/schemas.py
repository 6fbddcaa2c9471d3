"""Pydantic request/response schemas for the Refunds API.

These are external contracts, kept separate from the internal Protean
commands. JSON list fields on commands are serialized by the routes.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LineItemSchema(BaseModel):
    item_id: str | None = None
    item_type: str = "Product"
    product_id: str | None = None
    bundle_id: str | None = None
    name: str | None = None
    image: str | None = None
    size: str | None = None
    unit_price: float | None = Field(default=None, ge=0)
    bundle_price: float | None = Field(default=None, ge=0)
    quantity: int = Field(ge=1, default=1)


class TimeBasedRuleSchema(BaseModel):
    description: str | None = None
    time_frame_hours: int = Field(ge=0)
    refund_percentage: float = Field(ge=0, le=100)


class OrderStatusRuleSchema(BaseModel):
    order_status: str
    can_cancel: bool = True
    refund_percentage: float = Field(ge=0, le=100)


class TermSchema(BaseModel):
    title: str
    content: str


class ReturnLineSchema(BaseModel):
    order_item_id: str
    reason: str
    additional_comments: str | None = None
    requested_quantity: int | None = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class RecordOrderRequest(BaseModel):
    order_code: str
    user_id: str
    items: list[LineItemSchema] = Field(min_length=1)
    total_amt: float = Field(ge=0)
    sub_total_amt: float | None = Field(default=None, ge=0)
    payment_method: str | None = None
    payment_status: str = "Pending"
    order_date: datetime | None = None
    estimated_delivery_date: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_code": "ORD-1001",
                    "user_id": "user-001",
                    "items": [
                        {
                            "item_type": "Product",
                            "product_id": "prod-001",
                            "name": "Linen Shirt",
                            "size": "M",
                            "unit_price": 999.99,
                            "quantity": 1,
                        }
                    ],
                    "total_amt": 999.99,
                    "payment_method": "Online Payment",
                    "payment_status": "Paid",
                }
            ]
        }
    }


class ChangeOrderStatusRequest(BaseModel):
    status: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Cancellation Request Schemas
# ---------------------------------------------------------------------------
class RequestCancellationRequest(BaseModel):
    order_id: str
    reason: str
    additional_reason: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "order-001",
                    "reason": "Changed mind",
                    "additional_reason": None,
                }
            ]
        }
    }


class RequestPartialCancellationRequest(BaseModel):
    order_id: str
    item_ids: list[str] = Field(min_length=1)
    reason: str
    additional_reason: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "order-001",
                    "item_ids": ["item-001"],
                    "reason": "Changed mind",
                    "additional_reason": None,
                }
            ]
        }
    }


class ProcessCancellationRequest(BaseModel):
    action: str
    admin_comments: str | None = None
    custom_refund_percentage: float | None = Field(default=None, ge=0, le=100)


class CompleteRefundRequest(BaseModel):
    transaction_id: str | None = None
    admin_comments: str | None = None


# ---------------------------------------------------------------------------
# Return Request Schemas
# ---------------------------------------------------------------------------
class CreateReturnRequest(BaseModel):
    items: list[ReturnLineSchema] = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "order_item_id": "item-001",
                            "reason": "Damaged_In_Shipping",
                            "requested_quantity": 1,
                        }
                    ]
                }
            ]
        }
    }


class ProcessReturnRequest(BaseModel):
    action: str
    admin_comments: str | None = None
    inspection_notes: str | None = None
    custom_refund_amount: float | None = Field(default=None, ge=0)


class UpdateReturnRefundRequest(BaseModel):
    refund_status: str
    refund_id: str | None = None
    refund_method: str | None = None
    refund_amount: float | None = Field(default=None, ge=0)
    admin_notes: str | None = None


# ---------------------------------------------------------------------------
# Policy Request Schemas
# ---------------------------------------------------------------------------
class UpdatePolicyRequest(BaseModel):
    refund_percentage: float | None = Field(default=None, ge=0, le=100)
    response_time_hours: int | None = Field(default=None, ge=0)
    allowed_reasons: list[str] | None = None
    time_based_rules: list[TimeBasedRuleSchema] | None = None
    order_status_rules: list[OrderStatusRuleSchema] | None = None
    terms: list[TermSchema] | None = None
    return_window_days: int | None = Field(default=None, ge=0)
    return_refund_percentage: float | None = Field(default=None, ge=0, le=100)
    re_request_cooldown_hours: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderIdResponse(BaseModel):
    order_id: str


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


class TransitionsResponse(BaseModel):
    status: str
    available_transitions: list[str]


class CancellationIdResponse(BaseModel):
    request_id: str


class CancellationDecisionResponse(BaseModel):
    request_id: str
    status: str


class RefundCompletedResponse(BaseModel):
    request_id: str
    refund_id: str


class ReturnsCreatedResponse(BaseModel):
    return_ids: list[str]
    total_refund_amount: float
    skipped: list[dict] = []


class ReturnStatusResponse(BaseModel):
    return_id: str
    status: str


class PolicyIdResponse(BaseModel):
    policy_id: str
