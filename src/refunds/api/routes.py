"""FastAPI routes for the Refunds domain: orders, cancellations, returns and policy."""

import json
from datetime import datetime

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from refunds.api.auth import AuthContext, current_user, require_admin
from refunds.api.schemas import (
    CancellationDecisionResponse,
    CancellationIdResponse,
    ChangeOrderStatusRequest,
    CompleteRefundRequest,
    CreateReturnRequest,
    OrderIdResponse,
    OrderStatusResponse,
    PolicyIdResponse,
    ProcessCancellationRequest,
    ProcessReturnRequest,
    RecordOrderRequest,
    RefundCompletedResponse,
    RequestCancellationRequest,
    RequestPartialCancellationRequest,
    ReturnsCreatedResponse,
    ReturnStatusResponse,
    TransitionsResponse,
    UpdatePolicyRequest,
    UpdateReturnRefundRequest,
)
from refunds.cancellation.partial import ProcessPartialCancellation, RequestPartialCancellation
from refunds.cancellation.processing import ProcessCancellation
from refunds.cancellation.refund import CompleteRefund
from refunds.cancellation.request import RequestCancellation
from refunds.ledger.cancellations import (
    get_cancellation,
    get_cancellation_for_order,
    get_refund_document,
    list_cancellation_requests,
    list_refunds,
    list_user_cancellations,
)
from refunds.ledger.dashboard import dashboard_stats, list_user_refunds, refund_stats_with_delivery
from refunds.ledger.returns import get_return_details, list_all_returns, list_user_returns
from refunds.order.order import Order, available_transitions
from refunds.order.recording import RecordOrder
from refunds.order.status import ChangeOrderStatus
from refunds.policy.management import UpdatePolicy
from refunds.policy.repository import get_active_policy
from refunds.returns.creation import CreateReturnRequests
from refunds.returns.customer import CancelReturnRequest, ReRequestReturn
from refunds.returns.eligibility import list_eligible_items
from refunds.returns.refund import ProcessReturnRefund, UpdateReturnRefundStatus
from refunds.returns.review import MarkReturnUnderReview, ProcessReturn

# ---------------------------------------------------------------------------
# Order Router (admin)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def record_order(body: RecordOrderRequest, admin: AuthContext = Depends(require_admin)) -> OrderIdResponse:
    items = [item.model_dump(exclude_none=True) for item in body.items]
    command = RecordOrder(
        order_code=body.order_code,
        user_id=body.user_id,
        items=json.dumps(items),
        total_amt=body.total_amt,
        sub_total_amt=body.sub_total_amt,
        payment_method=body.payment_method,
        payment_status=body.payment_status,
        order_date=body.order_date,
        estimated_delivery_date=body.estimated_delivery_date,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("/transitions/{status}", response_model=TransitionsResponse)
async def get_available_transitions(status: str, admin: AuthContext = Depends(require_admin)) -> TransitionsResponse:
    return TransitionsResponse(status=status, available_transitions=available_transitions(status))


@order_router.put("/{order_id}/status", response_model=OrderStatusResponse)
async def change_order_status(
    order_id: str,
    body: ChangeOrderStatusRequest,
    admin: AuthContext = Depends(require_admin),
) -> OrderStatusResponse:
    command = ChangeOrderStatus(
        order_id=order_id,
        status=body.status,
        reason=body.reason,
        updated_by=admin.user_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=result)


@order_router.get("/{order_id}")
async def get_order(order_id: str, admin: AuthContext = Depends(require_admin)) -> dict:
    return current_domain.repository_for(Order).find_by_id(order_id).to_dict()


# ---------------------------------------------------------------------------
# Cancellation Router
# ---------------------------------------------------------------------------
cancellation_router = APIRouter(prefix="/cancellations", tags=["cancellations"])


@cancellation_router.post("", status_code=201, response_model=CancellationIdResponse)
async def request_cancellation(
    body: RequestCancellationRequest,
    auth: AuthContext = Depends(current_user),
) -> CancellationIdResponse:
    command = RequestCancellation(
        order_id=body.order_id,
        user_id=auth.user_id,
        reason=body.reason,
        additional_reason=body.additional_reason,
    )
    result = current_domain.process(command, asynchronous=False)
    return CancellationIdResponse(request_id=result)


@cancellation_router.post("/partial", status_code=201, response_model=CancellationIdResponse)
async def request_partial_cancellation(
    body: RequestPartialCancellationRequest,
    auth: AuthContext = Depends(current_user),
) -> CancellationIdResponse:
    command = RequestPartialCancellation(
        order_id=body.order_id,
        user_id=auth.user_id,
        item_ids=json.dumps(body.item_ids),
        reason=body.reason,
        additional_reason=body.additional_reason,
    )
    result = current_domain.process(command, asynchronous=False)
    return CancellationIdResponse(request_id=result)


@cancellation_router.get("/mine")
async def my_cancellations(auth: AuthContext = Depends(current_user)) -> list[dict]:
    return list_user_cancellations(auth.user_id)


@cancellation_router.get("")
async def all_cancellations(
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
    admin: AuthContext = Depends(require_admin),
) -> dict:
    return list_cancellation_requests(status=status, page=page, limit=limit)


@cancellation_router.get("/by-order/{order_id}")
async def cancellation_for_order(order_id: str, admin: AuthContext = Depends(require_admin)) -> dict:
    return get_cancellation_for_order(order_id)


@cancellation_router.get("/{request_id}")
async def cancellation_details(request_id: str, auth: AuthContext = Depends(current_user)) -> dict:
    return get_cancellation(request_id, user_id=None if auth.is_admin else auth.user_id)


@cancellation_router.put("/{request_id}/process", response_model=CancellationDecisionResponse)
async def process_cancellation(
    request_id: str,
    body: ProcessCancellationRequest,
    admin: AuthContext = Depends(require_admin),
) -> CancellationDecisionResponse:
    command = ProcessCancellation(
        request_id=request_id,
        action=body.action,
        admin_id=admin.user_id,
        admin_comments=body.admin_comments,
        custom_refund_percentage=body.custom_refund_percentage,
    )
    result = current_domain.process(command, asynchronous=False)
    return CancellationDecisionResponse(request_id=request_id, status=result)


@cancellation_router.put("/{request_id}/process-partial", response_model=CancellationDecisionResponse)
async def process_partial_cancellation(
    request_id: str,
    body: ProcessCancellationRequest,
    admin: AuthContext = Depends(require_admin),
) -> CancellationDecisionResponse:
    command = ProcessPartialCancellation(
        request_id=request_id,
        action=body.action,
        admin_id=admin.user_id,
        admin_comments=body.admin_comments,
        custom_refund_percentage=body.custom_refund_percentage,
    )
    result = current_domain.process(command, asynchronous=False)
    return CancellationDecisionResponse(request_id=request_id, status=result)


@cancellation_router.put("/{request_id}/complete-refund", response_model=RefundCompletedResponse)
async def complete_refund(
    request_id: str,
    body: CompleteRefundRequest,
    admin: AuthContext = Depends(require_admin),
) -> RefundCompletedResponse:
    command = CompleteRefund(
        request_id=request_id,
        admin_id=admin.user_id,
        transaction_id=body.transaction_id,
        admin_comments=body.admin_comments,
    )
    result = current_domain.process(command, asynchronous=False)
    return RefundCompletedResponse(request_id=request_id, refund_id=result)


# ---------------------------------------------------------------------------
# Refund Router
# ---------------------------------------------------------------------------
refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.get("")
async def all_refunds(refund_status: str | None = None, admin: AuthContext = Depends(require_admin)) -> list[dict]:
    return list_refunds(refund_status=refund_status)


@refund_router.get("/stats")
async def refund_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    admin: AuthContext = Depends(require_admin),
) -> dict:
    return refund_stats_with_delivery(start=start_date, end=end_date)


@refund_router.get("/mine")
async def my_refunds(auth: AuthContext = Depends(current_user)) -> list[dict]:
    return list_user_refunds(auth.user_id)


@refund_router.get("/{refund_id}/document")
async def refund_document(refund_id: str, auth: AuthContext = Depends(current_user)) -> dict:
    return get_refund_document(refund_id, auth.user_id)


# ---------------------------------------------------------------------------
# Return Router
# ---------------------------------------------------------------------------
return_router = APIRouter(prefix="/returns", tags=["returns"])


@return_router.get("/eligible-items")
async def eligible_items(order_id: str | None = None, auth: AuthContext = Depends(current_user)) -> list[dict]:
    return list_eligible_items(auth.user_id, order_id=order_id)


@return_router.post("", status_code=201, response_model=ReturnsCreatedResponse)
async def create_returns(body: CreateReturnRequest, auth: AuthContext = Depends(current_user)) -> ReturnsCreatedResponse:
    items = [line.model_dump(exclude_none=True) for line in body.items]
    command = CreateReturnRequests(user_id=auth.user_id, items=json.dumps(items))
    result = current_domain.process(command, asynchronous=False)
    return ReturnsCreatedResponse(**result)


@return_router.get("/mine")
async def my_returns(auth: AuthContext = Depends(current_user)) -> list[dict]:
    return list_user_returns(auth.user_id)


@return_router.get("/admin/all")
async def all_returns(
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    search: str | None = None,
    sort_by: str = "request_date",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
    admin: AuthContext = Depends(require_admin),
) -> dict:
    return list_all_returns(
        status=status,
        start_date=start_date,
        end_date=end_date,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@return_router.get("/admin/dashboard")
async def returns_dashboard(admin: AuthContext = Depends(require_admin)) -> dict:
    return dashboard_stats()


@return_router.get("/{return_id}")
async def return_details(return_id: str, auth: AuthContext = Depends(current_user)) -> dict:
    return get_return_details(return_id, auth.user_id)


@return_router.put("/{return_id}/cancel", response_model=ReturnStatusResponse)
async def cancel_return(return_id: str, auth: AuthContext = Depends(current_user)) -> ReturnStatusResponse:
    command = CancelReturnRequest(return_id=return_id, user_id=auth.user_id)
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


@return_router.put("/{return_id}/re-request", response_model=ReturnStatusResponse)
async def re_request_return(return_id: str, auth: AuthContext = Depends(current_user)) -> ReturnStatusResponse:
    command = ReRequestReturn(return_id=return_id, user_id=auth.user_id)
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


@return_router.put("/{return_id}/review", response_model=ReturnStatusResponse)
async def review_return(return_id: str, admin: AuthContext = Depends(require_admin)) -> ReturnStatusResponse:
    command = MarkReturnUnderReview(return_id=return_id, admin_id=admin.user_id)
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


@return_router.put("/{return_id}/process", response_model=ReturnStatusResponse)
async def process_return(
    return_id: str,
    body: ProcessReturnRequest,
    admin: AuthContext = Depends(require_admin),
) -> ReturnStatusResponse:
    command = ProcessReturn(
        return_id=return_id,
        action=body.action,
        admin_id=admin.user_id,
        admin_comments=body.admin_comments,
        inspection_notes=body.inspection_notes,
        custom_refund_amount=body.custom_refund_amount,
    )
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


@return_router.put("/{return_id}/refund-status", response_model=ReturnStatusResponse)
async def update_return_refund_status(
    return_id: str,
    body: UpdateReturnRefundRequest,
    admin: AuthContext = Depends(require_admin),
) -> ReturnStatusResponse:
    command = UpdateReturnRefundStatus(
        return_id=return_id,
        refund_status=body.refund_status,
        admin_id=admin.user_id,
        refund_id=body.refund_id,
        refund_method=body.refund_method,
        refund_amount=body.refund_amount,
        admin_notes=body.admin_notes,
    )
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


@return_router.put("/{return_id}/process-refund", response_model=ReturnStatusResponse)
async def process_return_refund(return_id: str, admin: AuthContext = Depends(require_admin)) -> ReturnStatusResponse:
    command = ProcessReturnRefund(return_id=return_id, admin_id=admin.user_id)
    result = current_domain.process(command, asynchronous=False)
    return ReturnStatusResponse(return_id=return_id, status=result)


# ---------------------------------------------------------------------------
# Policy Router
# ---------------------------------------------------------------------------
policy_router = APIRouter(prefix="/policy", tags=["policy"])


@policy_router.get("")
async def get_policy(auth: AuthContext = Depends(current_user)) -> dict:
    return get_active_policy().to_dict()


@policy_router.put("", response_model=PolicyIdResponse)
async def update_policy(body: UpdatePolicyRequest, admin: AuthContext = Depends(require_admin)) -> PolicyIdResponse:
    fields = body.model_dump(exclude_none=True)
    for name in ("allowed_reasons", "time_based_rules", "order_status_rules", "terms"):
        if name in fields:
            fields[name] = json.dumps(fields[name])
    command = UpdatePolicy(updated_by=admin.user_id, **fields)
    result = current_domain.process(command, asynchronous=False)
    return PolicyIdResponse(policy_id=result)
