"""
Order API views - checkout, order tracking and staff order handling.

- Customers start a Square checkout and follow their orders.
- Staff look up orders and move them through the fulfilment lifecycle.
"""

import json
import logging
from typing import Any, TypeVar

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import Http404, HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import (
    require_GET,
    require_http_methods,
    require_POST,
)

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.payments.exceptions import SquareAPIError
from apps.web.restaurant.checkout import CheckoutError, initiate_checkout
from apps.web.restaurant.models import STAFF_SETTABLE_STATUSES, RestaurantOrder
from apps.web.restaurant.serializers import (
    InitiateCheckoutRequest,
    InitiateCheckoutResponse,
    OrderDocumentSchema,
    OrderListResponse,
    OrderStatusUpdateRequest,
    OrderStatusUpdateResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)

logger = logging.getLogger(__name__)

_S = TypeVar("_S", bound=BaseModel)

RECENT_ORDERS_LIMIT = 50
ACTIVE_ORDERS_LIMIT = 10


def _json_response(data: dict[str, Any], status: int = 200) -> JsonResponse:
    return JsonResponse(data, status=status)


def _validation_error_response(e: PydanticValidationError) -> JsonResponse:
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
        )
        for err in e.errors()
    ]
    response = ValidationErrorResponse(error="validation_error", details=errors)
    return _json_response(response.model_dump(), status=400)


def _parse_body(request: HttpRequest, schema: type[_S]) -> _S | JsonResponse:
    """Validate the JSON body against ``schema``, or return a 400 response."""
    try:
        body = json.loads(request.body)
        return schema.model_validate(body)
    except json.JSONDecodeError:
        return _json_response({"error": "Invalid JSON in request body"}, status=400)
    except PydanticValidationError as e:
        return _validation_error_response(e)


def _serialize_order(order: RestaurantOrder) -> OrderDocumentSchema:
    return OrderDocumentSchema.model_validate(order.to_document())


def _order_list_response(orders: list[RestaurantOrder]) -> JsonResponse:
    response = OrderListResponse(orders=[_serialize_order(o) for o in orders])
    return _json_response(response.model_dump(mode="json", by_alias=True))


def _require_staff(request: HttpRequest) -> None:
    if not request.user.is_staff:
        raise PermissionDenied("Staff access required")


def _get_order_or_404(restaurant_id: str, order_id: str) -> RestaurantOrder:
    try:
        return RestaurantOrder.objects.get(
            restaurant_id=restaurant_id, order_id=order_id
        )
    except RestaurantOrder.DoesNotExist as exc:
        raise Http404(f"Order {order_id} not found") from exc


# =============================================================================
# Checkout
# =============================================================================


@csrf_exempt
@require_POST
@login_required
def initiate_checkout_view(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/initiate-checkout

    Price the cart and create a Square hosted checkout for it.

    Request body: InitiateCheckoutRequest schema
    Response: InitiateCheckoutResponse schema (200) or error
    """
    checkout = _parse_body(request, InitiateCheckoutRequest)
    if isinstance(checkout, JsonResponse):
        return checkout

    try:
        session = initiate_checkout(
            str(request.user.pk),
            checkout,
            buyer_email=request.user.email or None,
        )
    except CheckoutError as e:
        return _json_response({"error": e.message}, status=e.status_code)
    except SquareAPIError as e:
        logger.error("Square checkout failed: %s", e.message)
        return _json_response(
            {"error": "Payment processing failed", "details": e.message},
            status=502,
        )

    response = InitiateCheckoutResponse(
        checkout_url=session.checkout_url,
        order_id=session.order_id,
        total=session.total,
    )
    return _json_response(response.model_dump(mode="json"))


# =============================================================================
# Customer orders
# =============================================================================


@require_GET
@login_required
def my_orders(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders/mine

    The user's most recent orders, newest first.
    """
    orders = RestaurantOrder.objects.for_user(str(request.user.pk)).order_by(
        "-created_at"
    )[:RECENT_ORDERS_LIMIT]
    return _order_list_response(list(orders))


@require_GET
@login_required
def my_active_orders(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders/mine/active

    The user's orders that are still being fulfilled, newest first.
    """
    orders = (
        RestaurantOrder.objects.for_user(str(request.user.pk))
        .active()
        .order_by("-created_at")[:ACTIVE_ORDERS_LIMIT]
    )
    return _order_list_response(list(orders))


# =============================================================================
# Staff
# =============================================================================


@require_GET
@login_required
def admin_order_detail(
    request: HttpRequest, restaurant_id: str, order_id: str
) -> JsonResponse:
    """
    GET /api/admin/restaurants/{restaurant_id}/orders/{order_id}

    Response: OrderDocumentSchema (200) or 404
    """
    _require_staff(request)
    order = _get_order_or_404(restaurant_id, order_id)
    return _json_response(
        _serialize_order(order).model_dump(mode="json", by_alias=True)
    )


@csrf_exempt
@require_http_methods(["PUT"])
@login_required
def admin_order_status(
    request: HttpRequest, restaurant_id: str, order_id: str
) -> JsonResponse:
    """
    PUT /api/admin/restaurants/{restaurant_id}/orders/{order_id}/status

    Move an order to a new lifecycle status.

    Request body: OrderStatusUpdateRequest schema
    Response: OrderStatusUpdateResponse schema (200) or error
    """
    _require_staff(request)

    update = _parse_body(request, OrderStatusUpdateRequest)
    if isinstance(update, JsonResponse):
        return update

    if update.status not in STAFF_SETTABLE_STATUSES:
        allowed = ", ".join(STAFF_SETTABLE_STATUSES)
        return _json_response(
            {
                "success": False,
                "message": f"Invalid status provided. Must be one of: {allowed}",
            },
            status=400,
        )

    order = _get_order_or_404(restaurant_id, order_id)

    update_fields = ["status", "handled_by_staff_id", "updated_at"]
    order.status = update.status
    order.handled_by_staff_id = str(request.user.pk)
    order.updated_at = timezone.now()
    # An explicit null clears the estimate; an absent key leaves it alone.
    if "estimated_completion_time" in update.model_fields_set:
        order.estimated_completion_time = update.estimated_completion_time
        update_fields.append("estimated_completion_time")
    order.save(update_fields=update_fields)

    logger.info(
        "Order %s status set to %s by staff %s",
        order.document_path,
        order.status,
        order.handled_by_staff_id,
    )

    response = OrderStatusUpdateResponse(
        success=True,
        message="Order status updated successfully",
        order=_serialize_order(order),
    )
    return _json_response(response.model_dump(mode="json", by_alias=True))
