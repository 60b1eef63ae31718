"""Order history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from ...persistence.orders import list_orders_for_user
from ...schemas.orders import OrderListResponse
from ...services.outputs.order_formatter import orders_to_csv
from ..errors import translate_errors
from ..serializers import order_model

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=OrderListResponse, status_code=status.HTTP_200_OK)
def list_orders(user_id: str = Query(..., min_length=1, description="Owner of the orders")) -> OrderListResponse:
    """Orders for a user, newest first."""
    with translate_errors("load orders"):
        orders = list_orders_for_user(user_id)
        return OrderListResponse(
            user_id=user_id,
            total=len(orders),
            items=[order_model(order) for order in orders],
        )


@router.get("/export", status_code=status.HTTP_200_OK)
def export_orders(user_id: str = Query(..., min_length=1)) -> Response:
    with translate_errors("export orders"):
        content = orders_to_csv(list_orders_for_user(user_id))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="orders_{user_id}.csv"'},
    )
