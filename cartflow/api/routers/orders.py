# cartflow/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cartflow.api.deps import http_error
from cartflow.data.database import get_db
from cartflow.domain.errors import CheckoutError
from cartflow.domain.schemas import OrderDetailOut
from cartflow.services.order_reader import OrderReader

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderReader(db)


@router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(
    order_id: int,
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """
    Placed order with its seller lines, e.g. for the order confirmation page.
    """
    try:
        return get_service(db).get_order(order_id, buyer_id)
    except CheckoutError as e:
        raise http_error(e)
