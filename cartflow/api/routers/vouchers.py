# cartflow/api/routers/vouchers.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cartflow.data.database import get_db
from cartflow.domain.entities import Voucher
from cartflow.repos.voucher_repo import VoucherRepo
from cartflow.services.voucher_engine import VoucherEngine

router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@router.get("/", response_model=List[Voucher])
def eligible_vouchers(
    seller_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """
    Vouchers usable right now; limited to one seller when seller_id is given.
    """
    return VoucherEngine(VoucherRepo(db)).applicable_vouchers(seller_id)
