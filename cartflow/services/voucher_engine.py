# cartflow/services/voucher_engine.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from cartflow.domain.entities import DiscountType, Voucher, ZERO, money, round_whole
from cartflow.domain.errors import VoucherNotApplicable
from cartflow.repos.voucher_repo import VoucherRepo
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


def compute_discount(voucher: Voucher, subtotal: Decimal) -> Decimal:
    """
    Raw discount of a voucher on a subtotal: never negative, never more than
    the subtotal. min_purchase / max_discount are enforced by the caller.
    """
    value = Decimal(str(voucher.discount_value))
    if voucher.discount_type == DiscountType.PERCENTAGE:
        amount = round_whole(subtotal * value / Decimal(100))
    else:
        amount = value
    return money(max(ZERO, min(amount, subtotal)))


class VoucherEngine:
    """
    Voucher eligibility and discount math for a checkout.
    Only one voucher is held per checkout, selecting another replaces it.
    """

    def __init__(self, repo: VoucherRepo | None = None, catalog: list[Voucher] | None = None, clock=None):
        self.repo = repo
        self._catalog = catalog
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def catalog(self) -> list[Voucher]:
        if self._catalog is not None:
            return list(self._catalog)
        if self.repo is None:
            return []
        try:
            return [Voucher.model_validate(v) for v in self.repo.list_active()]
        except SQLAlchemyError as e:
            #no vouchers is a valid checkout, do not block on it
            logger.warning(f"Voucher catalog unavailable: {e}")
            return []

    def eligible_vouchers(self, now: datetime | None = None) -> list[Voucher]:
        now = now or self.clock()
        return [v for v in self.catalog() if v.is_eligible(now)]

    def applicable_vouchers(self, seller_id: str | None, now: datetime | None = None) -> list[Voucher]:
        """Eligible vouchers of the checkout's seller; every eligible one when the seller is unknown."""
        eligible = self.eligible_vouchers(now)
        if seller_id is None:
            return eligible
        return [v for v in eligible if v.seller_id == seller_id]

    def validate_selection(
        self,
        voucher_id: int,
        subtotal: Decimal,
        seller_id: str | None,
        now: datetime | None = None,
    ) -> Voucher:
        voucher = next(
            (v for v in self.applicable_vouchers(seller_id, now) if v.id == voucher_id),
            None,
        )
        if voucher is None:
            raise VoucherNotApplicable(f"Voucher {voucher_id} is not available for this checkout")

        if voucher.min_purchase is not None and subtotal < voucher.min_purchase:
            raise VoucherNotApplicable(
                f"Voucher {voucher.code} needs a minimum purchase of {money(voucher.min_purchase)}"
            )
        return voucher

    def discount_for(self, voucher: Voucher | None, subtotal: Decimal) -> Decimal:
        if voucher is None or subtotal <= ZERO:
            return ZERO
        # cart may have shrunk below the minimum after the voucher was picked
        if voucher.min_purchase is not None and subtotal < voucher.min_purchase:
            return ZERO
        amount = compute_discount(voucher, subtotal)
        if voucher.max_discount is not None:
            amount = min(amount, money(voucher.max_discount))
        return amount
