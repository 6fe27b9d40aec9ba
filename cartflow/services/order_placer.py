# cartflow/services/order_placer.py
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cartflow.data.models.order import OrderModel
from cartflow.data.models.order_line import OrderLineModel
from cartflow.domain.entities import (
    CartItem,
    CheckoutTotals,
    OrderOutcome,
    OrderResult,
    PaymentFailurePolicy,
    PaymentMethod,
    ShippingSnapshot,
)
from cartflow.domain.errors import EmptyCheckout, OrderPersistenceError
from cartflow.repos.order_repo import OrderRepo
from cartflow.services.cart_store import CartStore
from cartflow.services.notification_service import NotificationService
from cartflow.services.payment_handoff import PaymentHandoff
from cartflow.utils.settings import PAYMENT_FAILURE_POLICY
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class OrderPlacer:
    """
    Turns a finished checkout into an order and hands it to payment.

    1. saves the order header (failure -> OrderPersistenceError, nothing else happens)
    2. saves one line per selected item that has a seller
    3. cash on delivery: clears the cart, done
    4. otherwise asks for a hosted payment page; a failed session does not
       undo the order, the outcome follows the configured PaymentFailurePolicy
    """

    def __init__(
        self,
        db: Session,
        cart: CartStore,
        handoff: PaymentHandoff,
        notifications: NotificationService | None = None,
        failure_policy: PaymentFailurePolicy | None = None,
    ):
        self.repo = OrderRepo(db)
        self.cart = cart
        self.handoff = handoff
        self.notifications = notifications or NotificationService()
        self.failure_policy = failure_policy or PaymentFailurePolicy(PAYMENT_FAILURE_POLICY)

    def place_order(
        self,
        items: list[CartItem],
        snapshot: ShippingSnapshot,
        totals: CheckoutTotals,
        voucher_code: str | None = None,
    ) -> OrderResult:
        if not items:
            raise EmptyCheckout("Nothing selected to order")

        buyer_id = self.cart.identity.buyer_id
        order_id = self._create_order(buyer_id, items, snapshot, totals, voucher_code)
        lines_created = self._create_lines(order_id, items, snapshot)

        self.notifications.send_order_notification(buyer_id, order_id)

        handoff = self.handoff.start(order_id, snapshot.payment_method)
        if snapshot.payment_method == PaymentMethod.COD:
            self.cart.clear()
            logger.info(f"Order {order_id} placed, cash on delivery")
            return OrderResult(
                order_id=order_id,
                outcome=OrderOutcome.PLACED,
                total=totals.total,
                lines_created=lines_created,
            )

        if handoff.needs_redirect:
            self.cart.clear()
            logger.info(f"Order {order_id} placed, redirecting to hosted payment")
            return OrderResult(
                order_id=order_id,
                outcome=OrderOutcome.REDIRECT,
                total=totals.total,
                redirect_url=handoff.redirect_url,
                lines_created=lines_created,
            )

        #order and lines already exist, the buyer must not be left stuck
        self.cart.clear()
        outcome = (
            OrderOutcome.PAYMENT_PENDING
            if self.failure_policy == PaymentFailurePolicy.SURFACE_PENDING
            else OrderOutcome.DEGRADED_SUCCESS
        )
        logger.warning(f"Order {order_id} kept without payment session ({outcome.value})")
        return OrderResult(
            order_id=order_id,
            outcome=outcome,
            total=totals.total,
            lines_created=lines_created,
            payment_error=handoff.error.message if handoff.error else None,
        )

    def _create_order(self, buyer_id, items, snapshot, totals, voucher_code) -> int:
        first = items[0]
        dropoff = snapshot.dropoff
        order = OrderModel(
            buyer_id=buyer_id,
            status="Pending",
            total_amount=totals.total,
            subtotal=totals.subtotal,
            shipping_fee=totals.shipping_fee,
            tax=totals.tax,
            discount=totals.discount,
            item_count=sum(i.quantity for i in items),
            summary_title=first.title,
            summary_image=first.image_ref,
            color=first.color_variant,
            voucher_code=voucher_code,
            payment_method=snapshot.payment_method.value,
            dropoff_lat=dropoff.lat if dropoff else None,
            dropoff_lng=dropoff.lng if dropoff else None,
            dropoff_address=dropoff.formatted_address if dropoff else None,
            courier_quotation_id=snapshot.quotation_id,
        )
        try:
            created = self.repo.create_order(order)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Order creation failed for buyer {buyer_id}: {e}")
            raise OrderPersistenceError("Failed to create order.") from e
        return created.id

    def _create_lines(self, order_id: int, items: list[CartItem], snapshot: ShippingSnapshot) -> int:
        # lines without a seller are skipped; the header total still covers them
        lines = [
            OrderLineModel(
                order_id=order_id,
                seller_id=item.seller_id,
                product_id=item.product_id,
                title=item.title,
                image=item.image_ref,
                quantity=item.quantity,
                unit_price=item.unit_price,
                shipping_fee=0,
                buyer_name=snapshot.buyer_name,
                buyer_address=snapshot.buyer_address,
                payment_method=snapshot.payment_method.value,
                status="Pending",
            )
            for item in items
            if item.seller_id
        ]
        skipped = len(items) - len(lines)
        if skipped:
            logger.info(f"Order {order_id}: {skipped} item(s) without seller, no line created")
        if not lines:
            return 0

        try:
            self.repo.create_order_lines(lines)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Order {order_id}: saving lines failed: {e}")
            return 0
        return len(lines)
