# cartflow/services/cart_store.py
from decimal import Decimal
from typing import Callable, Iterable

from cartflow.domain.entities import CartItem, CartSummary, Identity, ZERO
from cartflow.domain.errors import LineNotFound, OutOfStock
from cartflow.domain.results import WriteResult
from cartflow.services.local_cache import LocalCartCache
from cartflow.services.cart_mirror import SqlCartMirror
from cartflow.services.scope import RehydrationTicket
from cartflow.services.stock_policy import clamp_quantity, merge_quantity, is_out_of_stock
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[list[CartItem]], None]


class CartStore:
    """
    Authoritative in-memory cart for the current identity.

    Every mutation is applied locally first, then written to two sinks:
    - the local cache (per-identity snapshot, read back on identity change)
    - the remote mirror (best effort, eventually consistent)
    Sink failures never undo the local change; they are returned as
    WriteResult values and kept in `failed_writes` for inspection.
    """

    MAX_TRACKED_FAILURES = 50

    def __init__(
        self,
        cache: LocalCartCache,
        mirror: SqlCartMirror,
        identity: Identity | None = None,
    ):
        self.cache = cache
        self.mirror = mirror
        self.identity = identity or Identity.guest()
        self.failed_writes: list[WriteResult] = []

        self._items: dict[str, CartItem] = {}
        self._revision = 0
        self._pending: RehydrationTicket | None = None
        self._listeners: list[Listener] = []

    # queries
    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def count(self) -> int:
        return sum(i.quantity for i in self._items.values())

    def get(self, product_id: str) -> CartItem | None:
        return self._items.get(str(product_id))

    def selection(self, product_ids: Iterable[str] | None = None) -> list[CartItem]:
        """Lines for the given ids in cart order, or the whole cart when ids is None."""
        if product_ids is None:
            return self.items
        wanted = {str(pid) for pid in product_ids}
        return [i for i in self._items.values() if i.product_id in wanted]

    def subtotal(self, product_ids: Iterable[str] | None = None) -> Decimal:
        return sum((i.line_total for i in self.selection(product_ids)), ZERO)

    def totals(self, product_ids: Iterable[str] | None = None) -> CartSummary:
        lines = self.selection(product_ids)
        return CartSummary(
            subtotal=sum((i.line_total for i in lines), ZERO),
            item_count=sum(i.quantity for i in lines),
            line_count=len(lines),
        )

    # observers
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.items
        for listener in list(self._listeners):
            listener(snapshot)

    # commands
    def add(self, item: CartItem, qty: int = 1) -> CartItem:
        line = self._merge(item, qty)
        self._committed(self.mirror.upsert(self.identity, line))
        logger.info(f"Cart {self.identity.cache_key}: {line.product_id} x{line.quantity}")
        return line

    def set_quantity(self, product_id: str, qty: int) -> CartItem:
        current = self._items.get(str(product_id))
        if current is None:
            raise LineNotFound(f"Product {product_id} is not in the cart")

        line = current.model_copy(update={"quantity": clamp_quantity(qty, current.stock_limit)})
        self._items[line.product_id] = line
        self._committed(self.mirror.upsert(self.identity, line))
        return line

    def remove(self, product_id: str) -> bool:
        if self._items.pop(str(product_id), None) is None:
            return False
        self._committed(self.mirror.delete(self.identity, str(product_id)))
        return True

    def clear(self) -> None:
        self._items = {}
        self._committed(self.mirror.clear(self.identity))
        logger.info(f"Cart {self.identity.cache_key} cleared")

    def _merge(self, item: CartItem, qty: int) -> CartItem:
        if is_out_of_stock(item.stock_limit):
            raise OutOfStock(f"{item.title} is out of stock")

        existing = self._items.get(item.product_id)
        if existing is not None:
            quantity = merge_quantity(existing.quantity, qty, item.stock_limit)
        else:
            quantity = clamp_quantity(qty, item.stock_limit)

        #latest catalog snapshot wins (price, stock), position in the cart is kept
        line = item.model_copy(update={"quantity": quantity})
        self._items[line.product_id] = line
        return line

    def _committed(self, mirror_result: WriteResult) -> None:
        self._revision += 1
        self._record(self.cache.save(self.identity, self.items))
        self._record(mirror_result)
        self._notify()

    def _record(self, result: WriteResult) -> None:
        # sink failures are accepted, local state stays authoritative
        if result.failed_write:
            self.failed_writes.append(result)
            del self.failed_writes[:-self.MAX_TRACKED_FAILURES]

    # identity transitions
    def switch_identity(self, identity: Identity) -> RehydrationTicket:
        """
        Replace the cart with the local cache of `identity` and issue a ticket
        for the remote reload. Nothing from the previous identity is carried over.
        """
        if self._pending is not None:
            self._pending.cancel()

        self.identity = identity
        self._items = {}
        for cached in self.cache.load(identity):
            self._reapply(cached)

        self._revision += 1
        ticket = RehydrationTicket(identity=identity, revision=self._revision)
        self._pending = None if identity.is_guest else ticket
        if identity.is_guest:
            ticket.cancel()

        logger.info(f"Cart switched to {identity.cache_key} with {len(self._items)} cached lines")
        self._notify()
        return ticket

    def apply_remote(self, ticket: RehydrationTicket, remote_items: list[CartItem] | None) -> bool:
        """
        Replace the cart with the remote mirror contents. Dropped when the ticket
        was cancelled, belongs to another identity, or local edits happened
        after it was issued; in those cases local state wins.
        """
        if ticket.cancelled or ticket is not self._pending or ticket.identity != self.identity:
            logger.info(f"Ignoring stale remote cart for {ticket.identity.cache_key}")
            return False

        self._pending = None
        if self._revision != ticket.revision:
            ticket.cancel()
            logger.info(f"Local edits on {self.identity.cache_key} since load, remote cart ignored")
            return False

        if remote_items is None:
            return False

        self._items = {}
        for remote in remote_items:
            self._reapply(remote)

        self._revision += 1
        self._record(self.cache.save(self.identity, self.items))
        logger.info(f"Cart {self.identity.cache_key} rehydrated from remote ({len(self._items)} lines)")
        self._notify()
        return True

    def _reapply(self, line: CartItem) -> None:
        try:
            self._merge(line, line.quantity)
        except OutOfStock:
            logger.warning(f"Dropping out of stock line {line.product_id} from {self.identity.cache_key}")
