# cartflow/services/identity_bridge.py
from cartflow.domain.entities import Identity
from cartflow.services.cart_store import CartStore
from cartflow.services.scope import RehydrationTicket
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class IdentityBridge:
    """
    Watches the identity supplied by the auth layer and rehydrates the cart
    whenever it changes: local cache first, then the remote mirror for
    authenticated buyers.

    With fetch_remote=False the remote step is left to the caller
    (complete()), e.g. when it runs in a background job.
    """

    def __init__(self, store: CartStore, fetch_remote: bool = True):
        self.store = store
        self.fetch_remote = fetch_remote
        self._current: Identity | None = None
        self._pending: RehydrationTicket | None = None

    def on_identity_change(self, identity: Identity) -> RehydrationTicket | None:
        if identity == self._current:
            return None

        logger.info(f"Identity change {self._current and self._current.cache_key} -> {identity.cache_key}")
        self._current = identity
        ticket = self.store.switch_identity(identity)
        if ticket.cancelled:
            self._pending = None
            return None

        self._pending = ticket
        if self.fetch_remote:
            self.complete(ticket)
        return ticket

    def complete(self, ticket: RehydrationTicket) -> bool:
        if ticket.cancelled:
            return False

        remote = self.store.mirror.fetch(ticket.identity)

        #scope may have been torn down while the fetch was running
        if ticket.cancelled:
            return False
        if ticket is self._pending:
            self._pending = None
        return self.store.apply_remote(ticket, remote)

    def close(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
