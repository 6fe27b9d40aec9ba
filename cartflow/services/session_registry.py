# cartflow/services/session_registry.py
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from cartflow.domain.entities import Identity
from cartflow.services.cart_store import CartStore
from cartflow.services.checkout_wizard import CheckoutWizard
from cartflow.services.identity_bridge import IdentityBridge
from cartflow.utils.settings import SESSION_IDLE_TTL_SECONDS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CartSession:
    """Cart, identity watcher and running checkout of one client session."""

    session_id: str
    store: CartStore
    bridge: IdentityBridge
    wizard: CheckoutWizard | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)
    last_seen: float = 0.0

    def identity_for(self, buyer_id: str | None) -> Identity:
        return Identity.for_session(buyer_id, self.session_id)

    def close(self) -> None:
        self.bridge.close()
        if self.wizard is not None:
            self.wizard.abandon()


class SessionRegistry:
    """
    In-process map of session id -> CartSession. A new session starts as a
    guest of its own, with whatever that session's guest cache holds.
    Sessions not seen for `idle_ttl` seconds are closed and forgotten.
    """

    def __init__(
        self,
        store_factory: Callable[[], CartStore],
        idle_ttl: float = SESSION_IDLE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store_factory = store_factory
        self.idle_ttl = idle_ttl
        self.clock = clock
        self._sessions: dict[str, CartSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> CartSession:
        now = self.clock()
        with self._lock:
            expired = self._pop_idle(now, keep=session_id)
            session = self._sessions.get(session_id)
            if session is None:
                store = self.store_factory()
                session = CartSession(session_id=session_id, store=store, bridge=IdentityBridge(store))
                session.bridge.on_identity_change(session.identity_for(None))
                self._sessions[session_id] = session
                logger.info(f"New cart session {session_id}")
            session.last_seen = now

        for stale in expired:
            stale.close()
        return session

    def drop(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info(f"Cart session {session_id} closed")
        return True

    def _pop_idle(self, now: float, keep: str) -> list[CartSession]:
        idle = [
            sid for sid, s in self._sessions.items()
            if sid != keep and now - s.last_seen > self.idle_ttl
        ]
        if idle:
            logger.info(f"Evicting {len(idle)} idle cart session(s)")
        return [self._sessions.pop(sid) for sid in idle]
