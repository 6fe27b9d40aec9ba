# cartflow/services/cart_mirror.py
from kombu.exceptions import OperationalError
from sqlalchemy.exc import SQLAlchemyError

from cartflow.celery_worker import celery_app
from cartflow.data.database import SessionLocal
from cartflow.domain.entities import CartItem, Identity
from cartflow.domain.results import WriteResult
from cartflow.repos.cart_repo import CartRepo
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class SqlCartMirror:
    """
    Remote copy of a buyer's cart in the database.
    - eventually consistent with the in-memory cart, never authoritative
    - writes return a WriteResult, they do not raise
    - guests have no remote copy
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def _write(self, identity: Identity, operation: str, fn) -> WriteResult:
        if identity.is_guest:
            return WriteResult.skipped(operation, "guest carts are not mirrored")

        db = self.session_factory()
        try:
            fn(CartRepo(db), identity.buyer_id)
            return WriteResult.ok(operation)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Cart mirror {operation} failed for buyer {identity.buyer_id}: {e}")
            return WriteResult.failed(operation, str(e))
        finally:
            db.close()

    def upsert(self, identity: Identity, item: CartItem) -> WriteResult:
        values = item.model_dump()
        return self._write(identity, "upsert", lambda repo, owner: repo.upsert_line(owner, values))

    def delete(self, identity: Identity, product_id: str) -> WriteResult:
        return self._write(identity, "delete", lambda repo, owner: repo.delete_line(owner, product_id))

    def clear(self, identity: Identity) -> WriteResult:
        return self._write(identity, "clear", lambda repo, owner: repo.delete_all(owner))

    def fetch(self, identity: Identity) -> list[CartItem] | None:
        """Remote lines for a buyer, or None when the mirror could not be read."""
        if identity.is_guest:
            return None

        db = self.session_factory()
        try:
            lines = CartRepo(db).list_lines(identity.buyer_id)
            return [CartItem.model_validate(line) for line in lines]
        except SQLAlchemyError as e:
            logger.error(f"Cart mirror read failed for buyer {identity.buyer_id}: {e}")
            return None
        finally:
            db.close()


@celery_app.task(name="cartflow.services.cart_mirror.upsert_cart_line_task")
def upsert_cart_line_task(buyer_id: str, item: dict):
    res = SqlCartMirror().upsert(Identity(buyer_id=buyer_id), CartItem.model_validate(item))
    return {"status": res.status.value, "reason": res.reason}


@celery_app.task(name="cartflow.services.cart_mirror.delete_cart_line_task")
def delete_cart_line_task(buyer_id: str, product_id: str):
    res = SqlCartMirror().delete(Identity(buyer_id=buyer_id), product_id)
    return {"status": res.status.value, "reason": res.reason}


@celery_app.task(name="cartflow.services.cart_mirror.clear_cart_lines_task")
def clear_cart_lines_task(buyer_id: str):
    res = SqlCartMirror().clear(Identity(buyer_id=buyer_id))
    return {"status": res.status.value, "reason": res.reason}


class CeleryCartMirror(SqlCartMirror):
    """Fire-and-forget variant: writes are handed to a celery worker, reads stay direct."""

    def _enqueue(self, identity: Identity, operation: str, task, *args) -> WriteResult:
        if identity.is_guest:
            return WriteResult.skipped(operation, "guest carts are not mirrored")
        try:
            task.delay(identity.buyer_id, *args)
        except OperationalError as e:
            logger.error(f"Could not enqueue cart mirror {operation} for buyer {identity.buyer_id}: {e}")
            return WriteResult.failed(operation, str(e))
        return WriteResult.queued(operation)

    def upsert(self, identity: Identity, item: CartItem) -> WriteResult:
        return self._enqueue(identity, "upsert", upsert_cart_line_task, item.model_dump(mode="json"))

    def delete(self, identity: Identity, product_id: str) -> WriteResult:
        return self._enqueue(identity, "delete", delete_cart_line_task, product_id)

    def clear(self, identity: Identity) -> WriteResult:
        return self._enqueue(identity, "clear", clear_cart_lines_task)
