# cartflow/services/payment_handoff.py
from dataclasses import dataclass

import requests
from requests import RequestException

from cartflow.domain.entities import PaymentMethod
from cartflow.domain.errors import PaymentSessionError
from cartflow.utils.retry import http_retry
from cartflow.utils.settings import PAYMENT_GATEWAY_URL, PAYMENT_API_KEY, HTTP_TIMEOUT_SECONDS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentGatewayClient:
    """Hosted checkout sessions: POST /checkout-sessions {"order_id": ..} -> {"checkout_url": ..}."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else PAYMENT_API_KEY
        self.timeout = timeout

    @http_retry()
    def _post(self, body: dict) -> requests.Response:
        url = f"{self.base_url}/checkout-sessions"
        logger.info(f"PaymentGatewayClient POST {url} order={body['order_id']}")
        return requests.post(
            url,
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )

    def create_checkout_session(self, order_id: int, payment_method: PaymentMethod) -> str:
        try:
            resp = self._post({"order_id": order_id, "payment_method": payment_method.value})
            resp.raise_for_status()
            url = resp.json().get("checkout_url")
        except (RequestException, ValueError, TypeError, AttributeError) as e:
            raise PaymentSessionError(f"Failed to start online payment: {e}") from e

        if not isinstance(url, str) or not url:
            raise PaymentSessionError("Payment gateway returned no checkout url")
        return url


@dataclass(frozen=True)
class Handoff:
    redirect_url: str | None = None
    error: PaymentSessionError | None = None

    @property
    def needs_redirect(self) -> bool:
        return self.redirect_url is not None


class PaymentHandoff:
    """Short-circuits cash on delivery, asks the gateway for a hosted page otherwise."""

    def __init__(self, gateway: PaymentGatewayClient):
        self.gateway = gateway

    def start(self, order_id: int, payment_method: PaymentMethod) -> Handoff:
        if payment_method == PaymentMethod.COD:
            return Handoff()

        try:
            url = self.gateway.create_checkout_session(order_id, payment_method)
        except PaymentSessionError as e:
            logger.error(f"Payment session for order {order_id} failed: {e}")
            return Handoff(error=e)
        return Handoff(redirect_url=url)
