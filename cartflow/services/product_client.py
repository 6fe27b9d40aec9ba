# cartflow/services/product_client.py
from decimal import Decimal

import requests
from requests import RequestException

from cartflow.domain.entities import CartItem
from cartflow.domain.errors import CatalogUnavailable
from cartflow.utils.retry import http_retry
from cartflow.utils.settings import PRODUCT_SERVICE_URL, HTTP_TIMEOUT_SECONDS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Read-only catalog access; gives the snapshot a line is added to the cart with."""

    def __init__(self, base_url: str | None = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def fetch_product(self, product_id: str) -> dict:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def fetch_snapshot(self, product_id: str) -> CartItem:
        """Raises CatalogUnavailable when the product cannot be read or parsed."""
        try:
            p = self.fetch_product(product_id)
            return CartItem(
                product_id=str(p["id"]),
                title=p.get("title") or p.get("name") or "",
                unit_price=Decimal(str(p["price"])),
                original_price=Decimal(str(p["original_price"])) if p.get("original_price") is not None else None,
                stock_limit=p.get("stock_qty"),
                weight_kg=Decimal(str(p.get("weight_kg") or 0)),
                seller_id=str(p["seller_id"]) if p.get("seller_id") is not None else None,
                image_ref=p.get("image"),
                color_variant=p.get("color"),
            )
        except RequestException as e:
            raise CatalogUnavailable(f"Catalog unavailable: {e}") from e
        except (KeyError, TypeError, AttributeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Unreadable catalog entry for product {product_id}: {e}")
            raise CatalogUnavailable(f"Catalog returned an unreadable product {product_id}") from e
