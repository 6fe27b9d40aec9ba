# cartflow/services/shipping_quote_client.py
from decimal import Decimal

import requests
from requests import RequestException

from cartflow.domain.entities import Location, ParcelClass, ShippingQuote
from cartflow.domain.errors import QuoteUnavailable
from cartflow.utils.retry import http_retry
from cartflow.utils.settings import (
    COURIER_QUOTE_URL,
    COURIER_API_KEY,
    HTTP_TIMEOUT_SECONDS,
    LIGHT_PARCEL_MAX_KG,
    MEDIUM_PARCEL_MAX_KG,
)
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)

LIGHT = ParcelClass(vehicle_class="MOTORCYCLE", weight_band="LIGHT")
MEDIUM = ParcelClass(vehicle_class="VAN", weight_band="MEDIUM")
HEAVY = ParcelClass(vehicle_class="TRUCK", weight_band="HEAVY")


def classify_parcel(total_weight_kg) -> ParcelClass:
    weight = Decimal(str(total_weight_kg))
    if weight <= LIGHT_PARCEL_MAX_KG:
        return LIGHT
    if weight <= MEDIUM_PARCEL_MAX_KG:
        return MEDIUM
    return HEAVY


class CourierQuoteClient:
    """
    Delivery price and distance from the courier quotation API:
    POST /quotations -> {"quotation_id": .., "fee": .., "distance_m": ..}
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or COURIER_QUOTE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else COURIER_API_KEY
        self.timeout = timeout

    @http_retry()
    def _post(self, body: dict) -> requests.Response:
        url = f"{self.base_url}/quotations"
        logger.info(f"CourierQuoteClient POST {url} service={body['service_type']}")
        return requests.post(
            url,
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )

    def request_quote(self, pickup: Location, dropoff: Location, parcel: ParcelClass) -> ShippingQuote:
        body = {
            "service_type": parcel.vehicle_class,
            "weight_band": parcel.weight_band,
            "stops": [
                {"lat": pickup.lat, "lng": pickup.lng, "address": pickup.formatted_address},
                {"lat": dropoff.lat, "lng": dropoff.lng, "address": dropoff.formatted_address},
            ],
        }
        try:
            resp = self._post(body)
            resp.raise_for_status()
            data = resp.json()
            return ShippingQuote(
                fee_amount=Decimal(str(data["fee"])),
                distance_meters=int(data.get("distance_m") or 0),
                provider_reference=data.get("quotation_id"),
                dropoff=dropoff,
                parcel=parcel,
            )
        except (RequestException, ValueError, TypeError, AttributeError, KeyError, ArithmeticError) as e:
            logger.warning(f"Courier quote failed for {dropoff.formatted_address!r}: {e}")
            raise QuoteUnavailable(f"Delivery quote unavailable: {e}") from e
