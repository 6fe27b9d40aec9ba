# cartflow/services/geocoding_client.py
import requests
from requests import RequestException

from cartflow.domain.entities import Location
from cartflow.domain.errors import AddressNotFound, GeocodeServiceError
from cartflow.utils.retry import http_retry
from cartflow.utils.settings import GEOCODER_URL, GEOCODER_API_KEY, HTTP_TIMEOUT_SECONDS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class GeocodingClient:
    """
    HTTP geocoder. Expects GET /geocode?q=... answering
    {"results": [{"lat": .., "lng": .., "formatted_address": ..}, ...]}.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or GEOCODER_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else GEOCODER_API_KEY
        self.timeout = timeout

    @http_retry()
    def _get(self, address: str) -> requests.Response:
        url = f"{self.base_url}/geocode"
        logger.info(f"GeocodingClient GET {url} q={address!r}")
        return requests.get(
            url,
            params={"q": address, "key": self.api_key},
            timeout=self.timeout,
        )

    def geocode(self, address: str) -> Location:
        try:
            resp = self._get(address)
            resp.raise_for_status()
            results = resp.json().get("results") or []
            first = results[0] if results else {}
            lat, lng = first.get("lat"), first.get("lng")
            if lat is None or lng is None:
                raise AddressNotFound(f"No coordinates found for {address!r}")
            return Location(
                lat=float(lat),
                lng=float(lng),
                formatted_address=first.get("formatted_address") or address,
            )
        except (RequestException, ValueError, TypeError, AttributeError, KeyError) as e:
            raise GeocodeServiceError(f"Geocoding service failed: {e}") from e
