# cartflow/services/address_resolver.py
from sqlalchemy.orm import Session

from cartflow.data.models.saved_address import SavedAddressModel
from cartflow.domain.entities import Location, SavedAddress, ShippingAddress
from cartflow.domain.errors import CheckoutError
from cartflow.repos.address_repo import AddressRepo
from cartflow.services.geocoding_client import GeocodingClient
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class AddressResolver:
    """
    Turns shipping addresses into dropoff coordinates and manages the
    buyer's saved addresses (soft delete only, at most one default).
    """

    def __init__(self, db: Session | None, geocoder: GeocodingClient):
        self.repo = AddressRepo(db) if db is not None else None
        self.geocoder = geocoder

    def geocode(self, freeform_address: str) -> Location:
        """Raises AddressNotFound or GeocodeServiceError."""
        logger.info(f"Resolving address {freeform_address!r}")
        return self.geocoder.geocode(freeform_address)

    def resolve(self, address: ShippingAddress) -> ShippingAddress:
        if address.location is not None:
            return address
        location = self.geocode(address.freeform())
        return address.model_copy(update={"location": location})

    # saved addresses
    def _repo(self) -> AddressRepo:
        if self.repo is None:
            raise RuntimeError("AddressResolver was built without a database session")
        return self.repo

    def list_saved(self, buyer_id: str) -> list[SavedAddress]:
        return [SavedAddress.model_validate(a) for a in self._repo().list_active(buyer_id)]

    def get(self, buyer_id: str, address_id: int) -> SavedAddress:
        row = self._repo().get_active(buyer_id, address_id)
        if row is None:
            raise CheckoutError(f"Address {address_id} not found", code="saved_address_not_found")
        return SavedAddress.model_validate(row)

    def create(
        self,
        buyer_id: str,
        address: ShippingAddress,
        label: str = "Home Address",
        make_default: bool = False,
    ) -> SavedAddress:
        repo = self._repo()
        #first address of a buyer becomes the default one
        is_default = make_default or not repo.list_active(buyer_id)
        if is_default:
            repo.clear_default(buyer_id)

        location = address.location or self._locate(address)
        row = repo.add(
            SavedAddressModel(
                buyer_id=buyer_id,
                label=label or "Home Address",
                name=address.name,
                phone=address.phone or None,
                street=address.street,
                city=address.city,
                province=address.province or None,
                postal_code=address.postal_code or None,
                is_default=is_default,
                lat=location.lat if location else None,
                lng=location.lng if location else None,
                formatted_address=location.formatted_address if location else None,
            )
        )
        logger.info(f"Saved address {row.id} for buyer {buyer_id} (default={is_default})")
        return SavedAddress.model_validate(row)

    def _locate(self, address: ShippingAddress) -> Location | None:
        # saving works without coordinates, checkout geocodes again when they are missing
        try:
            return self.geocode(address.freeform())
        except CheckoutError as e:
            logger.warning(f"Saving address without coordinates: {e.message}")
            return None

    def rename(self, buyer_id: str, address_id: int, label: str) -> SavedAddress:
        repo = self._repo()
        row = repo.get_active(buyer_id, address_id)
        if row is None:
            raise CheckoutError(f"Address {address_id} not found", code="saved_address_not_found")
        row.label = label
        repo.commit()
        return SavedAddress.model_validate(row)

    def set_default(self, buyer_id: str, address_id: int) -> SavedAddress:
        repo = self._repo()
        row = repo.get_active(buyer_id, address_id)
        if row is None:
            raise CheckoutError(f"Address {address_id} not found", code="saved_address_not_found")
        repo.clear_default(buyer_id)
        row.is_default = True
        repo.commit()
        return SavedAddress.model_validate(row)

    def soft_delete(self, buyer_id: str, address_id: int) -> bool:
        repo = self._repo()
        row = repo.get_active(buyer_id, address_id)
        if row is None:
            return False
        repo.soft_delete(row)
        logger.info(f"Soft deleted address {address_id} of buyer {buyer_id}")
        return True
