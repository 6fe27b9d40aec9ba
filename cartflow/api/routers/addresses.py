# cartflow/api/routers/addresses.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cartflow.api.deps import get_geocoder, http_error
from cartflow.data.database import get_db
from cartflow.domain.errors import CheckoutError
from cartflow.domain.schemas import AddressIn, AddressOut, RenameIn
from cartflow.services.address_resolver import AddressResolver
from cartflow.services.geocoding_client import GeocodingClient

router = APIRouter(prefix="/addresses", tags=["addresses"])


def get_service(db: Session, geocoder: GeocodingClient):
    return AddressResolver(db, geocoder)


@router.get("/", response_model=List[AddressOut])
def list_addresses(
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
):
    return get_service(db, geocoder).list_saved(buyer_id)


@router.post("/", response_model=AddressOut, status_code=201)
def create_address(
    payload: AddressIn,
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
):
    svc = get_service(db, geocoder)
    return svc.create(buyer_id, payload.to_address(), label=payload.label, make_default=payload.make_default)


@router.patch("/{address_id}", response_model=AddressOut)
def rename_address(
    address_id: int,
    payload: RenameIn,
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
):
    try:
        return get_service(db, geocoder).rename(buyer_id, address_id, payload.label)
    except CheckoutError as e:
        raise http_error(e)


@router.post("/{address_id}/default", response_model=AddressOut)
def set_default_address(
    address_id: int,
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
):
    try:
        return get_service(db, geocoder).set_default(buyer_id, address_id)
    except CheckoutError as e:
        raise http_error(e)


@router.delete("/{address_id}", status_code=204)
def delete_address(
    address_id: int,
    buyer_id: str = Query(...),
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
):
    if not get_service(db, geocoder).soft_delete(buyer_id, address_id):
        raise HTTPException(status_code=404, detail="Address not found")
