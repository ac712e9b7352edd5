"""API routes for locations and the offers applied to them."""

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from brandoffers.api.common import (
    MAX_PAGE_SIZE,
    ApiModel,
    IdList,
    get_link_coordinator,
    get_location_registry,
)
from brandoffers.api.offers import OfferResponse
from brandoffers.services import LinkCoordinator, LocationRegistry

router = APIRouter(prefix="/locations", tags=["locations"])


class LocationResponse(ApiModel):
    id: str
    brand_id: str
    name: str
    address: str
    offer_ids: IdList = []
    has_offer: bool
    created_at: str
    updated_at: str


class LocationPage(ApiModel):
    items: list[LocationResponse]
    next_cursor: str | None = None


class LocationCreateRequest(ApiModel):
    brand_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1)


class LocationUpdateRequest(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    address: str | None = Field(None, min_length=1)


@router.get("", response_model=LocationPage)
async def list_locations(
    brand_id: str = Query(..., alias="brandId"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    cursor: str | None = Query(None),
    locations: LocationRegistry = Depends(get_location_registry),
):
    return LocationPage.model_validate(await locations.list_by_brand(brand_id, limit, cursor))


@router.post("", response_model=LocationResponse, status_code=201)
async def create_location(
    data: LocationCreateRequest,
    locations: LocationRegistry = Depends(get_location_registry),
):
    return await locations.create(data.brand_id, data.name, data.address)


@router.get("/{location_id}", response_model=LocationResponse)
async def get_location(
    location_id: str,
    locations: LocationRegistry = Depends(get_location_registry),
):
    return await locations.get(location_id)


@router.put("/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: str,
    data: LocationUpdateRequest,
    locations: LocationRegistry = Depends(get_location_registry),
):
    return await locations.update(location_id, name=data.name, address=data.address)


@router.delete("/{location_id}", status_code=204)
async def delete_location(
    location_id: str,
    locations: LocationRegistry = Depends(get_location_registry),
):
    await locations.delete(location_id)


# --- Offer links (same operation as /offers/{id}/locations/{id}) ---

@router.post("/{location_id}/offers/{offer_id}", response_model=OfferResponse, status_code=201)
async def add_offer(
    location_id: str,
    offer_id: str,
    links: LinkCoordinator = Depends(get_link_coordinator),
):
    return await links.link_offer_to_location(offer_id, location_id)


@router.delete("/{location_id}/offers/{offer_id}", status_code=204)
async def remove_offer(
    location_id: str,
    offer_id: str,
    links: LinkCoordinator = Depends(get_link_coordinator),
):
    await links.unlink_offer_from_location(offer_id, location_id)
