"""API routes for offers and their location links."""

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from brandoffers.api.common import (
    MAX_PAGE_SIZE,
    ApiModel,
    IdList,
    get_link_coordinator,
    get_offer_registry,
)
from brandoffers.services import LinkCoordinator, OfferRegistry

router = APIRouter(prefix="/offers", tags=["offers"])


class OfferResponse(ApiModel):
    id: str
    brand_id: str
    name: str
    description: str
    location_ids: IdList = []
    locations_total: int
    created_at: str
    updated_at: str


class OfferPage(ApiModel):
    items: list[OfferResponse]
    next_cursor: str | None = None


class OfferCreateRequest(ApiModel):
    brand_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)


class OfferUpdateRequest(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)


@router.get("", response_model=OfferPage)
async def list_offers(
    brand_id: str = Query(..., alias="brandId"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    cursor: str | None = Query(None),
    offers: OfferRegistry = Depends(get_offer_registry),
):
    return OfferPage.model_validate(await offers.list_by_brand(brand_id, limit, cursor))


@router.post("", response_model=OfferResponse, status_code=201)
async def create_offer(
    data: OfferCreateRequest,
    offers: OfferRegistry = Depends(get_offer_registry),
):
    return await offers.create(data.brand_id, data.name, data.description)


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: str, offers: OfferRegistry = Depends(get_offer_registry)):
    return await offers.get(offer_id)


@router.put("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: str,
    data: OfferUpdateRequest,
    offers: OfferRegistry = Depends(get_offer_registry),
):
    return await offers.update(offer_id, name=data.name, description=data.description)


@router.delete("/{offer_id}", status_code=204)
async def delete_offer(offer_id: str, offers: OfferRegistry = Depends(get_offer_registry)):
    await offers.delete(offer_id)


# --- Location links ---

@router.post("/{offer_id}/locations/{location_id}", response_model=OfferResponse, status_code=201)
async def link_location(
    offer_id: str,
    location_id: str,
    links: LinkCoordinator = Depends(get_link_coordinator),
):
    return await links.link_offer_to_location(offer_id, location_id)


@router.delete("/{offer_id}/locations/{location_id}", response_model=OfferResponse)
async def unlink_location(
    offer_id: str,
    location_id: str,
    links: LinkCoordinator = Depends(get_link_coordinator),
):
    return await links.unlink_offer_from_location(offer_id, location_id)
