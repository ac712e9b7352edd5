"""Dependencies and schema helpers shared by the API routers."""

from typing import Annotated

from fastapi import Depends
from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from brandoffers.config import get_settings
from brandoffers.record_store import RecordStore, get_store
from brandoffers.services import BrandRegistry, LinkCoordinator, LocationRegistry, OfferRegistry

# Upper bound of the ``limit`` query parameter; the registries clamp to the
# same setting.
MAX_PAGE_SIZE = get_settings().max_page_size


class ApiModel(BaseModel):
    """Wire models use camelCase keys; snake_case is accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# LinkedIds on the model side, a plain JSON array on the wire.
IdList = Annotated[list[str], BeforeValidator(lambda ids: list(ids or ()))]


# --- Dependencies ---

def get_brand_registry(store: RecordStore = Depends(get_store)) -> BrandRegistry:
    return BrandRegistry(store)


def get_location_registry(
    store: RecordStore = Depends(get_store),
    brands: BrandRegistry = Depends(get_brand_registry),
) -> LocationRegistry:
    return LocationRegistry(store, brands)


def get_offer_registry(
    store: RecordStore = Depends(get_store),
    brands: BrandRegistry = Depends(get_brand_registry),
) -> OfferRegistry:
    return OfferRegistry(store, brands)


def get_link_coordinator(
    store: RecordStore = Depends(get_store),
    offers: OfferRegistry = Depends(get_offer_registry),
    locations: LocationRegistry = Depends(get_location_registry),
) -> LinkCoordinator:
    return LinkCoordinator(store, offers, locations)
