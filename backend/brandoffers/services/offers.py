"""Offer registry.

Owns offer identity, brand membership and per-brand name uniqueness.
``location_ids`` and ``locations_total`` belong to the link coordinator.
"""

from brandoffers.errors import ConflictError
from brandoffers.models import LinkedIds, Offer
from brandoffers.models.types import generate_id, utc_timestamp
from brandoffers.record_store import Equals
from brandoffers.services.brands import BrandRegistry
from brandoffers.services.pagination import Page
from brandoffers.services.registry import Registry


def _name_taken(name: str | None) -> str:
    return f'Offer with name "{name}" already exists for this brand'


class OfferRegistry(Registry):
    model = Offer
    label = "Offer"

    def __init__(self, store, brands: BrandRegistry):
        super().__init__(store)
        self._brands = brands

    async def find_by_brand_and_name(self, brand_id: str, name: str) -> Offer | None:
        return await self._store.find_one(Offer, brand_id=brand_id, name=name)

    async def list_by_brand(
        self, brand_id: str, limit: int | None = None, cursor: str | None = None
    ) -> Page[Offer]:
        return await self._list({"brand_id": brand_id}, limit, cursor)

    async def create(self, brand_id: str, name: str, description: str) -> Offer:
        await self._brands.get(brand_id)

        if await self.find_by_brand_and_name(brand_id, name):
            raise ConflictError(_name_taken(name))

        now = utc_timestamp()
        offer = Offer(
            id=generate_id(),
            brand_id=brand_id,
            name=name,
            name_lower=name.lower(),
            description=description,
            location_ids=LinkedIds(),
            locations_total=0,
            created_at=now,
            updated_at=now,
        )
        return await self._insert(offer, _name_taken(name))

    async def update(
        self,
        offer_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Offer:
        offer = await self.get(offer_id)

        changes = {}
        if name is not None and name != offer.name:
            existing = await self.find_by_brand_and_name(offer.brand_id, name)
            if existing and existing.id != offer.id:
                raise ConflictError(_name_taken(name))
            changes.update(name=name, name_lower=name.lower())
        if description is not None:
            changes["description"] = description

        return await self._write_fields(offer, changes, _name_taken(name))

    async def delete(self, offer_id: str) -> None:
        await self._delete(
            offer_id,
            Equals("locations_total", 0),
            f"Offer with id {offer_id} is still linked to locations; unlink them first",
        )
