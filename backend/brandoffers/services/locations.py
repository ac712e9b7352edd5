"""Location registry.

Owns location identity, brand membership and per-brand name uniqueness.
The linked offer ids and the ``has_offer`` flag are read here but only ever
written by the link coordinator.
"""

from brandoffers.errors import ConflictError
from brandoffers.models import LinkedIds, Location
from brandoffers.models.types import generate_id, utc_timestamp
from brandoffers.record_store import Equals
from brandoffers.services.brands import BrandRegistry
from brandoffers.services.pagination import Page
from brandoffers.services.registry import Registry


def _name_taken(name: str | None) -> str:
    return f'Location with name "{name}" already exists for this brand'


class LocationRegistry(Registry):
    model = Location
    label = "Location"

    def __init__(self, store, brands: BrandRegistry):
        super().__init__(store)
        self._brands = brands

    async def find_by_brand_and_name(self, brand_id: str, name_lower: str) -> Location | None:
        return await self._store.find_one(Location, brand_id=brand_id, name_lower=name_lower)

    async def list_by_brand(
        self, brand_id: str, limit: int | None = None, cursor: str | None = None
    ) -> Page[Location]:
        return await self._list({"brand_id": brand_id}, limit, cursor)

    async def create(self, brand_id: str, name: str, address: str) -> Location:
        await self._brands.get(brand_id)

        if await self.find_by_brand_and_name(brand_id, name.lower()):
            raise ConflictError(_name_taken(name))

        now = utc_timestamp()
        location = Location(
            id=generate_id(),
            brand_id=brand_id,
            name=name,
            name_lower=name.lower(),
            address=address,
            offer_ids=LinkedIds(),
            has_offer=False,
            created_at=now,
            updated_at=now,
        )
        return await self._insert(location, _name_taken(name))

    async def update(
        self,
        location_id: str,
        *,
        name: str | None = None,
        address: str | None = None,
    ) -> Location:
        location = await self.get(location_id)

        changes = {}
        if name is not None and name != location.name:
            existing = await self.find_by_brand_and_name(location.brand_id, name.lower())
            if existing and existing.id != location.id:
                raise ConflictError(_name_taken(name))
            changes.update(name=name, name_lower=name.lower())
        if address is not None:
            changes["address"] = address

        return await self._write_fields(location, changes, _name_taken(name))

    async def delete(self, location_id: str) -> None:
        await self._delete(
            location_id,
            Equals("has_offer", False),
            f"Location with id {location_id} still has linked offers; unlink them first",
        )
