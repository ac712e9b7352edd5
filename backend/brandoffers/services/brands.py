"""Brand registry: brand identity and case-insensitive name uniqueness."""

from brandoffers.errors import ConflictError
from brandoffers.models import Brand
from brandoffers.models.types import generate_id, utc_timestamp
from brandoffers.services.pagination import Page
from brandoffers.services.registry import Registry


def _name_taken(name: str | None) -> str:
    return f'Brand with name "{name}" already exists'


class BrandRegistry(Registry):
    model = Brand
    label = "Brand"

    async def find_by_name_lower(self, name_lower: str) -> Brand | None:
        return await self._store.find_one(Brand, name_lower=name_lower)

    async def list(self, limit: int | None = None, cursor: str | None = None) -> Page[Brand]:
        return await self._list({}, limit, cursor)

    async def create(self, name: str, description: str = "") -> Brand:
        if await self.find_by_name_lower(name.lower()):
            raise ConflictError(_name_taken(name))

        now = utc_timestamp()
        brand = Brand(
            id=generate_id(),
            name=name,
            name_lower=name.lower(),
            description=description,
            created_at=now,
            updated_at=now,
        )
        return await self._insert(brand, _name_taken(name))

    async def update(
        self,
        brand_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Brand:
        brand = await self.get(brand_id)

        changes = {}
        if name is not None and name != brand.name:
            existing = await self.find_by_name_lower(name.lower())
            if existing and existing.id != brand.id:
                raise ConflictError(_name_taken(name))
            changes.update(name=name, name_lower=name.lower())
        if description is not None:
            changes["description"] = description

        return await self._write_fields(brand, changes, _name_taken(name))

    async def delete(self, brand_id: str) -> None:
        # Locations and offers of the brand are left in place.
        await self._delete(brand_id, None, f"Brand with id {brand_id} could not be deleted")
