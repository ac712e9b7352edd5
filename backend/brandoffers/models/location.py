"""Location (point of sale of a brand) model."""

from sqlalchemy import Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from brandoffers.database import Base
from brandoffers.models.types import IdSetType, LinkedIds, generate_id, utc_timestamp


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("brand_id", "name_lower", name="uq_locations_brand_name_lower"),
        Index("idx_locations_brand_name_lower", "brand_id", "name_lower", "id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    # No foreign key: deleting a brand does not cascade to its locations.
    brand_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_lower: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    # offer_ids and has_offer are written only by the link coordinator.
    offer_ids: Mapped[LinkedIds] = mapped_column(IdSetType, nullable=False, default=LinkedIds)
    has_offer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_timestamp)
