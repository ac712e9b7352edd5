"""Offer (brand promotion applicable at some of its locations) model."""

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from brandoffers.database import Base
from brandoffers.models.types import IdSetType, LinkedIds, generate_id, utc_timestamp


class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = (
        UniqueConstraint("brand_id", "name", name="uq_offers_brand_name"),
        Index("idx_offers_brand_name_lower", "brand_id", "name_lower", "id"),
        CheckConstraint("locations_total >= 0", name="ck_offers_locations_total_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    brand_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Listing order only; offer names are unique per brand case-sensitively.
    name_lower: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # location_ids and locations_total are written only by the link coordinator.
    location_ids: Mapped[LinkedIds] = mapped_column(IdSetType, nullable=False, default=LinkedIds)
    locations_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_timestamp)
