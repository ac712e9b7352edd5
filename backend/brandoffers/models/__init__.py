"""SQLAlchemy models."""

from brandoffers.models.brand import Brand
from brandoffers.models.location import Location
from brandoffers.models.offer import Offer
from brandoffers.models.types import LinkedIds

__all__ = [
    "Brand",
    "LinkedIds",
    "Location",
    "Offer",
]
