"""Application services."""

from brandoffers.services.brands import BrandRegistry
from brandoffers.services.link_audit import LinkViolation, audit_links
from brandoffers.services.link_coordinator import LinkCoordinator
from brandoffers.services.locations import LocationRegistry
from brandoffers.services.offers import OfferRegistry
from brandoffers.services.pagination import Page

__all__ = [
    "BrandRegistry",
    "LinkCoordinator",
    "LinkViolation",
    "LocationRegistry",
    "OfferRegistry",
    "Page",
    "audit_links",
]
