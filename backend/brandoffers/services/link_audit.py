"""Consistency audit for offer/location links."""

import logging
from dataclasses import dataclass

from brandoffers.models import Location, Offer
from brandoffers.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LinkViolation:
    table: str
    key: str
    problem: str


async def audit_links(store: RecordStore) -> list[LinkViolation]:
    """Check every offer and location against the link invariants.

    Reports counters that disagree with their id sets, ``has_offer`` flags
    that disagree with ``offer_ids``, and links recorded on one side only.
    The scan is not a snapshot, so run it while the service is idle.
    """
    violations: list[LinkViolation] = []
    offer_links: dict[str, set[str]] = {}
    location_links: dict[str, set[str]] = {}

    async for offer in store.scan(Offer):
        offer_links[offer.id] = set(offer.location_ids)
        if offer.locations_total != len(offer.location_ids):
            violations.append(
                LinkViolation(
                    "offers",
                    offer.id,
                    f"locations_total={offer.locations_total} but "
                    f"{len(offer.location_ids)} linked locations",
                )
            )

    async for location in store.scan(Location):
        location_links[location.id] = set(location.offer_ids)
        if location.has_offer != bool(location.offer_ids):
            violations.append(
                LinkViolation(
                    "locations",
                    location.id,
                    f"has_offer={location.has_offer} with {len(location.offer_ids)} linked offers",
                )
            )

    for offer_id, location_ids in offer_links.items():
        for location_id in location_ids:
            if offer_id not in location_links.get(location_id, ()):
                violations.append(
                    LinkViolation("offers", offer_id, f"location {location_id} does not list this offer")
                )

    for location_id, offer_ids in location_links.items():
        for offer_id in offer_ids:
            if location_id not in offer_links.get(offer_id, ()):
                violations.append(
                    LinkViolation("locations", location_id, f"offer {offer_id} does not list this location")
                )

    if violations:
        logger.warning("Link audit found %d violations", len(violations))
    return violations
