"""Linking offers to locations.

An offer is linked to a location when the location's ``offer_ids`` holds the
offer id and the offer's ``location_ids`` holds the location id. Both halves,
along with ``has_offer`` and ``locations_total``, change together through one
atomic store transaction; nothing else in the service writes those fields.

Each call first reads both records to reject bad requests with a precise
error (missing record, other brand, already linked / not linked). The read
is not authoritative: the same predicate is asserted again as the write-time
condition of the transaction, and that check decides the outcome when two
requests race on the same pair.
"""

import logging

from brandoffers.errors import (
    ConditionFailedError,
    ConflictError,
    LinkInconsistencyError,
    NotFoundError,
    ServiceError,
)
from brandoffers.models import Location, Offer
from brandoffers.models.types import utc_timestamp
from brandoffers.record_store import (
    AddToSet,
    AllOf,
    Contains,
    GreaterThan,
    Increment,
    NotContains,
    RecordStore,
    RemoveFromSet,
    SetField,
    SetNonEmpty,
    UpdateItem,
    snapshot,
)
from brandoffers.services.locations import LocationRegistry
from brandoffers.services.offers import OfferRegistry

logger = logging.getLogger(__name__)


def _offer_with(offer: Offer, **changes) -> Offer:
    """Detached copy of ``offer`` with ``changes`` applied."""
    values = snapshot(offer)
    values.update(changes)
    return Offer(**values)


class LinkCoordinator:
    def __init__(self, store: RecordStore, offers: OfferRegistry, locations: LocationRegistry):
        self._store = store
        self._offers = offers
        self._locations = locations

    async def _load_pair(self, offer_id: str, location_id: str) -> tuple[Offer, Location]:
        offer = await self._offers.get(offer_id)
        location = await self._locations.get(location_id)
        if location.brand_id != offer.brand_id:
            raise ConflictError("Cannot link offer to a location from a different brand")
        return offer, location

    async def link_offer_to_location(self, offer_id: str, location_id: str) -> Offer:
        """Link an offer to a location and return the offer as it now stands.

        Raises NotFoundError when either record is missing and ConflictError
        when the brands differ or the pair is already linked.

        The returned offer is the pre-write read plus this call's change. A
        concurrent link of the same offer to another location can commit in
        between, so ``locations_total`` and ``version`` may lag the stored
        record; re-read the offer when the exact count matters.
        """
        offer, location = await self._load_pair(offer_id, location_id)
        if offer_id in location.offer_ids:
            raise ConflictError(f"Offer {offer_id} is already linked to location {location_id}")

        now = utc_timestamp()
        items = [
            UpdateItem(
                Location,
                location_id,
                mutations=(
                    AddToSet("offer_ids", offer_id),
                    SetNonEmpty("has_offer", "offer_ids"),
                    SetField("updated_at", now),
                ),
                condition=NotContains("offer_ids", offer_id),
            ),
            UpdateItem(
                Offer,
                offer_id,
                mutations=(
                    AddToSet("location_ids", location_id),
                    Increment("locations_total", 1),
                    SetField("updated_at", now),
                ),
                condition=NotContains("location_ids", location_id),
            ),
        ]

        try:
            await self._store.transact(items)
        except ConditionFailedError as exc:
            raise self._rejection(
                exc,
                offer_id,
                location_id,
                both_failed=ConflictError(
                    f"Offer {offer_id} is already linked to location {location_id}"
                ),
            ) from exc

        logger.info("Linked offer %s to location %s", offer_id, location_id)
        # The transaction succeeded, so the new state is the read state plus
        # the delta; no need to read the offer back.
        return _offer_with(
            offer,
            location_ids=offer.location_ids.with_id(location_id),
            locations_total=offer.locations_total + 1,
            updated_at=now,
            version=offer.version + 1,
        )

    async def unlink_offer_from_location(self, offer_id: str, location_id: str) -> Offer:
        """Remove the link between an offer and a location.

        Raises NotFoundError when either record is missing or the pair is not
        linked, ConflictError when the brands differ. As with linking, the
        returned offer is built from the pre-write read and may lag concurrent
        changes to the offer's other links.
        """
        offer, location = await self._load_pair(offer_id, location_id)
        if offer_id not in location.offer_ids:
            raise NotFoundError(f"Offer {offer_id} is not linked to location {location_id}")

        now = utc_timestamp()
        items = [
            UpdateItem(
                Location,
                location_id,
                mutations=(
                    RemoveFromSet("offer_ids", offer_id),
                    # Other offers may still apply to this location.
                    SetNonEmpty("has_offer", "offer_ids"),
                    SetField("updated_at", now),
                ),
                condition=Contains("offer_ids", offer_id),
            ),
            UpdateItem(
                Offer,
                offer_id,
                mutations=(
                    RemoveFromSet("location_ids", location_id),
                    Increment("locations_total", -1, floor=0),
                    SetField("updated_at", now),
                ),
                condition=AllOf(
                    GreaterThan("locations_total", 0),
                    Contains("location_ids", location_id),
                ),
            ),
        ]

        try:
            await self._store.transact(items)
        except ConditionFailedError as exc:
            raise self._rejection(
                exc,
                offer_id,
                location_id,
                both_failed=NotFoundError(
                    f"Link between offer {offer_id} and location {location_id} no longer exists"
                ),
            ) from exc

        logger.info("Unlinked offer %s from location %s", offer_id, location_id)
        return _offer_with(
            offer,
            location_ids=offer.location_ids.without_id(location_id),
            locations_total=max(0, offer.locations_total - 1),
            updated_at=now,
            version=offer.version + 1,
        )

    def _rejection(
        self,
        exc: ConditionFailedError,
        offer_id: str,
        location_id: str,
        both_failed: ServiceError,
    ) -> ServiceError:
        """Translate a write-time rejection into the error the caller sees."""
        offer_failure = exc.failed(Offer.__tablename__)
        location_failure = exc.failed(Location.__tablename__)
        for label, failure in (("Offer", offer_failure), ("Location", location_failure)):
            if failure is not None and failure.missing:
                return NotFoundError(f"{label} with id {failure.key} not found")

        if offer_failure is not None and location_failure is not None:
            logger.warning(
                "Write-time condition rejected offer %s / location %s: %s",
                offer_id,
                location_id,
                both_failed.detail,
            )
            return both_failed

        # Exactly one record rejected its half of the change: the two records
        # already disagree about the link.
        stale = offer_failure or location_failure
        logger.error(
            "Offer %s and location %s hold a one-sided link; %s/%s rejected the update",
            offer_id,
            location_id,
            stale.table,
            stale.key,
        )
        return LinkInconsistencyError(
            f"Offer {offer_id} and location {location_id} disagree about their link "
            f"(rejected by the {stale.table} record)"
        )
