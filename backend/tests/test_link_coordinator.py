"""Tests for linking and unlinking offers and locations."""

import asyncio

import pytest

from brandoffers.errors import (
    ConflictError,
    LinkInconsistencyError,
    NotFoundError,
    StoreUnavailableError,
)
from brandoffers.models import Brand, Location, Offer
from brandoffers.record_store import AddToSet, Increment, SetField, SetNonEmpty, UpdateItem
from brandoffers.services import audit_links


async def assert_links_consistent(store):
    assert await audit_links(store) == []


@pytest.mark.asyncio
async def test_link_and_unlink_scenario(links, offers, locations, store, sample_offer, sample_location):
    offer = await links.link_offer_to_location(sample_offer.id, sample_location.id)
    assert offer.locations_total == 1
    assert offer.location_ids == {sample_location.id}

    location = await locations.get(sample_location.id)
    assert location.has_offer is True
    assert location.offer_ids == {sample_offer.id}
    await assert_links_consistent(store)

    offer = await links.unlink_offer_from_location(sample_offer.id, sample_location.id)
    assert offer.locations_total == 0
    assert offer.location_ids == set()

    location = await locations.get(sample_location.id)
    assert location.has_offer is False
    assert location.offer_ids == set()
    await assert_links_consistent(store)


@pytest.mark.asyncio
async def test_link_returns_state_matching_store(links, offers, sample_offer, sample_location):
    returned = await links.link_offer_to_location(sample_offer.id, sample_location.id)
    stored = await offers.get(sample_offer.id)

    assert returned.id == stored.id
    assert returned.locations_total == stored.locations_total
    assert returned.location_ids == stored.location_ids
    assert returned.updated_at == stored.updated_at
    assert returned.version == stored.version
    assert returned.updated_at >= sample_offer.updated_at


@pytest.mark.asyncio
async def test_round_trip_restores_both_records(links, offers, locations, sample_offer, sample_location):
    before_offer = await offers.get(sample_offer.id)
    before_location = await locations.get(sample_location.id)

    await links.link_offer_to_location(sample_offer.id, sample_location.id)
    await links.unlink_offer_from_location(sample_offer.id, sample_location.id)

    after_offer = await offers.get(sample_offer.id)
    after_location = await locations.get(sample_location.id)
    assert after_offer.locations_total == before_offer.locations_total
    assert after_offer.location_ids == before_offer.location_ids
    assert after_location.has_offer == before_location.has_offer
    assert after_location.offer_ids == before_location.offer_ids


@pytest.mark.asyncio
async def test_link_same_pair_twice_conflicts(links, offers, sample_offer, sample_location):
    await links.link_offer_to_location(sample_offer.id, sample_location.id)

    with pytest.raises(ConflictError, match="already linked"):
        await links.link_offer_to_location(sample_offer.id, sample_location.id)

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 1


@pytest.mark.asyncio
async def test_concurrent_links_count_once(links, offers, store, sample_offer, sample_location):
    results = await asyncio.gather(
        links.link_offer_to_location(sample_offer.id, sample_location.id),
        links.link_offer_to_location(sample_offer.id, sample_location.id),
        return_exceptions=True,
    )

    succeeded = [r for r in results if isinstance(r, Offer)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], ConflictError)
    assert succeeded[0].locations_total == 1

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 1
    assert offer.location_ids == {sample_location.id}
    await assert_links_consistent(store)


@pytest.mark.asyncio
async def test_concurrent_unlinks_remove_once(links, offers, store, sample_offer, sample_location):
    await links.link_offer_to_location(sample_offer.id, sample_location.id)

    results = await asyncio.gather(
        links.unlink_offer_from_location(sample_offer.id, sample_location.id),
        links.unlink_offer_from_location(sample_offer.id, sample_location.id),
        return_exceptions=True,
    )

    assert sum(isinstance(r, Offer) for r in results) == 1
    assert sum(isinstance(r, NotFoundError) for r in results) == 1

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 0
    await assert_links_consistent(store)


@pytest.mark.asyncio
async def test_write_time_condition_catches_stale_link_read(
    links, offers, locations, monkeypatch, sample_offer, sample_location
):
    stale = await locations.get(sample_location.id)
    await links.link_offer_to_location(sample_offer.id, sample_location.id)

    # The precondition read sees the location as it was before the link.
    async def stale_get(location_id):
        return stale

    monkeypatch.setattr(locations, "get", stale_get)

    with pytest.raises(ConflictError, match="already linked") as exc_info:
        await links.link_offer_to_location(sample_offer.id, sample_location.id)
    assert not isinstance(exc_info.value, LinkInconsistencyError)

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 1


@pytest.mark.asyncio
async def test_write_time_condition_catches_stale_unlink_read(
    links, offers, locations, monkeypatch, sample_offer, sample_location
):
    await links.link_offer_to_location(sample_offer.id, sample_location.id)
    stale = await locations.get(sample_location.id)
    await links.unlink_offer_from_location(sample_offer.id, sample_location.id)

    async def stale_get(location_id):
        return stale

    monkeypatch.setattr(locations, "get", stale_get)

    with pytest.raises(NotFoundError, match="no longer exists"):
        await links.unlink_offer_from_location(sample_offer.id, sample_location.id)

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 0


@pytest.mark.asyncio
async def test_location_deleted_between_read_and_write(
    links, locations, monkeypatch, sample_offer, sample_location
):
    stale = await locations.get(sample_location.id)
    await locations.delete(sample_location.id)

    async def stale_get(location_id):
        return stale

    monkeypatch.setattr(locations, "get", stale_get)

    with pytest.raises(NotFoundError, match="Location with id"):
        await links.link_offer_to_location(sample_offer.id, sample_location.id)


@pytest.mark.asyncio
async def test_unlink_never_linked_is_not_found_and_writes_nothing(
    links, offers, locations, sample_offer, sample_location
):
    with pytest.raises(NotFoundError, match="not linked"):
        await links.unlink_offer_from_location(sample_offer.id, sample_location.id)

    offer = await offers.get(sample_offer.id)
    location = await locations.get(sample_location.id)
    assert offer.updated_at == sample_offer.updated_at
    assert offer.version == sample_offer.version
    assert location.updated_at == sample_location.updated_at
    assert location.version == sample_location.version


@pytest.mark.asyncio
async def test_cross_brand_link_rejected_before_write(
    links, locations, store, monkeypatch, sample_offer, other_brand: Brand
):
    foreign = await locations.create(other_brand.id, "Elm St", "2 Elm St")
    calls = []

    async def recording_transact(items):
        calls.append(items)

    monkeypatch.setattr(store, "transact", recording_transact)

    with pytest.raises(ConflictError, match="different brand"):
        await links.link_offer_to_location(sample_offer.id, foreign.id)
    with pytest.raises(ConflictError, match="different brand"):
        await links.unlink_offer_from_location(sample_offer.id, foreign.id)
    assert calls == []


@pytest.mark.asyncio
async def test_missing_records_are_not_found(links, sample_offer, sample_location):
    with pytest.raises(NotFoundError, match="Offer with id"):
        await links.link_offer_to_location("missing-offer", sample_location.id)
    with pytest.raises(NotFoundError, match="Location with id"):
        await links.link_offer_to_location(sample_offer.id, "missing-location")
    with pytest.raises(NotFoundError, match="Offer with id"):
        await links.unlink_offer_from_location("missing-offer", sample_location.id)


@pytest.mark.asyncio
async def test_has_offer_stays_true_while_other_offers_remain(
    links, offers, locations, store, sample_brand, sample_offer, sample_location
):
    second = await offers.create(sample_brand.id, "Free Coffee", "One free coffee")
    await links.link_offer_to_location(sample_offer.id, sample_location.id)
    await links.link_offer_to_location(second.id, sample_location.id)

    await links.unlink_offer_from_location(sample_offer.id, sample_location.id)
    location = await locations.get(sample_location.id)
    assert location.has_offer is True
    assert location.offer_ids == {second.id}
    await assert_links_consistent(store)

    await links.unlink_offer_from_location(second.id, sample_location.id)
    location = await locations.get(sample_location.id)
    assert location.has_offer is False
    await assert_links_consistent(store)


@pytest.mark.asyncio
async def test_counters_track_sets_across_many_operations(
    links, offers, locations, store, sample_brand, sample_offer
):
    created = [
        await locations.create(sample_brand.id, f"Store {n}", f"{n} High St") for n in range(4)
    ]
    for location in created:
        await links.link_offer_to_location(sample_offer.id, location.id)
        await assert_links_consistent(store)

    for location in created[1:3]:
        offer = await links.unlink_offer_from_location(sample_offer.id, location.id)
        assert offer.locations_total == len(offer.location_ids)
        await assert_links_consistent(store)

    offer = await offers.get(sample_offer.id)
    assert offer.locations_total == 2
    assert list(offer.location_ids) == [created[0].id, created[3].id]


@pytest.mark.asyncio
async def test_one_sided_link_reported_as_inconsistency(store, links, sample_offer, sample_location):
    # Only the location half of the link exists.
    await store.update(
        UpdateItem(
            Location,
            sample_location.id,
            (AddToSet("offer_ids", sample_offer.id), SetNonEmpty("has_offer", "offer_ids")),
        )
    )

    with pytest.raises(LinkInconsistencyError, match="offers record"):
        await links.unlink_offer_from_location(sample_offer.id, sample_location.id)

    violations = await audit_links(store)
    assert len(violations) == 1
    assert violations[0].key == sample_location.id


@pytest.mark.asyncio
async def test_one_sided_offer_half_reported_as_inconsistency(store, links, sample_offer, sample_location):
    await store.update(
        UpdateItem(
            Offer,
            sample_offer.id,
            (AddToSet("location_ids", sample_location.id), Increment("locations_total", 1)),
        )
    )

    with pytest.raises(LinkInconsistencyError, match="offers record"):
        await links.link_offer_to_location(sample_offer.id, sample_location.id)


@pytest.mark.asyncio
async def test_one_sided_location_half_reported_as_inconsistency(
    store, links, locations, monkeypatch, sample_offer, sample_location
):
    stale = await locations.get(sample_location.id)
    # Only the location half of the link exists, but the coordinator reads
    # the location as it was before.
    await store.update(
        UpdateItem(
            Location,
            sample_location.id,
            (AddToSet("offer_ids", sample_offer.id), SetNonEmpty("has_offer", "offer_ids")),
        )
    )

    async def stale_get(location_id):
        return stale

    monkeypatch.setattr(locations, "get", stale_get)

    with pytest.raises(LinkInconsistencyError, match="locations record"):
        await links.link_offer_to_location(sample_offer.id, sample_location.id)

    offer = await store.get(Offer, sample_offer.id)
    assert offer.locations_total == 0


@pytest.mark.asyncio
async def test_store_failure_is_surfaced_unchanged(links, store, monkeypatch, sample_offer, sample_location):
    attempts = []

    async def unavailable(items):
        attempts.append(items)
        raise StoreUnavailableError("Record store unavailable, try again later")

    monkeypatch.setattr(store, "transact", unavailable)

    with pytest.raises(StoreUnavailableError):
        await links.link_offer_to_location(sample_offer.id, sample_location.id)
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_registry_update_leaves_link_fields_alone(
    links, offers, locations, store, sample_offer, sample_location
):
    await links.link_offer_to_location(sample_offer.id, sample_location.id)

    await offers.update(sample_offer.id, name="15% Off", description="Bigger discount")
    await locations.update(sample_location.id, name="Main Street", address="1 Main Street")

    offer = await offers.get(sample_offer.id)
    location = await locations.get(sample_location.id)
    assert offer.locations_total == 1
    assert offer.location_ids == {sample_location.id}
    assert location.offer_ids == {sample_offer.id}
    assert location.has_offer is True
    await assert_links_consistent(store)


@pytest.mark.asyncio
async def test_linked_records_cannot_be_deleted(links, offers, locations, sample_offer, sample_location):
    await links.link_offer_to_location(sample_offer.id, sample_location.id)

    with pytest.raises(ConflictError, match="unlink"):
        await offers.delete(sample_offer.id)
    with pytest.raises(ConflictError, match="unlink"):
        await locations.delete(sample_location.id)

    await links.unlink_offer_from_location(sample_offer.id, sample_location.id)
    await offers.delete(sample_offer.id)
    await locations.delete(sample_location.id)
    assert await offers.find_by_id(sample_offer.id) is None
    assert await locations.find_by_id(sample_location.id) is None


@pytest.mark.asyncio
async def test_updated_at_refreshed_on_both_records(links, offers, locations, sample_offer, sample_location):
    offer = await links.link_offer_to_location(sample_offer.id, sample_location.id)
    location = await locations.get(sample_location.id)
    assert location.updated_at == offer.updated_at
    assert location.version == sample_location.version + 1


@pytest.mark.asyncio
async def test_audit_detects_counter_drift(store, sample_offer):
    await store.update(UpdateItem(Offer, sample_offer.id, (SetField("locations_total", 3),)))
    violations = await audit_links(store)
    assert [v.table for v in violations] == ["offers"]
