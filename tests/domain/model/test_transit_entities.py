from __future__ import annotations

import datetime as dt

import pytest

from transitgraph.domain import geometry
from transitgraph.domain.model import (
    ChangeAction,
    Changeset,
    ChangesetStatus,
    EntityType,
    IssueCategory,
    IssueType,
    ScheduleStopPairChange,
    ServesLink,
    Stop,
    StopChange,
    User,
    VehicleType,
    gtfs_identifier,
    issue_types_in_category,
)


def test_human_edits_mark_sticky_attributes() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst", name="Main St")

    assert stop.assign("name", "Main Street", from_import=False) is True
    assert stop.assign("tags", {"zone": "1"}, from_import=False) is True

    assert stop.edited_attributes == {"name"}


def test_imports_leave_edited_attributes_alone() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst", name="Main St")
    stop.assign("name", "Main Street", from_import=False)

    assert stop.assign("name", "MAIN ST", from_import=True) is False
    assert stop.assign("timezone", "America/Los_Angeles", from_import=True) is True

    assert stop.name == "Main Street"
    assert stop.timezone == "America/Los_Angeles"
    assert stop.edited_attributes == {"name"}


def test_assign_rejects_unknown_attributes() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst")

    with pytest.raises(ValueError, match="no assignable attribute"):
        stop.assign("stop_distances", [0.0], from_import=False)


def test_identifiers_are_deduplicated() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst")
    value = gtfs_identifier("f-9q8y-metro", EntityType.STOP, "S1")

    assert stop.add_identifier(value) is True
    assert stop.add_identifier(value) is False

    assert stop.identifiers == ("gtfs://f-9q8y-metro/s/S1",)


def test_snapshot_serializes_geometry_as_wkt() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst", name="A", geometry=geometry.point(10, 43))
    stop.assign("name", "B", from_import=False)

    snapshot = stop.snapshot()

    assert snapshot["geometry"] == "POINT (10 43)"
    assert snapshot["name"] == "B"
    assert snapshot["edited_attributes"] == ["name"]


def test_detached_copy_keeps_identity_but_not_the_instance() -> None:
    stop = Stop(onestop_id="s-9q8y-mainst", name="A", version=3)

    copy = stop.detached_copy()

    assert copy is not stop
    assert copy.id == stop.id
    assert copy.version == 3
    assert copy.name == "A"
    assert copy.identifiers == ()


def test_serves_link_only_accepts_supported_pairs() -> None:
    ServesLink(
        server_type=EntityType.ROUTE,
        server_onestop_id="r-9q8y-1",
        served_type=EntityType.STOP,
        served_onestop_id="s-9q8y-mainst",
    )

    with pytest.raises(ValueError, match="cannot serve"):
        ServesLink(
            server_type=EntityType.STOP,
            server_onestop_id="s-9q8y-mainst",
            served_type=EntityType.ROUTE,
            served_onestop_id="r-9q8y-1",
        )


def test_changeset_payloads_keep_their_position() -> None:
    changeset = Changeset(user=User(email="editor@example.com"))
    first = StopChange(action=ChangeAction.CREATE_UPDATE, onestop_id="s-a-1")
    second = StopChange(action=ChangeAction.DESTROY, onestop_id="s-a-2")

    changeset.add_payload([first])
    changeset.add_payload([second])

    assert [payload.position for payload in changeset.payloads] == [0, 1]
    assert list(changeset.changes()) == [first, second]
    assert changeset.is_import is False


def test_changeset_can_only_be_applied_once() -> None:
    changeset = Changeset(id=7)
    changeset.begin_applying()
    assert changeset.status is ChangesetStatus.APPLYING

    changeset.mark_applied(dt.datetime(2024, 1, 1, tzinfo=dt.UTC))

    assert changeset.status is ChangesetStatus.APPLIED
    with pytest.raises(ValueError, match="already applied"):
        changeset.mark_applied(dt.datetime(2024, 1, 2, tzinfo=dt.UTC))
    changeset.mark_failed()
    assert changeset.status is ChangesetStatus.APPLIED


def test_failed_changeset_can_be_retried() -> None:
    changeset = Changeset(id=8)
    changeset.begin_applying()

    changeset.mark_failed()

    assert changeset.status is ChangesetStatus.FAILED
    changeset.begin_applying()
    assert changeset.status is ChangesetStatus.APPLYING


def test_schedule_stop_pair_change_key_requires_trip_and_origin() -> None:
    change = ScheduleStopPairChange(
        action=ChangeAction.CREATE_UPDATE,
        attributes={
            "imported_from_feed_onestop_id": "f-9q8y-metro",
            "trip": "T1",
            "origin_onestop_id": "s-a-1",
            "origin_departure_time": "08:00:00",
        },
    )
    assert change.key == ("f-9q8y-metro", "T1", "s-a-1", "08:00:00")

    broken = ScheduleStopPairChange(action=ChangeAction.CREATE_UPDATE, attributes={"trip": "T1"})
    with pytest.raises(ValueError, match="origin_onestop_id"):
        _ = broken.key


def test_entity_type_payload_keys() -> None:
    assert EntityType.STOP.payload_key == "stop"
    assert EntityType.ROUTE_STOP_PATTERN.payload_key == "routeStopPattern"
    assert EntityType.SCHEDULE_STOP_PAIR.payload_key == "scheduleStopPair"


def test_issue_categories_are_a_static_lookup() -> None:
    assert IssueType.STOP_RSP_DISTANCE_GAP.category is IssueCategory.ROUTE_GEOMETRY
    assert issue_types_in_category("feed_fetch") == (
        IssueType.FEED_FETCH_INVALID_URL,
        IssueType.FEED_FETCH_INVALID_SOURCE,
        IssueType.FEED_FETCH_INVALID_ZIP,
    )
    with pytest.raises(ValueError):
        issue_types_in_category("nonsense")


def test_vehicle_type_from_gtfs_route_type() -> None:
    assert VehicleType.from_route_type(3) is VehicleType.BUS
    assert VehicleType.from_route_type(11) is VehicleType.TROLLEYBUS
    assert VehicleType.from_route_type(99) is None
    assert VehicleType.from_route_type(None) is None
