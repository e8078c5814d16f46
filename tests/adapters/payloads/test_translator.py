from __future__ import annotations

import datetime as dt
import json

import pytest

from transitgraph.adapters.payloads import (
    PayloadValidationError,
    decode_payload,
    encode_change,
    encode_changes_json,
)
from transitgraph.domain import geometry
from transitgraph.domain.model import (
    ChangeAction,
    EntityType,
    RouteChange,
    RouteStopPatternChange,
    ScheduleStopPairChange,
    StopChange,
    VehicleType,
)


def test_decode_camel_cased_entries() -> None:
    (change,) = decode_payload(
        {
            "changes": [
                {
                    "action": "createUpdate",
                    "stop": {
                        "onestopId": "s-9q8y-mainst",
                        "name": "  Main St ",
                        "geometry": {"type": "Point", "coordinates": [-122.4, 37.78]},
                        "identifiedBy": ["gtfs://f-9q8y-metro/s/S1"],
                        "wheelchairBoarding": True,
                        "servedBy": ["o-9q8y-metrotransit"],
                    },
                    "issuesResolved": [4],
                }
            ]
        }
    )

    assert isinstance(change, StopChange)
    assert change.action is ChangeAction.CREATE_UPDATE
    assert change.onestop_id == "s-9q8y-mainst"
    assert change.identified_by == ("gtfs://f-9q8y-metro/s/S1",)
    assert change.served_by == ("o-9q8y-metrotransit",)
    assert change.issues_resolved == (4,)
    assert change.attributes["name"] == "Main St"
    assert change.attributes["wheelchair_boarding"] is True
    assert geometry.same(change.attributes["geometry"], geometry.point(-122.4, 37.78))
    assert "served_by" not in change.attributes


def test_decode_accepts_a_bare_list_of_changes() -> None:
    changes = decode_payload(
        [
            {"action": "destroy", "stop": {"onestopId": "s-9q8y-mainst"}},
            {
                "action": "createUpdate",
                "routeStopPattern": {
                    "onestopId": "r-9q8y-1-aaaaaa-bbbbbb",
                    "geometry": "LINESTRING (0 0, 1 1)",
                    "stopPattern": ["s-9q8y-a", "s-9q8y-b"],
                    "traversedBy": "r-9q8y-1",
                },
            },
        ]
    )

    assert [change.entity_type for change in changes] == [
        EntityType.STOP,
        EntityType.ROUTE_STOP_PATTERN,
    ]
    assert changes[0].is_destroy
    pattern = changes[1]
    assert isinstance(pattern, RouteStopPatternChange)
    assert pattern.traversed_by == "r-9q8y-1"
    assert pattern.attributes["stop_pattern"] == ["s-9q8y-a", "s-9q8y-b"]
    assert geometry.same(pattern.attributes["geometry"], geometry.line([(0, 0), (1, 1)]))


def test_route_type_numbers_become_vehicle_types() -> None:
    route = {"onestopId": "r-9q8y-1", "vehicleType": 3}
    document = {"changes": [{"action": "createUpdate", "route": route}]}

    (change,) = decode_payload(json.dumps(document))

    assert isinstance(change, RouteChange)
    assert change.attributes["vehicle_type"] is VehicleType.BUS


def test_schedule_stop_pair_dates_are_parsed() -> None:
    (change,) = decode_payload(
        [
            {
                "action": "createUpdate",
                "scheduleStopPair": {
                    "trip": "T1",
                    "originOnestopId": "s-9q8y-a",
                    "originDepartureTime": "08:00:00",
                    "serviceStartDate": "2024-01-01",
                    "serviceDaysOfWeek": [True] * 5 + [False] * 2,
                    "serviceExceptDates": ["2024-07-04"],
                },
            }
        ]
    )

    assert isinstance(change, ScheduleStopPairChange)
    assert change.key == (None, "T1", "s-9q8y-a", "08:00:00")
    assert change.attributes["service_start_date"] == dt.date(2024, 1, 1)
    assert change.attributes["service_except_dates"] == [dt.date(2024, 7, 4)]


@pytest.mark.parametrize(
    "entry",
    [
        {"action": "createUpdate"},
        {
            "action": "createUpdate",
            "stop": {"onestopId": "s-9q8y-a"},
            "route": {"onestopId": "r-9q8y-1"},
        },
        {"action": "createUpdate", "stop": {"onestopId": "s-9q8y-a", "colour": "red"}},
        {"action": "merge", "stop": {"onestopId": "s-9q8y-a"}},
        {"action": "createUpdate", "stop": {"onestopId": "s-9q8y-a", "geometry": "POINT ("}},
        {
            "action": "createUpdate",
            "scheduleStopPair": {
                "trip": "T1",
                "originOnestopId": "s-9q8y-a",
                "serviceDaysOfWeek": [True, False],
            },
        },
    ],
)
def test_malformed_entries_are_rejected(entry: dict[str, object]) -> None:
    with pytest.raises(PayloadValidationError) as excinfo:
        decode_payload({"changes": [entry]})

    assert excinfo.value.errors
    assert str(excinfo.value).startswith("Invalid change payload")


def test_encode_change_uses_wire_names() -> None:
    change = StopChange(
        action=ChangeAction.CREATE_UPDATE,
        onestop_id="s-9q8y-mainst",
        attributes={"name": "Main St", "geometry": geometry.point(-122.4, 37.78)},
        served_by=("o-9q8y-metrotransit",),
    )

    encoded = encode_change(change)

    assert encoded == {
        "action": "createUpdate",
        "stop": {
            "onestopId": "s-9q8y-mainst",
            "name": "Main St",
            "geometry": {"type": "Point", "coordinates": [-122.4, 37.78]},
            "servedBy": ["o-9q8y-metrotransit"],
        },
    }


def test_encoded_changes_decode_to_the_same_change() -> None:
    change = RouteChange(
        action=ChangeAction.CREATE_UPDATE,
        onestop_id="r-9q8y-1",
        attributes={"name": "1", "vehicle_type": VehicleType.BUS},
        operated_by="o-9q8y-metrotransit",
        issues_resolved=(7,),
    )

    (decoded,) = decode_payload(encode_changes_json([change]))

    assert decoded == change
