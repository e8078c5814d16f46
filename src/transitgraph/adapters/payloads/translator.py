"""Translate change payloads into typed domain changes and back."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from transitgraph.domain import geometry
from transitgraph.domain.model import (
    OperatorChange,
    RouteChange,
    RouteStopPatternChange,
    ScheduleStopPairChange,
    StopChange,
)

from .schema import (
    CanonicalPayload,
    ChangeEntry,
    ChangePayloadDocument,
    OperatorPayload,
    RoutePayload,
    RouteStopPatternPayload,
    ScheduleStopPairPayload,
    StopPayload,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from transitgraph.domain.model import EntityChange

log = getLogger(__name__)

# wire fields that are not plain attributes of the entity
_NON_ATTRIBUTE_FIELDS = frozenset(
    {
        "onestop_id",
        "identified_by",
        "imported_from_feed_onestop_id",
        "serves",
        "does_not_serve",
        "served_by",
        "not_served_by",
        "operated_by",
        "traversed_by",
    }
)


class PayloadValidationError(ValueError):
    """Raised when a change payload does not match the schema."""

    def __init__(self, message: str, *, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def parse_payload(data: Mapping[str, Any] | list[Any] | str | bytes) -> ChangePayloadDocument:
    try:
        if isinstance(data, str | bytes):
            return ChangePayloadDocument.model_validate_json(data)
        return ChangePayloadDocument.model_validate(data)
    except ValidationError as exc:
        log.info("Rejected change payload with %s error(s)", exc.error_count())
        raise PayloadValidationError(
            f"Invalid change payload: {exc.error_count()} error(s)",
            errors=[dict(error) for error in exc.errors(include_url=False)],
        ) from exc


def decode_payload(data: Mapping[str, Any] | list[Any] | str | bytes) -> list[EntityChange]:
    """Validate ``data`` and return its typed changes in order."""

    document = parse_payload(data)
    return [decode_entry(entry) for entry in document.changes]


def decode_entry(entry: ChangeEntry) -> EntityChange:
    issues_resolved = tuple(entry.issues_resolved)
    match entry.entity:
        case ScheduleStopPairPayload() as payload:
            return ScheduleStopPairChange(
                action=entry.action,
                attributes=_attributes(payload, exclude=frozenset()),
                issues_resolved=issues_resolved,
            )
        case OperatorPayload() as payload:
            return OperatorChange(
                **_canonical_fields(entry, payload),
                serves=tuple(payload.serves),
                does_not_serve=tuple(payload.does_not_serve),
            )
        case StopPayload() as payload:
            return StopChange(
                **_canonical_fields(entry, payload),
                served_by=tuple(payload.served_by),
                not_served_by=tuple(payload.not_served_by),
            )
        case RoutePayload() as payload:
            return RouteChange(
                **_canonical_fields(entry, payload),
                operated_by=payload.operated_by,
                serves=tuple(payload.serves),
                does_not_serve=tuple(payload.does_not_serve),
            )
        case RouteStopPatternPayload() as payload:
            return RouteStopPatternChange(
                **_canonical_fields(entry, payload),
                traversed_by=payload.traversed_by,
            )


def _canonical_fields(entry: ChangeEntry, payload: CanonicalPayload) -> dict[str, Any]:
    return {
        "action": entry.action,
        "attributes": _attributes(payload, exclude=_NON_ATTRIBUTE_FIELDS),
        "issues_resolved": tuple(entry.issues_resolved),
        "onestop_id": payload.onestop_id,
        "identified_by": tuple(payload.identified_by),
        "imported_from_feed_onestop_id": payload.imported_from_feed_onestop_id,
    }


def _attributes(
    payload: CanonicalPayload | ScheduleStopPairPayload, *, exclude: frozenset[str]
) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for name in sorted(payload.model_fields_set - exclude):
        value = getattr(payload, name)
        if name == "geometry" and value is not None:
            value = geometry.from_any(value)
        elif name == "tags" and value is None:
            value = {}
        elif isinstance(value, list):
            value = list(value)  # pyright: ignore[reportUnknownArgumentType]
        attributes[name] = value
    return attributes


# Encoding ----------------------------------------------------------------------


def encode_changes(changes: Iterable[EntityChange]) -> dict[str, Any]:
    """Inverse of ``decode_payload``: a JSON-ready ``{"changes": [...]}`` document."""

    return {"changes": [encode_change(change) for change in changes]}


def encode_changes_json(changes: Iterable[EntityChange]) -> str:
    return json.dumps(encode_changes(changes), separators=(",", ":"))


def encode_change(change: EntityChange) -> dict[str, Any]:
    fields: dict[str, Any] = {
        name: _encode_value(name, value) for name, value in change.attributes.items()
    }
    match change:
        case ScheduleStopPairChange():
            pass
        case OperatorChange():
            _set_canonical(fields, change)
            _set_if(fields, "serves", list(change.serves))
            _set_if(fields, "does_not_serve", list(change.does_not_serve))
        case StopChange():
            _set_canonical(fields, change)
            _set_if(fields, "served_by", list(change.served_by))
            _set_if(fields, "not_served_by", list(change.not_served_by))
        case RouteChange():
            _set_canonical(fields, change)
            _set_if(fields, "operated_by", change.operated_by)
            _set_if(fields, "serves", list(change.serves))
            _set_if(fields, "does_not_serve", list(change.does_not_serve))
        case RouteStopPatternChange():
            _set_canonical(fields, change)
            _set_if(fields, "traversed_by", change.traversed_by)

    entry = ChangeEntry.model_validate(
        {
            "action": change.action,
            change.entity_type.value: fields,
            "issues_resolved": list(change.issues_resolved),
        }
    )
    data = entry.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if not change.issues_resolved:
        data.pop("issuesResolved", None)
    return data


def _set_canonical(
    fields: dict[str, Any],
    change: OperatorChange | StopChange | RouteChange | RouteStopPatternChange,
) -> None:
    fields["onestop_id"] = change.onestop_id
    _set_if(fields, "identified_by", list(change.identified_by))
    _set_if(fields, "imported_from_feed_onestop_id", change.imported_from_feed_onestop_id)


def _set_if(fields: dict[str, Any], name: str, value: object) -> None:
    if value:
        fields[name] = value


def _encode_value(name: str, value: Any) -> Any:  # noqa: ANN401
    if name == "geometry" and geometry.is_geometry(value):
        return geometry.to_geojson(value)
    return value

