"""Cloud Function Entry Points.

HTTP handlers for discovery, series creation and participation. They
parse requests into core types, call the DiscoveryEngine and shape the
JSON response. The request time is read here and passed down as "now";
nothing below this layer reads the clock for filtering.
"""

import functools
import logging
import os
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Callable, TypeVar

import functions_framework
from flask import Request

from parentconnect.core.capacity import CapacityResult
from parentconnect.core.config import Config, ConfigurationError, validate_config
from parentconnect.core.entity import (
    entity_from_dict,
    entity_to_dict,
    parse_inclusive_end,
    parse_timestamp,
)
from parentconnect.core.errors import EntityExistsError, EntityNotFoundError, InvalidInputError
from parentconnect.core.filters import (
    DateFacet,
    DistanceFacet,
    FilterSpec,
    PriceFacet,
    active_facet_count,
)
from parentconnect.core.formatter import format_distance, format_filter_tags, format_spots
from parentconnect.core.geo import Coordinate
from parentconnect.core.recurrence import RecurrenceRule, RecurrenceUnit, describe_rule
from parentconnect.orchestrator import DiscoveryEngine
from parentconnect.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

_engine: DiscoveryEngine | None = None


def _get_config() -> Config:
    """Load configuration from file or environment."""
    if os.environ.get("CONFIG_PATH"):
        config = load_config(os.environ["CONFIG_PATH"])
    elif os.environ.get("STORAGE_BACKEND"):
        config = load_config_from_env()
    else:
        config = load_config()

    validation = validate_config(config)
    for issue in validation.errors:
        log = logger.error if issue.severity == "error" else logger.warning
        log("Config %s: %s", issue.field, issue.message)
    if not validation.valid:
        raise ConfigurationError(
            f"Invalid configuration: {len(validation.critical_errors)} error(s)"
        )

    return config


def _get_engine() -> DiscoveryEngine:
    """Get or create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = DiscoveryEngine(_get_config())
    return _engine


def _parse_enum(enum_cls: type[E], raw: str | None, field: str, default: E) -> E:
    """Match raw against member names, values or labels, case-insensitively."""
    if raw is None or raw == "":
        return default

    wanted = raw.strip().lower()
    for member in enum_cls:
        names = {member.name.lower(), str(member.value).lower()}
        label = getattr(member, "label", None)
        if label:
            names.add(label.lower())
        if wanted in names:
            return member

    raise InvalidInputError(f"Unknown {field}: {raw!r}", field=field)


def _parse_float(raw: Any, field: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {field}: {raw!r}", field=field)


def _parse_reference(args: Any, config: Config) -> tuple[Coordinate | None, str | None]:
    """Resolve lat/lon or a saved place name into a reference point."""
    place_name = args.get("place")
    if place_name:
        place = config.find_place(place_name)
        if place is None:
            raise InvalidInputError(f"Unknown place: {place_name!r}", field="place")
        return place.coordinate, place.name

    lat, lon = args.get("lat"), args.get("lon")
    if lat is None and lon is None:
        return None, None
    if lat is None or lon is None:
        raise InvalidInputError("Both lat and lon are required", field="reference_point")

    return Coordinate(
        latitude=_parse_float(lat, "lat"),
        longitude=_parse_float(lon, "lon"),
    ), None


def parse_filter_spec(args: Any, config: Config) -> tuple[FilterSpec, str | None]:
    """Build a FilterSpec from query arguments.

    Returns:
        (spec, place_name) where place_name is set for saved places
    """
    age = args.get("age")
    if age is not None and age.strip().lower() in ("", "any"):
        age = None

    reference_point, place_name = _parse_reference(args, config)

    spec = FilterSpec(
        price=_parse_enum(PriceFacet, args.get("price"), "price", PriceFacet.ANY),
        age_range=age,
        date=_parse_enum(DateFacet, args.get("date"), "date", DateFacet.ANY),
        distance=_parse_enum(DistanceFacet, args.get("distance"), "distance", DistanceFacet.ANY),
        reference_point=reference_point,
        search_text=args.get("q", ""),
    )
    return spec, place_name


def parse_recurrence(
    data: dict[str, Any] | None,
    tz: tzinfo = timezone.utc,
) -> RecurrenceRule | None:
    """Build a RecurrenceRule from a request body section, if present.

    A date-only series_end includes that whole day in tz.
    """
    if not data:
        return None

    frequency = data.get("frequency", 1)
    if isinstance(frequency, str) and frequency.isdigit():
        frequency = int(frequency)

    return RecurrenceRule(
        unit=_parse_enum(RecurrenceUnit, data.get("unit"), "unit", RecurrenceUnit.WEEKLY),
        frequency=frequency,
        series_end=parse_inclusive_end(data.get("series_end"), field="series_end", tz=tz),
    )


def _capacity_response(result: CapacityResult) -> tuple[dict[str, Any], int]:
    if not result.success:
        return {
            "status": "error",
            "error": result.error.value if result.error else None,
            "message": result.message,
            "entity_id": result.entity_id,
            "participant_id": result.participant_id,
        }, 409

    return {
        "status": "success",
        "entity_id": result.entity_id,
        "participant_id": result.participant_id,
        "participants_count": result.participants_count,
        "spots_remaining": result.spots_remaining,
        "spots_label": format_spots(result.spots_remaining),
    }, 200


def _json_body(request: Request) -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object", field="body")
    return data


F = TypeVar("F", bound=Callable[..., tuple[dict[str, Any], int]])


def _handle_errors(func: F) -> F:
    """Map domain errors to HTTP status codes."""

    @functools.wraps(func)
    def wrapper(request: Request) -> tuple[dict[str, Any], int]:
        try:
            return func(request)
        except InvalidInputError as e:
            logger.warning("Invalid input to %s: %s", func.__name__, e.message)
            return {"status": "error", "error": e.code.value, "message": e.message}, 400
        except EntityNotFoundError as e:
            return {"status": "error", "error": e.code.value, "message": e.message}, 404
        except EntityExistsError as e:
            return {"status": "error", "error": e.code.value, "message": e.message}, 409
        except Exception as e:
            logger.exception("Unexpected error in %s", func.__name__)
            return {"status": "error", "message": str(e)}, 500

    return wrapper  # type: ignore[return-value]


@functions_framework.http
@_handle_errors
def discover_events(request: Request) -> tuple[dict[str, Any], int]:
    """List events and playdates matching the query's filters.

    Query args: price, age, date, distance, lat, lon, place, q, now.
    """
    engine = _get_engine()
    spec, place_name = parse_filter_spec(request.args, engine.config)

    now_raw = request.args.get("now")
    now = parse_timestamp(now_raw, field="now") if now_raw else datetime.now(timezone.utc)

    result = engine.discover(spec, now)

    return {
        "status": "success",
        "count": len(result.matches),
        "scanned": result.candidates_scanned,
        "filters": format_filter_tags(spec, place_name),
        "active_filters": active_facet_count(spec),
        "age_ranges": list(engine.config.age_ranges),
        "results": [
            {
                **entity_to_dict(match.entity),
                "distance_miles": match.distance_miles,
                "distance_label": format_distance(match.distance_miles),
            }
            for match in result.matches
        ],
    }, 200


@functions_framework.http
@_handle_errors
def create_event(request: Request) -> tuple[dict[str, Any], int]:
    """Create an event or playdate, optionally repeating.

    Body: entity fields plus an optional "recurrence" object with unit,
    frequency and series_end.
    """
    engine = _get_engine()
    data = _json_body(request)

    base = entity_from_dict({**data, "id": data.get("id") or engine.id_factory()})
    rule = parse_recurrence(data.get("recurrence"), tz=base.occurs_at.tzinfo)

    result = engine.create_series(base, rule)

    if not result.persisted:
        return {"status": "error", "message": result.error}, 500

    return {
        "status": "success",
        "summary": result.summary,
        "series_id": result.series_id,
        "recurrence": describe_rule(rule) if rule else None,
        "entities": [entity_to_dict(e) for e in result.entities],
    }, 201


@functions_framework.http
@_handle_errors
def join_event(request: Request) -> tuple[dict[str, Any], int]:
    """Join an event. Body: entity_id, participant_id, privacy_level (optional)."""
    data = _json_body(request)
    result = _get_engine().join(
        _require(data, "entity_id"),
        _require(data, "participant_id"),
        privacy_level=data.get("privacy_level"),
    )
    return _capacity_response(result)


@functions_framework.http
@_handle_errors
def leave_event(request: Request) -> tuple[dict[str, Any], int]:
    """Leave an event. Body: entity_id, participant_id."""
    data = _json_body(request)
    result = _get_engine().leave(
        _require(data, "entity_id"),
        _require(data, "participant_id"),
    )
    return _capacity_response(result)


def _require(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not value:
        raise InvalidInputError(f"Missing required field: {field}", field=field)
    return str(value)
