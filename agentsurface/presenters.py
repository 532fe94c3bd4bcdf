"""Default projection of trip-planning artifacts into data model writes.

Each function returns ``(full_path, value)`` pairs for the paths named in
the bindings document; unbound paths are skipped.
"""

from __future__ import annotations

import re
from typing import Any

from agentsurface.catalog import Bindings
from agentsurface.schemas import Artifact

Write = tuple[str, Any]

LOADING_TEXT = "Searching..."
WAITING_TEXT = "(waiting for a query)"
NO_WEATHER_TEXT = "(no weather information returned)"
NO_OPTIONS_TEXT = "(no options)"
NOT_SELECTED_TEXT = "Not selected"

_CODE_FENCE = re.compile(r"```[a-zA-Z0-9_-]*\n?")


def _bound(pairs: list[tuple[str | None, Any]]) -> list[Write]:
    return [(path, value) for path, value in pairs if path]


def clean_note(value: Any) -> str:
    """Strip code fences and collapse whitespace into one line."""
    text = "" if value is None else str(value)
    text = _CODE_FENCE.sub("", text).replace("```", "")
    return re.sub(r"\s+", " ", text).strip()


def _to_number(value: Any) -> float | int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    digits = re.sub(r"[^\d.]", "", str(value))
    if not digits:
        return None
    try:
        number = float(digits)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def build_weather_text(data: dict[str, Any]) -> str:
    low = _to_number(data.get("temp_c_low"))
    high = _to_number(data.get("temp_c_high"))
    if low is not None and high is not None:
        return f"{low} ~ {high} °C"
    if data.get("summary"):
        return str(data["summary"])
    if data.get("advice"):
        return str(data["advice"])
    return NO_WEATHER_TEXT


def normalize_flight_options(raw_options: Any) -> list[dict[str, Any]]:
    """Coerce loosely-shaped flight options into a uniform list of dicts."""
    out = []
    for option in raw_options if isinstance(raw_options, list) else []:
        if not isinstance(option, dict):
            continue

        def pick(*names: str) -> str:
            for name in names:
                if option.get(name) is not None:
                    return str(option[name]).strip()
            return ""

        normalized = {
            "airline": pick("airline", "carrier", "airlineName"),
            "depart": pick("depart", "departTime"),
            "arrive": pick("arrive", "arriveTime"),
            "priceNum": _to_number(
                next(
                    (option[k] for k in ("price_cny", "price", "priceCny", "priceNum")
                     if option.get(k) is not None),
                    None,
                )
            ),
            "notes": clean_note(option.get("notes", option.get("note"))),
            "image_url": pick("image_url", "logo_url"),
        }
        if not any(v not in ("", None) for v in normalized.values()):
            continue
        out.append(normalized)
    return out


def build_options_text(options: list[dict[str, Any]]) -> str:
    if not options:
        return NO_OPTIONS_TEXT
    lines = []
    for idx, option in enumerate(options, 1):
        time = "–".join(t for t in (option.get("depart"), option.get("arrive")) if t)
        price = f"¥{option['priceNum']}" if option.get("priceNum") is not None else ""
        head = " ".join(p for p in (option.get("airline"), time, price) if p)
        notes = f"({option['notes']})" if option.get("notes") else ""
        lines.append(f"{idx}. {head} {notes}".strip())
    return "\n".join(lines)


def format_option_detail(option: dict[str, Any] | None) -> str:
    """Detail text for the selected option; also used client-side on select."""
    if not option:
        return NOT_SELECTED_TEXT
    price = option.get("price_cny", option.get("priceNum"))
    fields = [
        ("airline", option.get("airline")),
        ("depart", option.get("depart")),
        ("arrive", option.get("arrive")),
        ("price", price),
        ("notes", option.get("notes")),
        ("image_url", option.get("image_url")),
    ]
    return "\n".join(f"{name}: {'' if value is None else value}" for name, value in fields)


def default_overrides(bindings: Bindings) -> dict[str, Any]:
    """Friendlier initial values than the kind defaults."""
    return dict(_bound([
        (bindings.form.query, ""),
        (bindings.weather.temp_text, WAITING_TEXT),
        (bindings.weather.precip_text, ""),
        (bindings.flights.options_text, WAITING_TEXT),
        (bindings.flights.options, []),
        (bindings.flights.selected_index, -1),
        (bindings.flights.detail_text, NOT_SELECTED_TEXT),
        (bindings.flights.detail_image, ""),
    ]))


def loading_writes(bindings: Bindings, query: str) -> list[Write]:
    return _bound([
        (bindings.weather.temp_text, LOADING_TEXT),
        (bindings.flights.options_text, LOADING_TEXT),
        (bindings.flights.options, []),
        (bindings.flights.selected_index, -1),
        (bindings.flights.detail_text, LOADING_TEXT),
        (bindings.flights.detail_image, ""),
        (bindings.form.query or "/form/query", query),
    ])


def result_writes(bindings: Bindings, weather: Artifact, flights: Artifact) -> list[Write]:
    weather_data = weather.data if isinstance(weather.data, dict) else {}
    flight_data = flights.data if isinstance(flights.data, dict) else {}

    precip = weather_data.get("precip_prob")
    options = normalize_flight_options(flight_data.get("options"))
    selected = options[0] if options else None

    return _bound([
        (bindings.weather.temp_text, build_weather_text(weather_data)),
        (bindings.weather.precip_text, f"{precip}%" if precip is not None else ""),
        (bindings.flights.options, options),
        (bindings.flights.options_text, build_options_text(options)),
        (bindings.flights.selected_index, 0 if options else -1),
        (bindings.flights.detail_text, format_option_detail(selected)),
        (bindings.flights.detail_image, (selected or {}).get("image_url", "")),
    ])


def error_writes(bindings: Bindings, message: str) -> list[Write]:
    return _bound([
        (bindings.weather.temp_text, message),
        (bindings.flights.options_text, message),
    ])
