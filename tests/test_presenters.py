"""Tests for artifact presentation."""

from agentsurface.presenters import (
    LOADING_TEXT,
    NO_OPTIONS_TEXT,
    NO_WEATHER_TEXT,
    NOT_SELECTED_TEXT,
    build_options_text,
    build_weather_text,
    clean_note,
    error_writes,
    format_option_detail,
    loading_writes,
    normalize_flight_options,
    result_writes,
)
from agentsurface.schemas import Artifact


class TestWeatherText:
    def test_range(self):
        assert build_weather_text({"temp_c_low": 18, "temp_c_high": "24"}) == "18 ~ 24 °C"

    def test_summary_fallback(self):
        assert build_weather_text({"temp_c_low": 18, "summary": "Sunny"}) == "Sunny"

    def test_nothing_usable(self):
        assert build_weather_text({}) == NO_WEATHER_TEXT


class TestFlightOptions:
    """Test option normalization and formatting."""

    def test_normalize_aliases(self):
        """Alternate field names map onto the uniform shape."""
        [option] = normalize_flight_options([{
            "carrier": "China Eastern",
            "departTime": "08:00",
            "arriveTime": "10:15",
            "price": "¥1,280",
            "note": "```text\nmeal\n  included```",
            "logo_url": "http://img/ce.png",
        }])
        assert option == {
            "airline": "China Eastern",
            "depart": "08:00",
            "arrive": "10:15",
            "priceNum": 1280,
            "notes": "meal included",
            "image_url": "http://img/ce.png",
        }

    def test_normalize_drops_junk(self):
        """Non-dict and empty entries are dropped."""
        assert normalize_flight_options(["x", {}, None]) == []
        assert normalize_flight_options("not a list") == []

    def test_options_text(self):
        options = [{"airline": "MU", "depart": "08:00", "arrive": "10:00", "priceNum": 900, "notes": ""}]
        assert build_options_text(options) == "1. MU 08:00–10:00 ¥900"
        assert build_options_text([]) == NO_OPTIONS_TEXT

    def test_detail_text(self):
        detail = format_option_detail({"airline": "MU", "priceNum": 900})
        assert detail.splitlines()[0] == "airline: MU"
        assert "price: 900" in detail
        assert format_option_detail(None) == NOT_SELECTED_TEXT

    def test_clean_note(self):
        assert clean_note(None) == ""
        assert clean_note("a\n\n b") == "a b"


class TestWrites:
    """Test write sets projected onto bindings."""

    def test_loading(self, bindings):
        writes = dict(loading_writes(bindings, "Shanghai"))
        assert writes["/weather/temp_text"] == LOADING_TEXT
        assert writes["/flights/options"] == []
        assert writes["/flights/selectedIndex"] == -1
        assert writes["/form/query"] == "Shanghai"

    def test_results_select_first_option(self, bindings):
        weather = Artifact(kind="weather", data={"temp_c_low": 18, "temp_c_high": 24, "precip_prob": 30})
        flights = Artifact(kind="flights", data={"options": [
            {"airline": "MU", "price_cny": 900, "image_url": "http://img/mu.png"},
            {"airline": "CA", "price_cny": 1100},
        ]})
        writes = dict(result_writes(bindings, weather, flights))

        assert writes["/weather/temp_text"] == "18 ~ 24 °C"
        assert writes["/weather/precip_text"] == "30%"
        assert len(writes["/flights/options"]) == 2
        assert writes["/flights/selectedIndex"] == 0
        assert writes["/flights/image"] == "http://img/mu.png"
        assert "airline: MU" in writes["/flights/detail"]

    def test_results_without_options(self, bindings):
        writes = dict(result_writes(bindings, Artifact(kind="weather"), Artifact(kind="flights")))
        assert writes["/flights/selectedIndex"] == -1
        assert writes["/flights/detail"] == NOT_SELECTED_TEXT
        assert writes["/weather/temp_text"] == NO_WEATHER_TEXT

    def test_error_writes_visible_paths(self, bindings):
        writes = error_writes(bindings, "ERROR: boom")
        assert writes == [
            ("/weather/temp_text", "ERROR: boom"),
            ("/flights/options_text", "ERROR: boom"),
        ]
