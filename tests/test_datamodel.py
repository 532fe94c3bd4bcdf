"""Tests for the path-addressed data model."""

from agentsurface.datamodel import DataModel, join_path, split_path
from agentsurface.schemas import DataEntry, DataModelUpdate


class TestPaths:
    """Test path helpers."""

    def test_split_nested(self):
        assert split_path("/flights/selectedIndex") == ("/flights", "selectedIndex")

    def test_split_top_level(self):
        assert split_path("/query") == ("/", "query")

    def test_split_empty(self):
        assert split_path("/") is None
        assert split_path(None) is None

    def test_join(self):
        assert join_path("/", "query") == "/query"
        assert join_path("/weather", "temp_text") == "/weather/temp_text"


class TestDataModel:
    """Test reads and writes."""

    def test_apply_then_get(self):
        """Values written by a unit are readable at their full path."""
        model = DataModel()
        update = DataModelUpdate.model_validate({
            "path": "/weather",
            "contents": [{"key": "temp_text", "valueString": "18 ~ 24 °C"}],
        })
        model.apply(update.path, update.contents)

        assert model.get("/weather/temp_text") == "18 ~ 24 °C"
        assert model.snapshot() == {"weather": {"temp_text": "18 ~ 24 °C"}}

    def test_overwrite_replaces_value(self):
        """Writes replace rather than merge."""
        model = DataModel()
        model.set("/flights/options", [{"airline": "A"}, {"airline": "B"}])
        model.set("/flights/options", [])
        assert model.get("/flights/options") == []

    def test_write_through_leaf_creates_branch(self):
        """A leaf on the way to a deeper path is replaced by a branch."""
        model = DataModel()
        model.set("/a", "leaf")
        model.set("/a/b", 1)
        assert model.get("/a") == {"b": 1}

    def test_missing_path_default(self):
        model = DataModel()
        assert model.get("/nope/never") is None
        assert model.get("/nope", "fallback") == "fallback"

    def test_entry_without_tag_reads_empty(self):
        """An entry carrying no value tag is read as an empty string."""
        model = DataModel()
        model.apply("/form", [DataEntry(key="query")])
        assert model.get("/form/query") == ""

    def test_tag_priority(self):
        """Readers prefer string, then number, then bool, then json."""
        entry = DataEntry.model_validate({"key": "k", "valueNumber": 3, "valueBool": True})
        assert entry.value() == 3
