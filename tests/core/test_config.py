"""Tests for configuration models and validation."""

from parentconnect.core.config import Config, validate_config
from parentconnect.core.geo import Coordinate, NamedPlace


def place(name, lat=37.77, lon=-122.42):
    return NamedPlace(name=name, coordinate=Coordinate(lat, lon))


class TestFindPlace:
    """Tests for Config.find_place()."""

    def test_case_insensitive(self):
        config = Config(saved_places=[place("Home")])
        assert config.find_place("  home ").name == "Home"

    def test_unknown(self):
        assert Config().find_place("Work") is None


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_defaults_are_valid(self):
        result = validate_config(Config())
        assert result.valid is True
        assert result.errors == []

    def test_unknown_backend(self):
        result = validate_config(Config(storage_backend="postgres"))

        assert result.valid is False
        assert result.critical_errors[0].field == "storage_backend"

    def test_max_occurrences_bounds(self):
        assert validate_config(Config(max_occurrences=0)).valid is False
        assert validate_config(Config(max_occurrences=11)).valid is False
        assert validate_config(Config(max_occurrences=1)).valid is True

    def test_unknown_privacy_level(self):
        result = validate_config(Config(default_privacy_level="Secret"))
        assert result.critical_errors[0].field == "default_privacy_level"

    def test_empty_age_ranges_is_warning(self):
        result = validate_config(Config(age_ranges=()))

        assert result.valid is True
        assert [w.field for w in result.warnings] == ["age_ranges"]

    def test_duplicate_place_is_warning(self):
        result = validate_config(Config(saved_places=[place("Home"), place("home")]))

        assert result.valid is True
        assert result.warnings[0].field == "saved_places[1].name"
