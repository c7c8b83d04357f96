"""Tests für das Konfigurationssystem (Schema, Defaults, YAML-Manager)."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.schema import BookingRules, SchoolCalendarConfig, SchoolConfig, Weekday
from config.defaults import default_booking_rules, default_calendar, default_school_config
from config.manager import ConfigManager


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_calendar_valid(self):
        """Default-Öffnungszeiten: 09-17 Uhr, Mittag 13-14 Uhr, Sonntag Ruhetag."""
        cal = default_calendar()
        assert cal.day_start_time == "09:00"
        assert cal.day_end_time == "17:00"
        assert cal.lunch_start_time == "13:00"
        assert cal.lunch_end_time == "14:00"
        assert cal.weekly_holiday == Weekday.SUNDAY
        assert cal.has_lunch

    def test_default_booking_rules(self):
        rules = default_booking_rules()
        assert rules.min_lead_days == 1
        assert rules.cancelled_blocks_slot is True
        assert rules.max_search_days == 365

    def test_default_school_config_valid(self):
        """Vollständige Default-Config ist valide."""
        config = default_school_config()
        assert config.school_name == "Muster-Fahrschule"
        assert config.calendar.weekly_holiday == Weekday.SUNDAY


# ─── WOCHENTAGE ───────────────────────────────────────────────────────────────

class TestWeekday:
    @pytest.mark.parametrize("raw", ["sunday", "Sunday", "SUNDAY", " sunday "])
    def test_parse_case_insensitive(self, raw):
        assert Weekday.parse(raw) == Weekday.SUNDAY

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            Weekday.parse("SONNTAG")

    def test_day_index_matches_date_weekday(self):
        """MONDAY=0 … SUNDAY=6 wie date.weekday()."""
        assert Weekday.MONDAY.day_index == 0
        assert Weekday.SATURDAY.day_index == 5
        assert Weekday.SUNDAY.day_index == 6


# ─── PYDANTIC-VALIDIERUNG ─────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_times_are_normalized(self):
        """"9:00" wird zu "09:00"."""
        cal = SchoolCalendarConfig(day_start_time="9:00", day_end_time="17:0")
        assert cal.day_start_time == "09:00"
        assert cal.day_end_time == "17:00"

    def test_empty_lunch_means_none(self):
        cal = SchoolCalendarConfig(day_start_time="09:00", day_end_time="12:00",
                                   lunch_start_time="", lunch_end_time="")
        assert cal.lunch_start_time is None
        assert not cal.has_lunch

    def test_weekday_lowercase_accepted(self):
        cal = SchoolCalendarConfig(day_start_time="09:00", day_end_time="12:00",
                                   weekly_holiday="saturday")
        assert cal.weekly_holiday == Weekday.SATURDAY

    def test_start_after_end_raises(self):
        with pytest.raises(ValidationError):
            SchoolCalendarConfig(day_start_time="17:00", day_end_time="09:00")

    def test_non_numeric_time_raises(self):
        with pytest.raises(ValidationError):
            SchoolCalendarConfig(day_start_time="ab:cd", day_end_time="17:00")

    def test_lunch_needs_both_ends(self):
        """Nur Beginn der Mittagspause → Validierungsfehler."""
        with pytest.raises(ValidationError):
            SchoolCalendarConfig(day_start_time="09:00", day_end_time="17:00",
                                 lunch_start_time="13:00")

    def test_lunch_outside_day_raises(self):
        with pytest.raises(ValidationError):
            SchoolCalendarConfig(day_start_time="09:00", day_end_time="17:00",
                                 lunch_start_time="17:00", lunch_end_time="18:00")

    def test_lead_days_bounds(self):
        with pytest.raises(ValidationError):
            BookingRules(min_lead_days=-1)
        with pytest.raises(ValidationError):
            BookingRules(min_lead_days=31)


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Config speichern, laden und validieren, vollständiger Roundtrip."""
        config = default_school_config()
        mgr = ConfigManager()
        mgr.CONFIG_DIR = tmp_path
        mgr.DEFAULT_CONFIG = tmp_path / "school_config.yaml"

        mgr.save(config)
        assert mgr.DEFAULT_CONFIG.exists()

        loaded = mgr.load(mgr.DEFAULT_CONFIG)
        assert loaded == config

    def test_yaml_contains_german_comments(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "school_config.yaml")
        mgr.save(default_school_config())
        text = mgr.DEFAULT_CONFIG.read_text(encoding="utf-8")
        assert "Öffnungszeiten" in text
        assert "Buchungsregeln" in text
        assert "weekly_holiday: SUNDAY" in text

    def test_roundtrip_without_weekly_holiday(self, tmp_path: Path):
        config = default_school_config()
        config = config.model_copy(update={
            "calendar": config.calendar.model_copy(update={"weekly_holiday": None}),
        })
        mgr = ConfigManager(tmp_path / "c.yaml")
        mgr.save(config)
        assert mgr.load().calendar.weekly_holiday is None

    def test_first_run_check_no_file(self, tmp_path: Path):
        """first_run_check gibt True zurück wenn keine Config existiert."""
        mgr = ConfigManager()
        mgr.DEFAULT_CONFIG = tmp_path / "nonexistent.yaml"
        assert mgr.first_run_check() is True

    def test_first_run_check_with_file(self, tmp_path: Path):
        """first_run_check gibt False zurück wenn Config existiert."""
        mgr = ConfigManager(tmp_path / "school_config.yaml")
        mgr.save(default_school_config())
        assert mgr.first_run_check() is False

    def test_load_nonexistent_raises(self, tmp_path: Path):
        """Laden einer nicht-existenten Datei → FileNotFoundError."""
        mgr = ConfigManager()
        with pytest.raises(FileNotFoundError):
            mgr.load(tmp_path / "not_there.yaml")

    def test_load_invalid_raises_value_error(self, tmp_path: Path):
        """Ungültige Werte in der YAML-Datei → ValueError mit Dateipfad."""
        path = tmp_path / "broken.yaml"
        path.write_text(
            "school_name: Test\n"
            "calendar:\n"
            "  day_start_time: '18:00'\n"
            "  day_end_time: '09:00'\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="broken.yaml"):
            ConfigManager().load(path)

    def test_load_minimal_yaml_uses_rule_defaults(self, tmp_path: Path):
        path = tmp_path / "minimal.yaml"
        path.write_text(
            "school_name: Mini\n"
            "calendar:\n"
            "  day_start_time: '08:00'\n"
            "  day_end_time: '12:00'\n",
            encoding="utf-8",
        )
        config = ConfigManager().load(path)
        assert isinstance(config, SchoolConfig)
        assert config.booking == BookingRules()
