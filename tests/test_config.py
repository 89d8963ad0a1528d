import pytest

from inventory_watch import config
from inventory_watch.config import Preferences


def test_defaults_when_unset():
    prefs = config.load_preferences({})
    assert prefs == Preferences(preferred_country="US", preferred_store_number="R032", preferred_skus=frozenset())


def test_preferences_from_mapping():
    prefs = config.load_preferences(
        {
            "PREFERRED_COUNTRY": "CA",
            "PREFERRED_STORE_NUMBER": "R120",
            "PREFERRED_SKUS": "MKGR3C/A, MKGP3C/A,,MKGR3C/A",
        }
    )
    assert prefs.preferred_country == "CA"
    assert prefs.preferred_store_number == "R120"
    assert prefs.preferred_skus == frozenset({"MKGR3C/A", "MKGP3C/A"})


def test_blank_values_fall_back_to_defaults():
    prefs = config.load_preferences({"PREFERRED_COUNTRY": "  ", "PREFERRED_STORE_NUMBER": ""})
    assert prefs.preferred_country == "US"
    assert prefs.preferred_store_number == "R032"


def test_country_is_upper_cased():
    assert config.load_preferences({"PREFERRED_COUNTRY": " ca "}).preferred_country == "CA"
    assert config.load_preferences({"PREFERRED_COUNTRY": "us"}).preferred_country == "US"


def test_preferences_read_environment(monkeypatch):
    monkeypatch.setenv("PREFERRED_SKUS", "MKGT3LL/A")
    monkeypatch.delenv("PREFERRED_COUNTRY", raising=False)
    assert config.load_preferences().preferred_skus == {"MKGT3LL/A"}


def test_parse_sku_list_empty():
    assert config.parse_sku_list(None) == frozenset()
    assert config.parse_sku_list("") == frozenset()


@pytest.mark.parametrize(
    "raw, default, expected",
    [(None, True, True), ("yes", False, True), ("0", True, False), ("TRUE", False, True)],
)
def test_parse_bool(raw, default, expected):
    assert config._parse_bool(raw, default) is expected


def test_parse_int_falls_back_on_garbage():
    assert config._parse_int("sixty", 60) == 60
    assert config._parse_int("30", 60) == 30


def test_validate_rejects_relative_base_url(monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", "www.apple.com")
    with pytest.raises(RuntimeError):
        config.validate()


def test_validate_rejects_non_positive_interval(monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", "https://www.apple.com")
    monkeypatch.setattr(config, "POLL_INTERVAL_SECONDS", 0)
    with pytest.raises(RuntimeError):
        config.validate()
