import dataclasses

import pytest

from bi_dashboard.preferences import STORAGE_KEYS, Preferences, reset


def test_defaults():
    prefs = Preferences()
    assert prefs.css_classes() == ["font-medium"]
    assert prefs == reset()


def test_css_classes_follow_flags():
    prefs = Preferences(dark_mode=True, colorblind_mode=True, font_size="large")
    assert prefs.css_classes() == ["dark-mode", "colorblind-mode", "font-large"]


def test_storage_round_trip_uses_fixed_keys():
    prefs = Preferences(high_contrast=True, font_size="small")
    stored = prefs.to_storage()

    assert stored == {
        "darkMode": "false",
        "highContrast": "true",
        "colorblindMode": "false",
        "fontSize": "small",
    }
    assert Preferences.from_storage(stored) == prefs


def test_from_storage_tolerates_missing_and_bad_values():
    prefs = Preferences.from_storage({"darkMode": "yes", "fontSize": "huge"})
    assert prefs == Preferences()


def test_with_changes_returns_new_value():
    prefs = Preferences()
    dark = prefs.with_changes(dark_mode=True)

    assert dark.dark_mode
    assert not prefs.dark_mode


def test_preferences_are_immutable_and_validated():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Preferences().dark_mode = True
    with pytest.raises(ValueError):
        Preferences(font_size="tiny")


def test_storage_keys_cover_every_setting():
    assert set(Preferences().to_storage()) == set(STORAGE_KEYS.values())
    assert set(STORAGE_KEYS) == {f.name for f in dataclasses.fields(Preferences)}
