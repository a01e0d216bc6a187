import pytest

from core.settings import Effect, QuerySettings, apply_setting


def test_defaults():
    settings = QuerySettings()
    assert settings.data_source == "jamming/agg"
    assert settings.lookback_hours == 24
    assert settings.altitudes == "FL100-FL450"
    assert settings.max_ratio_bad == 0.05
    assert settings.jamming_severity_levels == ()
    assert settings.severity_scheme == "v3"


def test_apply_setting_is_pure():
    original = QuerySettings()
    updated, effect = apply_setting(original, "lookback_hours", "12")
    assert effect is Effect.DEBOUNCED_REFRESH
    assert updated.lookback_hours == 12
    assert original.lookback_hours == 24


def test_same_value_has_no_effect():
    settings = QuerySettings()
    updated, effect = apply_setting(settings, "grouped", False)
    assert effect is Effect.NONE
    assert updated is settings


def test_unknown_setting_and_bad_source():
    with pytest.raises(ValueError):
        apply_setting(QuerySettings(), "colour", "red")
    with pytest.raises(ValueError):
        apply_setting(QuerySettings(), "data_source", "jamming/other")


def test_bool_coercion_from_strings():
    settings, _ = apply_setting(QuerySettings(), "altitude_summed", "true")
    assert settings.altitude_summed is True
    settings, _ = apply_setting(settings, "altitude_summed", "off")
    assert settings.altitude_summed is False


def test_all_or_nothing_selection_means_no_filter():
    settings, _ = apply_setting(QuerySettings(), "jamming_severity_levels", ["zero", "low", "high"])
    assert settings.jamming_severity_levels == ()

    settings, _ = apply_setting(settings, "jamming_severity_levels", ["high"])
    assert settings.jamming_severity_levels == ("high",)

    settings, _ = apply_setting(settings, "spoofing_segments", "during,during-after")
    assert settings.spoofing_segments == ("during", "during-after")


def test_severity_levels_validated_against_active_scheme():
    with pytest.raises(ValueError):
        apply_setting(QuerySettings(), "jamming_severity_levels", ["moderate"])

    settings, _ = apply_setting(QuerySettings(), "jamming_severity_levels", ["high"])
    settings, _ = apply_setting(settings, "severity_scheme", "v4")
    assert settings.jamming_severity_levels == ()
    settings, _ = apply_setting(settings, "jamming_severity_levels", ["moderate"])
    assert settings.jamming_severity_levels == ("moderate",)


def test_irrelevant_fields_are_kept_when_source_changes():
    settings, _ = apply_setting(QuerySettings(), "resolution", 5)
    settings, _ = apply_setting(settings, "data_source", "jamming/coverage")
    assert settings.resolution == 5
