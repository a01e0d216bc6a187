"""
Query settings and the pure settings transition.

One QuerySettings value is owned by the refresh coordinator. UI events call
apply_setting(settings, name, value), which returns the new settings and the
effect the coordinator should run. Fields that do not apply to the selected
data source are ignored by the loaders, never cleared.
"""
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Tuple

from core.models import DATA_SOURCES, JAMMING_AGG, SPOOFING_SEGMENTS
from core.severity import DEFAULT_SCHEME, get_bucket_table

DEFAULT_LOOKBACK_HOURS = 24
DEFAULT_ALTITUDE = "FL100-FL450"
DEFAULT_N_OBS_MIN = 5


@dataclass(frozen=True)
class QuerySettings:
    data_source: str = JAMMING_AGG
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS
    altitudes: str = DEFAULT_ALTITUDE
    altitude_summed: bool = False
    hours_summed: bool = True
    n_obs_min: int = DEFAULT_N_OBS_MIN
    grouped: bool = False
    full_output: bool = False
    max_ratio_bad: float = 0.05
    max_n_bad: int = 3
    show_no_coverage: bool = False
    # H3 grid
    resolution: int = 3
    coordinates_source: str = "interpolated"
    max_time_diff_before_sec: int = 600
    max_time_diff_after_sec: int = 600
    # Spoofing
    show_both_spoofing_layers: bool = False
    spoofing_segments: Tuple[str, ...] = ()
    # Jamming
    jamming_severity_levels: Tuple[str, ...] = ()
    union_by_severity: bool = False
    severity_scheme: str = DEFAULT_SCHEME

    @property
    def is_spoofing(self) -> bool:
        return self.data_source.startswith("spoofing/")

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class Effect(str, Enum):
    """What the coordinator must do after a settings transition."""
    DEBOUNCED_REFRESH = "debounced_refresh"
    NONE = "none"


# ============================================================================
# Value coercion
# ============================================================================

def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _to_selection(allowed) -> Callable[[Any], Tuple[str, ...]]:
    """
    Checkbox groups: selecting nothing or everything means "no filter", which
    is represented by an empty tuple.
    """
    def coerce(value) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [v for v in value.split(",") if v]
        selected = tuple(dict.fromkeys(str(v) for v in value))
        unknown = [v for v in selected if v not in allowed]
        if unknown:
            raise ValueError(f"Unknown selection values: {', '.join(unknown)}")
        if len(selected) == len(allowed):
            return ()
        return selected
    return coerce


def _to_data_source(value) -> str:
    if value not in DATA_SOURCES:
        raise ValueError(f"Unknown data source: {value}")
    return value


def _to_scheme(value) -> str:
    get_bucket_table(value)
    return value


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "data_source": _to_data_source,
    "lookback_hours": int,
    "altitudes": str,
    "altitude_summed": _to_bool,
    "hours_summed": _to_bool,
    "n_obs_min": int,
    "grouped": _to_bool,
    "full_output": _to_bool,
    "max_ratio_bad": float,
    "max_n_bad": int,
    "show_no_coverage": _to_bool,
    "resolution": int,
    "coordinates_source": str,
    "max_time_diff_before_sec": int,
    "max_time_diff_after_sec": int,
    "show_both_spoofing_layers": _to_bool,
    "spoofing_segments": _to_selection(SPOOFING_SEGMENTS),
    "jamming_severity_levels": None,  # depends on the active scheme, see below
    "union_by_severity": _to_bool,
    "severity_scheme": _to_scheme,
}


def apply_setting(settings: QuerySettings, name: str, value: Any) -> Tuple[QuerySettings, Effect]:
    """
    Pure settings transition.

    Args:
        settings: current settings value
        name: field name (UI control id mapped 1:1 to a field)
        value: raw value from the control

    Returns:
        (new settings, effect). An unchanged value yields Effect.NONE.

    Raises:
        ValueError: unknown field or invalid value
    """
    if name not in _COERCERS:
        raise ValueError(f"Unknown setting: {name}")

    if name == "jamming_severity_levels":
        table = get_bucket_table(settings.severity_scheme)
        coerced = _to_selection(tuple(table.names))(value)
    else:
        coerced = _COERCERS[name](value)

    if getattr(settings, name) == coerced:
        return settings, Effect.NONE

    changes = {name: coerced}
    # Level names are scheme specific; a scheme switch invalidates the selection
    if name == "severity_scheme":
        changes["jamming_severity_levels"] = ()

    return dataclasses.replace(settings, **changes), Effect.DEBOUNCED_REFRESH
