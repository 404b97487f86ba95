"""Settings for beam group repair, with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

DEFAULT_MAX_SPLIT_LOOPS = 10
DEFAULT_MAX_CHORD_DY = 0.5  # interline fraction


def _env_int(name: str, default: int) -> int:
    """Read an int env var with a default."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    """Read a float env var with a default."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    """
    Tunable tolerances of the beam group engine.

    Attributes:
        max_split_loops: Maximum number of splits performed while repairing
                         the groups of one measure.
        max_chord_dy:    Maximum vertical gap, in interline fractions, between
                         a chord tail and a beam passing over the chord.
    """

    max_split_loops: int = DEFAULT_MAX_SPLIT_LOOPS
    max_chord_dy: float = DEFAULT_MAX_CHORD_DY

    def __post_init__(self) -> None:
        if self.max_split_loops < 0:
            raise ValueError(f"max_split_loops must be >= 0, got {self.max_split_loops}.")
        if self.max_chord_dy <= 0:
            raise ValueError(f"max_chord_dy must be > 0, got {self.max_chord_dy}.")

    def with_overrides(
        self,
        max_split_loops: int | None = None,
        max_chord_dy: float | None = None,
    ) -> Settings:
        """Return a copy where every non-None argument replaces the current value."""
        changes: dict[str, int | float] = {}
        if max_split_loops is not None:
            changes["max_split_loops"] = max_split_loops
        if max_chord_dy is not None:
            changes["max_chord_dy"] = max_chord_dy
        return replace(self, **changes) if changes else self


def load_settings() -> Settings:
    """Build settings from ``BEAMGROUP_MAX_SPLIT_LOOPS`` and ``BEAMGROUP_MAX_CHORD_DY``."""
    return Settings(
        max_split_loops=_env_int("BEAMGROUP_MAX_SPLIT_LOOPS", DEFAULT_MAX_SPLIT_LOOPS),
        max_chord_dy=_env_float("BEAMGROUP_MAX_CHORD_DY", DEFAULT_MAX_CHORD_DY),
    )
