"""Machine motion limits and named machine profiles.

Rates are in mm/min and accelerations in mm/s^2 (controller convention).
"""

from __future__ import annotations

import dataclasses
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .defaults import (
    DEFAULT_ACCEL_X,
    DEFAULT_ACCEL_Y,
    DEFAULT_ACCEL_Z,
    DEFAULT_AUTO_TOOL_CHANGE,
    DEFAULT_MANUAL_TOOL_CHANGE,
    DEFAULT_MAX_RATE_X,
    DEFAULT_MAX_RATE_Y,
    DEFAULT_MAX_RATE_Z,
    DEFAULT_RAPID_SPEED,
)

logger = logging.getLogger(__name__)

# FluidNC: $/axes/x/acceleration_mm_per_sec2=200
FLUIDNC_SETTING_PAT = re.compile(
    r"\$/axes/([xyz])/(acceleration_mm_per_sec2|max_rate_mm_per_min)\s*=\s*([^\r\n]+)",
    re.IGNORECASE,
)
# Grbl: $110=500.000 (max rate) / $120=10.000 (acceleration)
GRBL_SETTING_PAT = re.compile(r"\$(11[012]|12[012])\s*=\s*([^\s(]+)")

_GRBL_FIELDS = {
    "110": "max_rate_x", "111": "max_rate_y", "112": "max_rate_z",
    "120": "accel_x", "121": "accel_y", "122": "accel_z",
}


@dataclass(frozen=True)
class MachineLimits:
    """Kinematic limits used by the time estimator."""

    max_rate_x: float = DEFAULT_MAX_RATE_X   # mm/min
    max_rate_y: float = DEFAULT_MAX_RATE_Y
    max_rate_z: float = DEFAULT_MAX_RATE_Z
    accel_x: float = DEFAULT_ACCEL_X         # mm/s^2
    accel_y: float = DEFAULT_ACCEL_Y
    accel_z: float = DEFAULT_ACCEL_Z
    rapid_speed: float = DEFAULT_RAPID_SPEED  # mm/min, fallback for rapids
    manual_tool_change: float = DEFAULT_MANUAL_TOOL_CHANGE  # seconds
    auto_tool_change: float = DEFAULT_AUTO_TOOL_CHANGE

    @property
    def max_rates(self) -> tuple[float, float, float]:
        return (self.max_rate_x, self.max_rate_y, self.max_rate_z)

    @property
    def accels(self) -> tuple[float, float, float]:
        return (self.accel_x, self.accel_y, self.accel_z)

    def with_overrides(self, **changes: Optional[float]) -> MachineLimits:
        """Copy with every non-None keyword replaced."""
        return dataclasses.replace(
            self, **{k: float(v) for k, v in changes.items() if v is not None}
        )

    def validate(self) -> None:
        """Raise ValueError unless every limit is usable."""
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value):
                raise ValueError(f"{f.name} must be finite, got {value}")
            if f.name.endswith("tool_change"):
                if value < 0:
                    raise ValueError(f"{f.name} must not be negative, got {value}")
            elif value <= 0:
                raise ValueError(f"{f.name} must be positive, got {value}")

    @classmethod
    def from_controller_dump(
        cls, text: str, base: Optional[MachineLimits] = None
    ) -> MachineLimits:
        """Read rates and accelerations from a controller settings listing.

        Understands FluidNC ``$/axes/<axis>/...=`` lines and Grbl
        ``$110``-``$112`` / ``$120``-``$122``.  Settings that are missing,
        unparsable or zero keep the value from *base*.
        """
        base = base or cls()
        changes: dict[str, float] = {}

        found: list[tuple[str, str]] = []
        for axis, key, raw in FLUIDNC_SETTING_PAT.findall(text):
            prefix = "accel" if key.lower().startswith("accel") else "max_rate"
            found.append((f"{prefix}_{axis.lower()}", raw))
        for number, raw in GRBL_SETTING_PAT.findall(text):
            found.append((_GRBL_FIELDS[number], raw))

        for name, raw in found:
            try:
                value = float(raw.strip())
            except ValueError:
                logger.warning("Ignoring unparsable controller setting %s=%r", name, raw)
                continue
            if value > 0 and math.isfinite(value):
                changes[name] = value

        limits = dataclasses.replace(base, **changes)
        logger.debug(
            "Motion parameters: accel=%s max_rate=%s", limits.accels, limits.max_rates
        )
        return limits


@dataclass(frozen=True)
class MachineProfile:
    """Named set of limits for a kind of machine."""

    name: str
    description: str
    limits: MachineLimits

    def __str__(self) -> str:
        lim = self.limits
        return (
            f"{self.name}: {self.description}  "
            f"rapid X/Y/Z={lim.max_rate_x:g}/{lim.max_rate_y:g}/{lim.max_rate_z:g} mm/min  "
            f"accel X/Y/Z={lim.accel_x:g}/{lim.accel_y:g}/{lim.accel_z:g} mm/s²"
        )


class MachineModel(Enum):
    DEFAULT = "default"
    GRBL = "grbl"


_PROFILES: dict[MachineModel, MachineProfile] = {
    MachineModel.DEFAULT: MachineProfile(
        name="default",
        description="Hobby router with FluidNC-style defaults",
        limits=MachineLimits(),
    ),
    MachineModel.GRBL: MachineProfile(
        name="grbl",
        description="Grbl 1.1 factory settings",
        limits=MachineLimits(
            max_rate_x=500.0,
            max_rate_y=500.0,
            max_rate_z=500.0,
            accel_x=10.0,
            accel_y=10.0,
            accel_z=10.0,
            rapid_speed=500.0,
        ),
    ),
}


def get_profile(model: MachineModel | str) -> MachineProfile:
    """Look up a profile by enum member or name.

    Raises ValueError for unknown names.
    """
    return _PROFILES[MachineModel(model)]


def list_profiles() -> list[MachineProfile]:
    return list(_PROFILES.values())
