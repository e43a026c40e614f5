"""Application preferences (persisted to disk)."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path

from .defaults import DEFAULT_AUTO_TOOL_CHANGE, DEFAULT_MANUAL_TOOL_CHANGE
from .machine_profiles import MachineLimits, MachineModel, get_profile


@dataclass
class AppSettings:
    """User preferences, serialized to ~/.gcodesim/settings.json."""

    machine: str = MachineModel.DEFAULT.value
    manual_tool_change: float = DEFAULT_MANUAL_TOOL_CHANGE
    auto_tool_change: float = DEFAULT_AUTO_TOOL_CHANGE
    playback_speed: float = 1.0
    last_open_dir: str = ""

    @staticmethod
    def _path() -> Path:
        return Path.home() / ".gcodesim" / "settings.json"

    def machine_limits(self) -> MachineLimits:
        """Limits of the selected profile with the saved tool-change times."""
        return get_profile(self.machine).limits.with_overrides(
            manual_tool_change=self.manual_tool_change,
            auto_tool_change=self.auto_tool_change,
        )

    def save(self) -> None:
        p = self._path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls) -> "AppSettings":
        p = cls._path()
        if p.exists():
            data = json.loads(p.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        return cls()
