"""Unit system enum for the G20/G21 modal group."""

from enum import Enum


class Units(Enum):
    INCH = "inch"
    MM = "mm"

    def label(self) -> str:
        return "in" if self is Units.INCH else "mm"

    @property
    def gcode_modal(self) -> str:
        """G-code modal group 6 word."""
        return "G20" if self is Units.INCH else "G21"

    @classmethod
    def from_gcode(cls, code: int) -> "Units":
        if code == 20:
            return cls.INCH
        if code == 21:
            return cls.MM
        raise ValueError(f"G{code} is not a units word")
