"""Default machine limits and tool colors.

These match a typical small hobby router; users should adjust them to
their machine's controller settings.
"""

# Per-axis rapid ceilings, mm/min
DEFAULT_MAX_RATE_X = 3000.0
DEFAULT_MAX_RATE_Y = 3000.0
DEFAULT_MAX_RATE_Z = 2000.0

# Used when a rapid has no axis displacement above the epsilon, mm/min
DEFAULT_RAPID_SPEED = 3000.0

# Per-axis acceleration, mm/s^2
DEFAULT_ACCEL_X = 200.0
DEFAULT_ACCEL_Y = 200.0
DEFAULT_ACCEL_Z = 80.0

# Tool change overhead, seconds
DEFAULT_MANUAL_TOOL_CHANGE = 30.0   # M0 + "tool" comment
DEFAULT_AUTO_TOOL_CHANGE = 10.0     # M6

# Tool N without a custom color gets DEFAULT_TOOL_PALETTE[N % 8]
DEFAULT_TOOL_PALETTE: tuple[str, ...] = (
    "#00ccff",  # cyan/blue
    "#00ff88",  # green
    "#ff4dff",  # magenta
    "#ffff00",  # yellow
    "#ff8800",  # orange
    "#8888ff",  # blue
    "#ff0088",  # red-pink
    "#00ffff",  # cyan
)
