"""Human-readable durations for screen time display."""


def format_seconds(seconds: float) -> str:
    """Format a duration in seconds, e.g. ``"1h 5m"`` or ``"45m"``."""
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_minutes(minutes: int) -> str:
    """Format a duration in minutes, e.g. ``"2h"``, ``"1h 30m"`` or ``"45m"``."""
    hours, mins = divmod(max(0, minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"
    return f"{mins}m"
