"""Time helpers shared by the cookie tests."""

MINUTE = 60


def round_to_minute(seconds: float) -> int:
    """Round epoch seconds to the nearest whole minute."""
    return round(seconds / MINUTE) * MINUTE
