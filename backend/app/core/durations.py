import re
from datetime import timedelta

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_UNIT_SECONDS = {'ms': 0.001, 's': 1, 'm': 60, 'h': 3600}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "90s", "15m", "1h" or "1h30m".

    Raises:
        ValueError: if the string is empty, malformed or not positive
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")

    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


def format_duration(duration: timedelta) -> str:
    """Render a duration as hours, minutes and seconds, e.g. "24h0m0s" """
    total = int(duration.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h{minutes}m{seconds}s"
