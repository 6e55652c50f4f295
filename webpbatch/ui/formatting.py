import math

KB = 2 ** 10
MB = 2 ** 20
GB = 2 ** 30


def format_size(size: int) -> str:
    """Binary units, two decimals; a unit is used once the size is strictly above it."""
    if size > GB:
        return f"{size / GB:.2f} GB"
    if size > MB:
        return f"{size / MB:.2f} MB"
    if size > KB:
        return f"{size / KB:.2f} KB"
    return f"{size} B"


def format_millis(ms: int) -> str:
    if ms < 1000:
        return f"{ms} ms"

    seconds = ms / 1000.0
    if seconds < 60.0:
        return f"{seconds:.1f} s"

    return f"{math.floor(seconds / 60.0)} min {seconds % 60.0:.1f} s"


def format_duration(seconds: float) -> str:
    return format_millis(int(seconds * 1000))


def format_percent(value: float) -> str:
    return f"{value:.1f} %"
