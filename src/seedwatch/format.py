"""Human-readable byte sizes and transfer rates."""

from __future__ import annotations

_UNITS = (
    (1024**4, "TB"),
    (1024**3, "GB"),
    (1024**2, "MB"),
    (1024, "KB"),
)


def human_size(num_bytes: float) -> str:
    for factor, unit in _UNITS:
        if num_bytes >= factor:
            return f"{num_bytes / factor:.2f} {unit}"
    return f"{num_bytes:.2f} B"


def human_rate(bytes_per_sec: float) -> str:
    if bytes_per_sec <= 0:
        return "0 B/s"
    return human_size(bytes_per_sec) + "/s"
