"""Duration and pieces-per-minute arithmetic."""

from __future__ import annotations


def split_seconds(total: int) -> tuple[int, int, int]:
    """Seconds ➜ (hours, minutes, seconds)."""
    return total // 3600, (total % 3600) // 60, total % 60


def join_hms(hours: int, minutes: int, seconds: int) -> int:
    return hours * 3600 + minutes * 60 + seconds


def format_duration(total: int) -> str:
    """Render as zero-padded ``HH:MM:SS``."""
    hours, minutes, seconds = split_seconds(total)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def compute_ppm(time_in_seconds: int | None, pieces: int | None) -> float:
    """Pieces per minute, rounded to two decimals; 0.0 for non-positive inputs."""
    if not pieces or pieces <= 0 or not time_in_seconds or time_in_seconds <= 0:
        return 0.0
    return round(pieces / (time_in_seconds / 60), 2)


def format_ppm(ppm: float) -> str:
    return f"{ppm:.2f}"
