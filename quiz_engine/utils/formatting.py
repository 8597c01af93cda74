"""Display helpers for the rendering layer."""
from typing import Optional


def format_time(seconds: Optional[int]) -> str:
    """Format a countdown as MM:SS; ``--:--`` when there is no timer."""
    if seconds is None or seconds < 0:
        return "--:--"
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


def percentage_of(score: float, total: int) -> int:
    """Rounded percentage of correct answers, 0 for an empty test."""
    return round(score / total * 100) if total > 0 else 0


def rating_for(percentage: float) -> str:
    """Result band used to color the final score."""
    if percentage >= 80:
        return "success"
    if percentage >= 50:
        return "warning"
    return "error"
