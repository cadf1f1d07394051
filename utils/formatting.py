from datetime import datetime

from constants.messages import Messages
from core.config import settings


def format_clock(seconds: int) -> str:
    """Countdown label, always HH:MM:SS."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_duration(seconds: int, lang: str = None) -> str:
    """Human readable time spent, e.g. '1 h 5 min' or '0 s'."""
    lang = lang or settings.LANGUAGE
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if hours > 0:
        parts.append(Messages.get("HOURS", lang).format(n=hours))
    if minutes > 0:
        parts.append(Messages.get("MINUTES", lang).format(n=minutes))
    if secs > 0 or (hours == 0 and minutes == 0):
        parts.append(Messages.get("SECONDS", lang).format(n=secs))
    return " ".join(parts)


def format_submitted_at(value: datetime) -> str:
    return value.strftime("%d/%m/%Y %H:%M")
