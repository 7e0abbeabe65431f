from datetime import date, timedelta
from typing import Optional, Tuple, Union


def _as_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def next_streak(
    current: Optional[int],
    best: Optional[int],
    last_completion: Union[date, str, None],
    today: date,
) -> Tuple[int, int]:
    """Return (current_streak, best_streak) after completing an act on `today`.

    Consecutive day: +1. Same day: unchanged. Anything else: back to 1.
    """
    current = current or 0
    best = best or 0
    last = _as_date(last_completion)

    if last == today - timedelta(days=1):
        current += 1
    elif last == today:
        pass
    else:
        current = 1

    return current, max(best, current)


def streak_message(current: int) -> str:
    if current <= 0:
        return "Complete today's act to start your streak!"
    if current == 1:
        return "Great start! Keep it going!"
    if current < 7:
        return "You're on fire! 🔥"
    if current < 30:
        return "Incredible dedication! ✨"
    return "You're a kindness champion! 🏆"
