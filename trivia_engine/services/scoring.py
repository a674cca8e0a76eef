"""
Round scoring: base points, time bonus and streak bonus
"""
import math

from trivia_engine.schemas.rounds import ScoreBreakdown

BASE_POINTS = 100
MAX_TIME_BONUS = 50
TIME_BONUS_WINDOW_MS = 30_000
STREAK_BONUS_PER_STEP = 10
MAX_STREAK_BONUS = 50


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def score_round(
    correct: bool,
    answered_at: int,
    open_at: int,
    round_ends_at: int,
    prev_streak: int,
) -> ScoreBreakdown:
    """
    Score one answer; timestamps are epoch milliseconds

    Up to 30 seconds of remaining time maps linearly onto 0-50 bonus points.
    Wrong answers score nothing and reset the streak.
    """
    if not correct:
        return ScoreBreakdown(base=0, time_bonus=0, streak_bonus=0, delta=0, next_streak=0)

    ends_at = max(open_at, round_ends_at)
    answered = min(answered_at, ends_at)
    remaining_ms = max(0, ends_at - answered)
    time_bonus = int(_clamp(math.floor(remaining_ms * MAX_TIME_BONUS / TIME_BONUS_WINDOW_MS), 0, MAX_TIME_BONUS))
    streak_bonus = int(_clamp(prev_streak * STREAK_BONUS_PER_STEP, 0, MAX_STREAK_BONUS))

    return ScoreBreakdown(
        base=BASE_POINTS,
        time_bonus=time_bonus,
        streak_bonus=streak_bonus,
        delta=BASE_POINTS + time_bonus + streak_bonus,
        next_streak=prev_streak + 1,
    )
