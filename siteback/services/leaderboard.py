from __future__ import annotations

from typing import Dict, Iterable, List

from ..schemas import Attempt, LeaderboardEntry


def build_leaderboard(attempts: Iterable[Attempt]) -> List[LeaderboardEntry]:
    """
    Rank players by their best rate.

    Each user appears once with their maximum rate. Ordering is rate
    descending, then userName ascending; ranks run 1..N in that order, so
    equal rates still get distinct ranks.
    """
    best: Dict[str, int] = {}
    for attempt in attempts:
        current = best.get(attempt.user_name)
        if current is None or attempt.rate > current:
            best[attempt.user_name] = attempt.rate

    ordered = sorted(best.items(), key=lambda item: (-item[1], item[0]))
    return [
        LeaderboardEntry(rank=index, userName=user_name, rate=rate)
        for index, (user_name, rate) in enumerate(ordered, start=1)
    ]
