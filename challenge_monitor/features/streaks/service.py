from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Sequence, Tuple

from challenge_monitor.features.daily_log.resolver import resolve_scorable_days
from challenge_monitor.models.challenge import Challenge, DailyLogEvent, LogStatus
from challenge_monitor.models.streak import StreakBoardEntry, StreakInfo


class StreakCalculator:
    """Deterministic walk over a challenge's active range. O(days in range)."""

    def compute(
        self,
        challenge: Challenge,
        events: Iterable[DailyLogEvent],
        today: date,
    ) -> StreakInfo:
        """
        Compute current and longest runs of FOLLOWED days.

        The walk covers start_date..min(end_date, today). Any day that does not
        resolve to FOLLOWED (NOT_FOLLOWED, SKIPPED, or nothing logged) closes the
        running streak. `current` is the run still open on the last walked day,
        which is the end date for challenges that already ended.
        """
        if challenge.start_date > today:
            # Not started yet
            return StreakInfo(challenge_id=challenge.id, current=0, longest=0)

        resolved = resolve_scorable_days(
            e for e in events if e.challenge_id == challenge.id
        )
        iteration_end = min(challenge.end_date, today)

        running = 0
        longest = 0
        day = challenge.start_date
        while day <= iteration_end:
            if resolved.get(day) == LogStatus.FOLLOWED:
                running += 1
            else:
                longest = max(longest, running)
                running = 0
            day += timedelta(days=1)

        # An ongoing streak may be the longest one
        longest = max(longest, running)

        return StreakInfo(
            challenge_id=challenge.id,
            current=running,
            longest=longest,
            evaluated_through=iteration_end,
        )

    def board(
        self,
        entries: Sequence[Tuple[Challenge, Sequence[DailyLogEvent]]],
        today: date,
    ) -> List[StreakBoardEntry]:
        """Streaks for several challenges: current desc, longest desc, title asc."""
        rows = []
        for challenge, events in entries:
            info = self.compute(challenge, events, today)
            rows.append(
                StreakBoardEntry(
                    challenge_id=challenge.id,
                    title=challenge.title,
                    is_active=challenge.is_active,
                    current=info.current,
                    longest=info.longest,
                )
            )
        return sorted(rows, key=lambda r: (-r.current, -r.longest, r.title, r.challenge_id))


# Singleton calculator used by services
streak_calculator = StreakCalculator()
