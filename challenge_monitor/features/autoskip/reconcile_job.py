"""
Auto-skip reconciliation.

Backfills a synthetic SKIPPED event for every active challenge that has no
actionable event on the target date. Running it twice for the same date is a
no-op the second time: the first run's SKIPPED event is itself actionable.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from challenge_monitor.core.config import settings
from challenge_monitor.core.locks import ChallengeLocks
from challenge_monitor.core.logging import log_event
from challenge_monitor.core.metrics import auto_skip_events_total, auto_skip_failures_total
from challenge_monitor.features.challenges.lifecycle import ChallengeLifecycle
from challenge_monitor.features.daily_log.event_store import EventLogStore
from challenge_monitor.features.daily_log.resolver import has_actionable_event
from challenge_monitor.models.challenge import LogStatus, NewLogEvent


@dataclass
class AutoSkipReport:
    target_date: date
    skipped: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    examined: int = 0

    def as_dict(self) -> dict:
        return {
            "target_date": self.target_date.isoformat(),
            "examined": self.examined,
            "skipped": list(self.skipped),
            "failed": {str(k): v for k, v in self.failed.items()},
            "skipped_count": len(self.skipped),
            "failed_count": len(self.failed),
        }


class AutoSkipReconciler:
    """
    Appends SKIPPED for challenges left unlogged on a date.

    Each challenge is handled under its own lock and independently of the
    others: a failure is logged and recorded, and the batch moves on. Aborting
    mid-list leaves processed challenges consistent and the rest eligible for
    the next run.
    """

    def __init__(
        self,
        store: EventLogStore,
        lifecycle: ChallengeLifecycle,
        locks: Optional[ChallengeLocks] = None,
        note: Optional[str] = None,
    ):
        self._store = store
        self._lifecycle = lifecycle
        self._locks = locks or ChallengeLocks()
        self._note = note or settings.AUTO_SKIP_NOTE

    def reconcile(self, target_date: date) -> List[int]:
        """Return ids of the challenges that were auto-skipped for target_date."""
        return self.run(target_date).skipped

    def run(self, target_date: date) -> AutoSkipReport:
        report = AutoSkipReport(target_date=target_date)
        candidates = self._store.get_active_challenges_in_range(target_date)

        for challenge in candidates:
            report.examined += 1
            try:
                if self._skip_if_unlogged(challenge.id, target_date):
                    report.skipped.append(challenge.id)
            except Exception as exc:
                report.failed[challenge.id] = str(exc) or exc.__class__.__name__
                auto_skip_failures_total.inc()
                log_event(
                    "error",
                    "auto_skip.challenge_failed",
                    challenge_id=challenge.id,
                    log_date=target_date.isoformat(),
                    error_code=exc.__class__.__name__,
                    exc_info=True,
                )

        log_event(
            "info",
            "auto_skip.finished",
            log_date=target_date.isoformat(),
            extra={
                "examined": report.examined,
                "skipped": len(report.skipped),
                "failed": len(report.failed),
            },
        )
        return report

    def _skip_if_unlogged(self, challenge_id: int, target_date: date) -> bool:
        with self._locks.hold(challenge_id):
            # Re-read under the lock: a manual log may have landed since the candidate query
            challenge = self._store.get_challenge(challenge_id)
            if challenge is None or not challenge.is_active or challenge.is_deleted:
                return False
            if not challenge.covers(target_date):
                return False

            events = self._store.get_events(challenge_id, target_date)
            if has_actionable_event(events, target_date):
                return False

            self._lifecycle.append(
                NewLogEvent(
                    challenge_id=challenge_id,
                    log_date=target_date,
                    status=LogStatus.SKIPPED,
                    notes=self._note,
                )
            )
            auto_skip_events_total.inc()
            log_event(
                "info",
                "auto_skip.skipped",
                challenge_id=challenge_id,
                event_type=LogStatus.SKIPPED.value,
                log_date=target_date.isoformat(),
            )
            return True
