"""
Persistence for request guard state.

Per-identity state lives in GuardRecord rows. Every change to a record
happens inside a transaction holding the row lock, so concurrent requests
from one identity are applied one after the other: the threshold comparison
and the transition to BLOCKED see every earlier increment, and exactly one
request performs the transition.

Request bursts are counted in fixed windows, one cache key per identity and
window. The default cache is the database cache table, shared by every
worker; its `incr` is a read followed by a write, so counting runs inside a
transaction, which SQLite's BEGIN IMMEDIATE serializes. Redis (opt-in) has a
native atomic `incr`.

All database and cache failures surface as GuardPersistenceError; the
engine decides whether that fails open or closed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from django.core.cache import cache as default_cache
from django.db import DatabaseError, transaction
from django.utils import timezone

from core.exceptions import GuardPersistenceError

from .conf import GuardConfig
from .descriptor import RequestDescriptor
from .models import GuardEvent, GuardRecord
from .rules import RuleMatch, Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordOutcome:
    """Result of recording violations for one identity."""
    state: str
    score: int
    newly_blocked: bool


class GuardStore:
    """Database and cache access for the request guard."""

    def __init__(self, config: GuardConfig, cache=None):
        self.config = config
        self.cache = cache or default_cache

    def rate_key(self, identity_key: str, now: Optional[float] = None) -> str:
        """Cache key of the burst counter for the window containing `now`."""
        bucket = int((time.time() if now is None else now) // self.config.rate_window)
        return f'{self.config.cache_prefix}:rate:{identity_key}:{bucket}'

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def blocked_keys(self, keys: Iterable[str]) -> List[str]:
        """Return the subset of `keys` currently in the BLOCKED state."""
        try:
            return list(
                GuardRecord.objects.filter(
                    identity_key__in=list(keys),
                    state=GuardRecord.State.BLOCKED,
                ).values_list('identity_key', flat=True)
            )
        except DatabaseError as e:
            raise GuardPersistenceError(f"Could not read guard state: {e}") from e

    def get_state(self, identity_key: str) -> str:
        try:
            record = GuardRecord.objects.filter(identity_key=identity_key).first()
        except DatabaseError as e:
            raise GuardPersistenceError(f"Could not read guard state: {e}") from e
        return record.state if record else GuardRecord.State.CLEAN

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def count_request(self, identity_key: str) -> int:
        """
        Count one request in the current rate window.

        Returns:
            int: Requests seen in the window, this one included
        """
        key = self.rate_key(identity_key)
        # a key outlives its window so a late incr() still finds it
        timeout = self.config.rate_window * 2
        try:
            with transaction.atomic():
                self.cache.add(key, 0, timeout=timeout)
                try:
                    return self.cache.incr(key)
                except ValueError:
                    # culled between add() and incr()
                    self.cache.set(key, 1, timeout=timeout)
                    return 1
        except Exception as e:
            raise GuardPersistenceError(f"Could not update request counter: {e}") from e

    def record_violations(
        self,
        identity_key: str,
        matches: Sequence[RuleMatch],
        descriptor: Optional[RequestDescriptor] = None,
        verdict: str = '',
    ) -> RecordOutcome:
        """
        Atomically add violations to an identity and apply the threshold.

        A CRITICAL match, or the score reaching the configured threshold,
        moves the identity to BLOCKED. An identity that is already BLOCKED
        is left untouched.

        Args:
            identity_key: Key the violations are charged to
            matches: Rule matches for the current request (non-empty)
            descriptor: Request the matches came from, for the event log
            verdict: Verdict name to record with the events when not blocked

        Returns:
            RecordOutcome
        """
        try:
            with transaction.atomic():
                record, _ = GuardRecord.objects.select_for_update().get_or_create(
                    identity_key=identity_key
                )
                if record.is_blocked:
                    return RecordOutcome(record.state, record.score, newly_blocked=False)

                critical = any(m.severity == Severity.CRITICAL for m in matches)
                record.score += sum(m.severity.weight for m in matches)
                record.violation_count += len(matches)
                record.last_rule = matches[0].rule

                newly_blocked = critical or record.score >= self.config.threshold
                if newly_blocked:
                    record.state = GuardRecord.State.BLOCKED
                    record.blocked_at = timezone.now()
                else:
                    record.state = GuardRecord.State.SUSPICIOUS
                record.save()

                event_verdict = 'block' if newly_blocked else verdict
                events = [
                    self._event(identity_key, GuardEvent.Kind.VIOLATION, descriptor,
                                rule=m.rule, severity=m.severity.name.lower(),
                                verdict=event_verdict, detail=m.detail)
                    for m in matches
                ]
                if newly_blocked:
                    events.append(self._event(identity_key, GuardEvent.Kind.BLOCKED, descriptor,
                                              rule=matches[0].rule, verdict='block'))
                GuardEvent.objects.bulk_create(events)

                return RecordOutcome(record.state, record.score, newly_blocked)
        except DatabaseError as e:
            raise GuardPersistenceError(f"Could not record guard violation: {e}") from e

    def reset(self, identity_key: str) -> bool:
        """
        Administrative reset: clear the state and score of an identity.

        Returns:
            bool: True if a record existed
        """
        try:
            with transaction.atomic():
                record = GuardRecord.objects.select_for_update().filter(
                    identity_key=identity_key
                ).first()
                if record is None:
                    return False
                record.state = GuardRecord.State.CLEAN
                record.score = 0
                record.violation_count = 0
                record.blocked_at = None
                record.save()
                GuardEvent.objects.create(
                    identity_key=identity_key,
                    kind=GuardEvent.Kind.RESET,
                )
        except DatabaseError as e:
            raise GuardPersistenceError(f"Could not reset guard state: {e}") from e

        try:
            self.cache.delete(self.rate_key(identity_key))
        except Exception as e:
            raise GuardPersistenceError(f"Could not clear request counter: {e}") from e
        logger.info("Guard state reset for %s", identity_key)
        return True

    @staticmethod
    def _event(identity_key, kind, descriptor, rule='', severity='', verdict='', detail=''):
        return GuardEvent(
            identity_key=identity_key,
            kind=kind,
            rule=rule,
            severity=severity,
            verdict=verdict,
            detail=detail[:255],
            ip_address=descriptor.remote_addr[:64] if descriptor else '',
            request_method=descriptor.method[:10] if descriptor else '',
            request_path=descriptor.path[:500] if descriptor else '',
        )
