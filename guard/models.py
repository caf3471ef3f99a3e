"""
Request guard models.

This module defines the persisted side of the request guard:
- GuardRecord: per-identity state (clean, suspicious, blocked) and score
- GuardEvent: append-only log of rule violations and block transitions

Guard state lives in the database so it outlives the process and is shared
by every worker.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class GuardRecord(models.Model):
    """
    Persisted guard state for one identity key (`user:<id>` or `ip:<addr>`).

    Security Considerations:
    - BLOCKED is terminal; only an administrative reset clears it
    - Score and state are only changed under a row lock (see guard.store)
    """

    class State(models.TextChoices):
        CLEAN = 'clean', _('Clean')
        SUSPICIOUS = 'suspicious', _('Suspicious')
        BLOCKED = 'blocked', _('Blocked')

    identity_key = models.CharField(
        max_length=191,
        unique=True,
        help_text=_("Identity key, e.g. user:42 or ip:203.0.113.7"),
    )

    state = models.CharField(
        max_length=20,
        choices=State.choices,
        default=State.CLEAN,
        db_index=True,
        help_text=_("Current guard state"),
    )

    score = models.PositiveIntegerField(
        default=0,
        help_text=_("Accumulated severity weight of recorded violations"),
    )

    violation_count = models.PositiveIntegerField(
        default=0,
        help_text=_("Number of recorded rule violations"),
    )

    last_rule = models.CharField(
        max_length=64,
        blank=True,
        help_text=_("Most recent rule that fired"),
    )

    blocked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Timestamp when the identity was blocked"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']
        verbose_name = _("Guard Record")
        verbose_name_plural = _("Guard Records")

    def __str__(self):
        return f"{self.identity_key} ({self.state}, score {self.score})"

    @property
    def is_blocked(self) -> bool:
        return self.state == self.State.BLOCKED


class GuardEvent(models.Model):
    """
    Log entry for a rule violation or a block transition.

    Request bodies are never stored; they may carry card data.
    """

    class Kind(models.TextChoices):
        VIOLATION = 'violation', _('Violation')
        BLOCKED = 'blocked', _('Blocked')
        RESET = 'reset', _('Reset')

    identity_key = models.CharField(
        max_length=191,
        db_index=True,
        help_text=_("Identity key the event belongs to"),
    )

    kind = models.CharField(
        max_length=20,
        choices=Kind.choices,
        default=Kind.VIOLATION,
        db_index=True,
    )

    rule = models.CharField(
        max_length=64,
        blank=True,
        help_text=_("Rule that fired"),
    )

    severity = models.CharField(
        max_length=20,
        blank=True,
        help_text=_("Severity of the rule"),
    )

    verdict = models.CharField(
        max_length=20,
        blank=True,
        help_text=_("Verdict returned for the request"),
    )

    detail = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Short description of what matched"),
    )

    ip_address = models.CharField(max_length=64, blank=True)
    request_method = models.CharField(max_length=10, blank=True)
    request_path = models.CharField(max_length=500, blank=True)

    timestamp = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
    )

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['identity_key', 'timestamp'], name='guard_event_key_ts_idx'),
            models.Index(fields=['kind', 'timestamp'], name='guard_event_kind_ts_idx'),
        ]
        verbose_name = _("Guard Event")
        verbose_name_plural = _("Guard Events")

    def __str__(self):
        return f"{self.kind}: {self.identity_key} {self.rule}".strip()
