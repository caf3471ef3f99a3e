"""
Request guard: per-request verdicts and the CLEAN -> SUSPICIOUS -> BLOCKED
state machine.

The verdict for a request only depends on the persisted state of its
identity and on the request itself, so every worker reaches the same
decision for the same client.
"""

import enum
import logging
from typing import Optional, Sequence

from core.exceptions import GuardPersistenceError

from .conf import GuardConfig
from .descriptor import RequestDescriptor
from .models import GuardRecord
from .rules import DEFAULT_RULES, Rule, RuleContext, Severity, evaluate_rules
from .store import GuardStore

logger = logging.getLogger(__name__)


class GuardVerdict(enum.Enum):
    ALLOW = 'allow'
    DENY = 'deny'    # this request only
    BLOCK = 'block'  # this request and every later one from the identity

    @property
    def allowed(self) -> bool:
        return self is GuardVerdict.ALLOW


class RequestGuard:
    """
    Evaluate requests against the rule set and escalate abusive identities.

    Verdicts:
    - BLOCK: identity already blocked, a CRITICAL rule fired, or the
      accumulated score reached the threshold
    - DENY: a MEDIUM or HIGH rule fired below the threshold
    - ALLOW: nothing fired, or only LOW rules below the threshold

    When the store cannot be reached the configured fail mode decides:
    'closed' denies the request, 'open' allows it. Both are logged.
    """

    def __init__(
        self,
        config: Optional[GuardConfig] = None,
        store: Optional[GuardStore] = None,
        rules: Sequence[Rule] = DEFAULT_RULES,
    ):
        self.config = config or GuardConfig.from_settings()
        self.store = store or GuardStore(self.config)
        self.rules = tuple(rules)

    def evaluate(self, descriptor: RequestDescriptor) -> GuardVerdict:
        if not self.config.enabled:
            return GuardVerdict.ALLOW

        try:
            return self._evaluate(descriptor)
        except GuardPersistenceError as e:
            verdict = GuardVerdict.ALLOW if self.config.fail_open else GuardVerdict.DENY
            logger.error(
                "Guard store unavailable, failing %s for %s %s: %s",
                self.config.fail_mode, descriptor.method, descriptor.path, e,
            )
            return verdict

    def _evaluate(self, descriptor: RequestDescriptor) -> GuardVerdict:
        identity = descriptor.identity

        if self.store.blocked_keys(identity.keys):
            return GuardVerdict.BLOCK

        context = RuleContext(
            max_body_bytes=self.config.max_body_bytes,
            rate_limit=self.config.rate_limit,
            request_count=self.store.count_request(identity.actor_key),
        )
        matches = evaluate_rules(descriptor, context, self.rules)
        if not matches:
            return GuardVerdict.ALLOW

        verdict = GuardVerdict.DENY if matches[0].severity >= Severity.MEDIUM else GuardVerdict.ALLOW
        outcome = self.store.record_violations(
            identity.actor_key, matches, descriptor, verdict.value
        )

        if outcome.state == GuardRecord.State.BLOCKED:
            if outcome.newly_blocked:
                logger.warning(
                    "Blocked %s after %s (score %s) on %s %s",
                    identity.actor_key, matches[0].rule, outcome.score,
                    descriptor.method, descriptor.path,
                )
            return GuardVerdict.BLOCK

        logger.info(
            "Guard rule %s fired for %s (score %s): %s",
            matches[0].rule, identity.actor_key, outcome.score, verdict.value,
        )
        return verdict

    def reset(self, identity_key: str) -> bool:
        """Administrative reset of a blocked or suspicious identity."""
        return self.store.reset(identity_key)
