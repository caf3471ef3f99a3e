"""
Request guard configuration.

Settings are read once (when the middleware is constructed) into an
immutable GuardConfig. Invalid policy values are a ConfigurationError at
startup rather than a surprise on the first suspicious request.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.conf import settings

from core.exceptions import ConfigurationError

FAIL_OPEN = 'open'
FAIL_CLOSED = 'closed'

DEFAULTS = {
    'ENABLED': True,
    'THRESHOLD': 6,
    'RATE_LIMIT': 120,
    'RATE_WINDOW': 60,
    'MAX_BODY_BYTES': 1024 * 1024,
    'FAIL_MODE': FAIL_CLOSED,
    'TRUST_FORWARDED_FOR': False,
    'CACHE_PREFIX': 'guard',
}


@dataclass(frozen=True)
class GuardConfig:
    enabled: bool = True
    threshold: int = 6
    rate_limit: int = 120
    rate_window: int = 60
    max_body_bytes: int = 1024 * 1024
    fail_mode: str = FAIL_CLOSED
    trust_forwarded_for: bool = False
    cache_prefix: str = 'guard'

    def __post_init__(self):
        if self.threshold < 1:
            raise ConfigurationError("GUARD THRESHOLD must be at least 1.")
        if self.rate_limit < 1 or self.rate_window < 1:
            raise ConfigurationError("GUARD RATE_LIMIT and RATE_WINDOW must be positive.")
        if self.max_body_bytes < 1:
            raise ConfigurationError("GUARD MAX_BODY_BYTES must be positive.")
        if self.fail_mode not in (FAIL_OPEN, FAIL_CLOSED):
            raise ConfigurationError(
                f"GUARD FAIL_MODE must be '{FAIL_OPEN}' or '{FAIL_CLOSED}', got {self.fail_mode!r}."
            )

    @property
    def fail_open(self) -> bool:
        return self.fail_mode == FAIL_OPEN

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None) -> 'GuardConfig':
        """Build the config from `settings.GUARD`, filling in defaults."""
        values = dict(DEFAULTS)
        values.update(getattr(settings, 'GUARD', {}) or {})
        values.update(overrides or {})

        unknown = set(values) - set(DEFAULTS)
        if unknown:
            raise ConfigurationError(f"Unknown GUARD settings: {', '.join(sorted(unknown))}")

        try:
            return cls(
                enabled=bool(values['ENABLED']),
                threshold=int(values['THRESHOLD']),
                rate_limit=int(values['RATE_LIMIT']),
                rate_window=int(values['RATE_WINDOW']),
                max_body_bytes=int(values['MAX_BODY_BYTES']),
                fail_mode=str(values['FAIL_MODE']).lower(),
                trust_forwarded_for=bool(values['TRUST_FORWARDED_FOR']),
                cache_prefix=str(values['CACHE_PREFIX']),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid GUARD setting: {e}") from e
