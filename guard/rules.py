"""
Attack detection rules for the request guard.

Each rule inspects a RequestDescriptor and reports a RuleMatch when it
fires. Matches are plain values, not exceptions: the engine turns them into
verdicts. Severity decides what happens next:

- LOW: recorded, request still allowed
- MEDIUM / HIGH: recorded, request denied
- CRITICAL: identity blocked immediately

Non-critical matches add their weight to the identity's score; the identity
is blocked once the score reaches the configured threshold.
"""

import enum
import json
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
from urllib.parse import unquote_plus

from .descriptor import RequestDescriptor


class Severity(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def weight(self) -> int:
        """Score increment for one violation of this severity."""
        return SEVERITY_WEIGHTS[self]


SEVERITY_WEIGHTS = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 0,  # blocks outright
}


@dataclass(frozen=True)
class RuleContext:
    """Per-request facts the engine computes before rules run."""
    max_body_bytes: int
    rate_limit: int
    request_count: int = 0


@dataclass(frozen=True)
class RuleMatch:
    rule: str
    severity: Severity
    detail: str = ''


@dataclass(frozen=True)
class Rule:
    name: str
    severity: Severity
    check: Callable[[RequestDescriptor, RuleContext], Optional[str]]

    def evaluate(self, descriptor: RequestDescriptor, context: RuleContext) -> Optional[RuleMatch]:
        detail = self.check(descriptor, context)
        if detail is None:
            return None
        return RuleMatch(rule=self.name, severity=self.severity, detail=detail)


# ============================================================================
# SIGNATURES
# ============================================================================

PATH_TRAVERSAL_PATTERN = re.compile(r'(?:^|[/\\])\.\.(?:[/\\]|$)')

SQL_INJECTION_PATTERNS = [
    re.compile(
        r"\bunion\b[\s(]+(?:all\s+)?select\b\s*(?:[\d*@(]|null\b|\w+(?:\s*,\s*\w+)*\s+from\b)",
        re.IGNORECASE,
    ),
    re.compile(r"['\"`]\s*(?:or|and)\s+['\"`]?\w+['\"`]?\s*=\s*['\"`]?\w+", re.IGNORECASE),
    re.compile(r"['\"`]\s*(?:or|and)\s+\d+\s*=\s*\d+", re.IGNORECASE),
    # stacked statements must look like complete SQL, not prose after a semicolon
    re.compile(
        r";\s*(?:drop|truncate|alter)\s+(?:table|database|schema)\s+(?:if\s+exists\s+)?"
        r"[`\"\[]?\w+[`\"\]]?\s*(?:[;#&\"')]|--|$)",
        re.IGNORECASE,
    ),
    re.compile(r";\s*delete\s+from\s+\w+(?:\s+where\b|\s*(?:[;#&\"')]|--|$))", re.IGNORECASE),
    re.compile(r";\s*insert\s+into\s+\w+\s*(?:\(|values\b|select\b)", re.IGNORECASE),
    re.compile(r";\s*update\s+\w+\s+set\s+\w+\s*=", re.IGNORECASE),
    re.compile(r"\b(?:sleep|benchmark|pg_sleep)\s*\(\s*\d+\s*[,)]", re.IGNORECASE),
    re.compile(r"\bwaitfor\s+delay\b", re.IGNORECASE),
    re.compile(r"\binformation_schema\b", re.IGNORECASE),
    re.compile(r"\w'--"),
]

XSS_PATTERNS = [
    re.compile(r"<\s*script\b", re.IGNORECASE),
    re.compile(r"javascript\s*:\S", re.IGNORECASE),
    re.compile(r"<[^>]+\bon(?:error|load|click|mouseover|focus)\s*=", re.IGNORECASE),
    re.compile(r"<\s*iframe\b", re.IGNORECASE),
]

COMMAND_INJECTION_PATTERNS = [
    re.compile(r"[;&|]\s*(?:rm|cat|wget|curl|nc|bash|sh|chmod|python|perl)\s", re.IGNORECASE),
    re.compile(r"\$\([^)]*\)"),
    re.compile(r"`[^`]*(?:rm|cat|wget|curl|id|whoami)[^`]*`", re.IGNORECASE),
    re.compile(r"/etc/(?:passwd|shadow)\b", re.IGNORECASE),
    re.compile(r"<\?php", re.IGNORECASE),
]

SCANNER_USER_AGENTS = (
    'sqlmap',
    'nikto',
    'nmap',
    'acunetix',
    'masscan',
    'wpscan',
    'dirbuster',
    'havij',
    'zgrab',
    'nessus',
)

MAX_UNQUOTE_PASSES = 3


def decoded(value: str) -> str:
    """URL-decode repeatedly so double-encoded payloads are seen in clear."""
    for _ in range(MAX_UNQUOTE_PASSES):
        unquoted = unquote_plus(value)
        if unquoted == value:
            break
        value = unquoted
    return value


def _url_parts(descriptor: RequestDescriptor) -> List[str]:
    return [decoded(descriptor.path), decoded(descriptor.query_string)]


TEXTUAL_CONTENT_TYPES = ('json', 'x-www-form-urlencoded', 'text/', 'xml')


def _body_part(descriptor: RequestDescriptor) -> str:
    # binary uploads are not scanned for text signatures
    content_type = descriptor.content_type.lower()
    if content_type and not any(t in content_type for t in TEXTUAL_CONTENT_TYPES):
        return ''
    return decoded(descriptor.body_text())


def _all_parts(descriptor: RequestDescriptor) -> List[str]:
    return _url_parts(descriptor) + [_body_part(descriptor)]


def _first_match(patterns: Iterable[re.Pattern], values: Iterable[str]) -> Optional[str]:
    for value in values:
        for pattern in patterns:
            found = pattern.search(value)
            if found:
                return found.group(0)[:64]
    return None


# ============================================================================
# STRUCTURAL RULES
# ============================================================================

def check_oversized_payload(descriptor, context):
    if descriptor.body_size > context.max_body_bytes:
        return f'{descriptor.body_size} bytes'
    return None


def check_malformed_json(descriptor, context):
    if not descriptor.body or 'json' not in descriptor.content_type.lower():
        return None
    try:
        json.loads(descriptor.body)
    except ValueError:
        return 'undecodable JSON body'
    return None


def check_path_traversal(descriptor, context):
    for value in _url_parts(descriptor):
        if PATH_TRAVERSAL_PATTERN.search(value.replace('\\', '/')):
            return 'parent directory reference'
    return None


def check_null_byte(descriptor, context):
    if any('\x00' in value for value in _all_parts(descriptor)):
        return 'NUL character'
    return None


def check_xss(descriptor, context):
    return _first_match(XSS_PATTERNS, _all_parts(descriptor))


def check_sql_injection(descriptor, context):
    return _first_match(SQL_INJECTION_PATTERNS, _all_parts(descriptor))


def check_command_injection(descriptor, context):
    # shell punctuation is common in free text, so bodies are not checked
    return _first_match(COMMAND_INJECTION_PATTERNS, _url_parts(descriptor))


def check_scanner_user_agent(descriptor, context):
    user_agent = descriptor.user_agent.lower()
    for scanner in SCANNER_USER_AGENTS:
        if scanner in user_agent:
            return scanner
    return None


# ============================================================================
# BEHAVIORAL RULES
# ============================================================================

def check_request_burst(descriptor, context):
    if context.request_count > context.rate_limit:
        return f'{context.request_count} requests in window'
    return None


DEFAULT_RULES = (
    Rule('oversized_payload', Severity.MEDIUM, check_oversized_payload),
    Rule('malformed_json', Severity.LOW, check_malformed_json),
    Rule('path_traversal', Severity.HIGH, check_path_traversal),
    Rule('null_byte', Severity.HIGH, check_null_byte),
    Rule('xss_signature', Severity.HIGH, check_xss),
    Rule('sql_injection', Severity.CRITICAL, check_sql_injection),
    Rule('command_injection', Severity.CRITICAL, check_command_injection),
    Rule('scanner_user_agent', Severity.CRITICAL, check_scanner_user_agent),
    Rule('request_burst', Severity.MEDIUM, check_request_burst),
)


def evaluate_rules(descriptor: RequestDescriptor, context: RuleContext, rules=DEFAULT_RULES) -> List[RuleMatch]:
    """Run every rule and return the matches, most severe first."""
    matches = [m for m in (rule.evaluate(descriptor, context) for rule in rules) if m]
    return sorted(matches, key=lambda m: m.severity, reverse=True)
