"""
Input validation predicates and rule-based field validation.

``is_valid_email`` and ``is_strong_password`` are the fast boolean checks
used by forms; ``validate_input`` and its wrappers return a full
ValidationResult for callers that show per-field feedback.
"""

import ipaddress
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Pattern
from urllib.parse import urlparse

from devai_security.core.config import settings
from devai_security.security.sanitizer import sanitize, detect_threats

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

EMAIL_MAX_LENGTH = 254
PASSWORD_MAX_LENGTH = 128

_EMAIL_RE = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1F\x7F]')


@dataclass
class ValidationResult:
    """Result of input validation"""
    valid: bool
    sanitized_value: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class InputRules:
    """Constraints applied by validate_input"""
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Pattern[str]] = None
    allow_html: bool = False


def is_valid_email(value: Any) -> bool:
    """
    Check the shape ``local@domain.tld``.

    Surrounding whitespace is ignored; whitespace-only input is invalid.
    """
    if not isinstance(value, str):
        return False

    candidate = value.strip()
    if not candidate or len(candidate) > EMAIL_MAX_LENGTH:
        return False

    return _EMAIL_RE.fullmatch(candidate) is not None


def password_issues(value: Any, min_length: Optional[int] = None) -> List[str]:
    """
    List the strength requirements ``value`` does not meet.

    Args:
        value: Candidate password
        min_length: Minimum length, defaults to PASSWORD_MIN_LENGTH

    Returns:
        Human-readable messages, empty when the password is strong
    """
    if min_length is None:
        min_length = settings.PASSWORD_MIN_LENGTH

    if not isinstance(value, str) or not value:
        return ['Password is required']

    issues = []
    if len(value) < min_length:
        issues.append(f'Password must be at least {min_length} characters long')
    if not any(c.isupper() for c in value):
        issues.append('Password must contain at least one uppercase letter')
    if not any(c.islower() for c in value):
        issues.append('Password must contain at least one lowercase letter')
    if not any(c.isdigit() for c in value):
        issues.append('Password must contain at least one number')
    if not any(c in SPECIAL_CHARACTERS for c in value):
        issues.append('Password must contain at least one special character')

    return issues


def is_strong_password(value: Any, min_length: Optional[int] = None) -> bool:
    """All four character classes plus the minimum length are mandatory."""
    return not password_issues(value, min_length)


def is_safe_url(url: Any) -> bool:
    """
    Allow only http(s) URLs that do not point into local or private networks.
    """
    if not isinstance(url, str) or not url.strip():
        return False

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False

    if parsed.scheme not in ('http', 'https'):
        return False

    hostname = (parsed.hostname or '').lower()
    if not hostname:
        return False

    if hostname == 'localhost' or hostname.endswith('.localhost'):
        return False

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        # Regular host name
        return True

    return not (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )


def _clean(value: str, allow_html: bool) -> str:
    if not allow_html:
        value = sanitize(value, allowed_tags=frozenset())
    value = _CONTROL_CHARS_RE.sub('', value)
    return value.strip()


def validate_input(value: Any, rules: Optional[InputRules] = None) -> ValidationResult:
    """
    Validate a free-form field against ``rules`` and scan it for threats.

    Validation order:
    1. Required check (short-circuits)
    2. Length and pattern rules
    3. Threat scan

    Returns:
        ValidationResult whose ``sanitized_value`` is safe to display
    """
    rules = rules or InputRules()
    text = value if isinstance(value, str) else ''
    result = ValidationResult(valid=True, sanitized_value=text)

    if rules.required and not text.strip():
        result.valid = False
        result.errors.append('This field is required')
        result.sanitized_value = ''
        return result

    if rules.min_length is not None and len(text) < rules.min_length:
        result.valid = False
        result.errors.append(f'Minimum length is {rules.min_length} characters')

    if rules.max_length is not None and len(text) > rules.max_length:
        result.valid = False
        result.errors.append(f'Maximum length is {rules.max_length} characters')

    if rules.pattern is not None and text and not rules.pattern.fullmatch(text):
        result.valid = False
        result.errors.append('Invalid format')

    threats = detect_threats(text)
    if threats:
        result.valid = False
        result.errors.extend(f'Potentially dangerous content detected: {t}' for t in threats)
        logger.info(f"Input rejected by threat scan: {', '.join(threats)}")

    if len(text) > 10 * settings.MAX_INPUT_LENGTH:
        result.warnings.append('Input is unusually long')
    if re.search(r'[<>]{3,}', text):
        result.warnings.append('Suspicious character sequence detected')

    result.sanitized_value = _clean(text, rules.allow_html)
    return result


def validate_email(value: Any) -> ValidationResult:
    result = validate_input(value, InputRules(required=True, max_length=EMAIL_MAX_LENGTH))
    if result.sanitized_value and not is_valid_email(result.sanitized_value):
        result.valid = False
        result.errors.append('Invalid email address')
    return result


def validate_password(value: Any, min_length: Optional[int] = None) -> ValidationResult:
    """Password feedback; the value itself is never altered or logged."""
    text = value if isinstance(value, str) else ''
    result = ValidationResult(valid=True, sanitized_value=text)

    if len(text) > PASSWORD_MAX_LENGTH:
        result.errors.append(f'Maximum length is {PASSWORD_MAX_LENGTH} characters')

    result.errors.extend(password_issues(text, min_length))
    result.valid = not result.errors
    return result
