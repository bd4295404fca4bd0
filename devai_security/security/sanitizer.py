"""
Markup sanitization and threat detection for untrusted strings.

``sanitize`` removes everything that can execute script while keeping the
readable text. It works on a fixpoint: passes repeat until the output no
longer changes, so markup that only appears after an earlier removal is
caught as well and the function is idempotent.
"""

import re
import logging
from typing import Any, Dict, FrozenSet, List, Mapping

from devai_security.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_TAGS: FrozenSet[str] = frozenset({
    'b', 'i', 'em', 'strong', 'u', 'p', 'br', 'ul', 'ol', 'li',
    'code', 'pre', 'blockquote', 'span', 'div',
})

# Elements whose content is script, styling or an embedded document
DANGEROUS_ELEMENTS = (
    'script', 'style', 'iframe', 'object', 'embed', 'noscript',
    'template', 'svg', 'math',
)

MAX_PASSES = 5

_DANGEROUS_NAMES = '|'.join(DANGEROUS_ELEMENTS)

_DANGEROUS_BLOCK_RE = re.compile(
    rf'<\s*({_DANGEROUS_NAMES})\b[^>]*>.*?<\s*/\s*\1\s*>',
    re.IGNORECASE | re.DOTALL
)
_DANGEROUS_UNCLOSED_RE = re.compile(
    rf'<\s*(script|(?:{_DANGEROUS_NAMES})\b).*\Z',
    re.IGNORECASE | re.DOTALL
)
_COMMENT_RE = re.compile(r'<!--.*?(-->|\Z)', re.DOTALL)
_DECLARATION_RE = re.compile(r'<[!?][^>]*>')
_TAG_RE = re.compile(r'<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9:-]*)\b[^>]*>')
_UNTERMINATED_TAG_RE = re.compile(r'</?[a-zA-Z][^>]*\Z')

_SCRIPT_BLOCK_RE = re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL)
_EVENT_HANDLER_RE = re.compile(r'\bon\w+\s*=', re.IGNORECASE)

_THREAT_PATTERNS = [
    ("Script block", _SCRIPT_BLOCK_RE),
    ("Script URL", re.compile(r'(javascript|vbscript)\s*:', re.IGNORECASE)),
    ("Inline event handler", _EVENT_HANDLER_RE),
    ("HTML data URL", re.compile(r'data:\s*text/html', re.IGNORECASE)),
    ("Embedded frame or object", re.compile(r'<\s*(iframe|object|embed|link|meta)\b', re.IGNORECASE)),
    ("CSS expression", re.compile(r'expression\s*\(', re.IGNORECASE)),
    ("Dynamic code evaluation", re.compile(r'\b(eval|setTimeout|setInterval)\s*\(', re.IGNORECASE)),
]

_SQL_INJECTION_PATTERNS = [
    re.compile(r'\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION)\b.+\b(FROM|INTO|TABLE|SET|SELECT)\b', re.IGNORECASE),
    re.compile(r'\b(OR|AND)\s+\d+\s*=\s*\d+', re.IGNORECASE),
    re.compile(r'[\'"]\s*(;|--|/\*)'),
]


def _sanitize_pass(text: str, allowed_tags: FrozenSet[str]) -> str:
    # Removing a block can join fragments into a new one
    while True:
        stripped = _DANGEROUS_BLOCK_RE.sub('', text)
        if stripped == text:
            break
        text = stripped

    text = _DANGEROUS_UNCLOSED_RE.sub('', text)
    text = _COMMENT_RE.sub('', text)
    text = _DECLARATION_RE.sub('', text)
    # An opener never closed by ">" still parses as a tag in a browser
    text = _UNTERMINATED_TAG_RE.sub('', text)

    def rebuild(match: re.Match) -> str:
        closing, name = match.group(1), match.group(2).lower()
        if name in allowed_tags:
            return f"<{closing}{name}>"
        return ''

    return _TAG_RE.sub(rebuild, text)


def sanitize(value: Any, allowed_tags: FrozenSet[str] = DEFAULT_ALLOWED_TAGS) -> str:
    """
    Strip executable markup from an untrusted value.

    Allowed tags survive without any attributes, script-capable elements are
    removed together with their content and all other tags are dropped while
    their text is kept. Non-string input yields an empty string.

    Args:
        value: Untrusted input of any type
        allowed_tags: Lower-case tag names to keep

    Returns:
        Sanitized text; never None
    """
    if not isinstance(value, str):
        return ''

    if '<' not in value:
        return value

    allowed = frozenset(tag.lower() for tag in allowed_tags)
    current = value
    for _ in range(MAX_PASSES):
        cleaned = _sanitize_pass(current, allowed)
        if cleaned == current:
            return cleaned
        current = cleaned

    logger.warning("Sanitizer did not converge, removing all angle brackets")
    return current.replace('<', '')


def detect_threats(text: Any) -> List[str]:
    """
    Scan text for XSS and SQL injection signatures.

    Returns:
        Labels of the threats found, empty if the text looks harmless
    """
    if not isinstance(text, str) or not text:
        return []

    threats = [label for label, pattern in _THREAT_PATTERNS if pattern.search(text)]

    if any(pattern.search(text) for pattern in _SQL_INJECTION_PATTERNS):
        threats.append("SQL injection")

    return threats


def validate_form_security(form: Mapping[str, Any], max_length: int = None) -> Dict[str, str]:
    """
    Check submitted form fields before they are processed.

    Returns:
        Field name to error message for every rejected field
    """
    max_length = max_length or settings.MAX_INPUT_LENGTH
    errors: Dict[str, str] = {}

    for field, value in form.items():
        if not isinstance(value, str):
            continue

        if _SCRIPT_BLOCK_RE.search(value) or _EVENT_HANDLER_RE.search(value):
            errors[field] = 'Invalid content detected'

        # Oversized payloads
        if len(value) > max_length:
            errors[field] = 'Content too long'

    if errors:
        logger.info(f"Rejected form fields: {', '.join(sorted(errors))}")

    return errors
