"""Social Hub – PII Filter.

Regex-based masking applied to log records, NOT to message content that is
delivered to users or the dashboard.
"""

import re
from typing import Any

# ──────────────────────────────────────────
# PII Patterns
# ──────────────────────────────────────────

PATTERNS: dict[str, re.Pattern[str]] = {
    "phone_intl": re.compile(r"\+?\d{1,3}[\s\-]?\d{6,14}\b"),
    "email": re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}"),
}

# Log keys whose values are secrets and are never written out.
SECRET_KEYS = frozenset({
    "access_token",
    "token",
    "verify_token",
    "api_key",
    "whatsapp_token",
    "client_secret",
    "app_secret",
    "authorization",
})

REDACTED = "[REDACTED]"


class PIIFilter:
    """PII detection and masking for log safety.

    Usage:
        pii = PIIFilter()
        safe_text = pii.mask(sender_phone)
    """

    def __init__(self, patterns: dict[str, re.Pattern[str]] | None = None) -> None:
        self._patterns = patterns or PATTERNS

    def contains_pii(self, text: str) -> bool:
        return any(p.search(text) for p in self._patterns.values())

    def mask(self, text: str) -> str:
        """Mask PII in text.

        - Phone: 4917012345678 → 49170****
        - Email: user@example.com → u****@e****.com
        """

        def mask_phone(match: re.Match[str]) -> str:
            full = match.group(0)
            if len(full) > 5:
                return full[:5] + "****"
            return "****"

        def mask_email(match: re.Match[str]) -> str:
            local, _, host = match.group(0).partition("@")
            domain, _, tld = host.rpartition(".")
            return f"{local[:1]}****@{domain[:1]}****.{tld or 'com'}"

        result = self._patterns["email"].sub(mask_email, text)
        return self._patterns["phone_intl"].sub(mask_phone, result)


_default_filter = PIIFilter()


def _is_id_key(key: str) -> bool:
    return key == "id" or key.endswith("_id")


def _scrub(key: str, value: Any) -> Any:
    key = key.lower()
    if key in SECRET_KEYS:
        return REDACTED if value else value
    if isinstance(value, str):
        # Graph object ids (media, users, PSIDs) stay intact for correlation.
        return value if _is_id_key(key) else _default_filter.mask(value)
    if isinstance(value, dict):
        return {k: _scrub(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(key, v) for v in value]
    return value


def filter_log_record(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: redact secrets and mask PII in every field."""
    return {key: _scrub(key, value) for key, value in event_dict.items()}
