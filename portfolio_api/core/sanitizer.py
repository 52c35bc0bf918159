import re

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w.-]+\.\w+")
_IPV4_RE = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b")
_JWT_RE = re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")
# Appwrite server keys are prefixed with "standard_" followed by a long hex blob
_APPWRITE_KEY_RE = re.compile(r"\bstandard_[A-Za-z0-9]{16,}\b")
_HEX_KEY_RE = re.compile(r"\b[a-fA-F0-9]{32,}\b")
_PASSWORD_RE = re.compile(
    r'(password|passwd|pwd|secret|api_key)["\']?\s*[:=]\s*["\']?[^"\'&\s]+',
    flags=re.IGNORECASE,
)


def _mask_email(match: "re.Match[str]") -> str:
    local, _, domain = match.group().partition("@")
    return f"{local[0]}***@{domain}"


def redact_pii(message: str) -> str:
    """Redact personally identifiable information from log messages.

    Contact submissions carry names, e-mail addresses and client IPs; logs
    keep only enough of them to correlate events.
    """
    if not isinstance(message, str):
        return str(message)

    # Emails: jane@example.com -> j***@example.com
    message = _EMAIL_RE.sub(_mask_email, message)

    # IPs (IPv4): 203.0.113.10 -> 203.0.113.***
    message = _IPV4_RE.sub(r"\1***", message)

    message = _JWT_RE.sub("[JWT_REDACTED]", message)
    message = _APPWRITE_KEY_RE.sub("[API_KEY_REDACTED]", message)
    message = _HEX_KEY_RE.sub("[API_KEY_REDACTED]", message)
    message = _PASSWORD_RE.sub(r"\1=[REDACTED]", message)

    return message
