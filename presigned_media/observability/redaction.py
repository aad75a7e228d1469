"""Redaction helpers to keep signatures and tokens out of logs.

A signed URL is a bearer credential until it expires: anyone holding the full
query string can fetch the object. Log lines keep the host, path and expiry
parameters but mask the signing material.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"

# Query parameters that carry signing material across S3, GCS and B2 URLs.
_SECRET_PARAM_RE = re.compile(
    r"^(x-amz-signature|x-amz-credential|x-amz-security-token|"
    r"x-goog-signature|x-goog-credential|signature|authorization|token|sig)$",
    flags=re.IGNORECASE,
)

_SENSITIVE_VALUE_RES: list[re.Pattern[str]] = [
    re.compile(r"\bBearer\s+[A-Za-z0-9._\-]+", flags=re.IGNORECASE),
    re.compile(
        r"((?:X-Amz-Signature|X-Amz-Credential|X-Amz-Security-Token|"
        r"X-Goog-Signature|X-Goog-Credential|Signature)=)[^&\s\"']+",
        flags=re.IGNORECASE,
    ),
]


def redact_signed_url(url: str | None) -> str | None:
    """Mask signing parameters in a URL, keeping everything else readable."""
    if not url:
        return url

    try:
        parts = urlsplit(url)
    except ValueError:
        return redact_text(url)

    if not parts.query:
        return url

    pairs = [
        (k, _REPLACEMENT if _SECRET_PARAM_RE.match(k) else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(pairs, safe="[]")))


def redact_text(text: str, *, max_chars: int = 4000) -> str:
    """Redact bearer tokens and URL signatures in free text and truncate."""
    if text is None:
        return text

    out = _SENSITIVE_VALUE_RES[0].sub(_REPLACEMENT, text)
    out = _SENSITIVE_VALUE_RES[1].sub(lambda m: m.group(1) + _REPLACEMENT, out)

    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX

    return out
