"""Backend credential helpers."""

import re

from vector_store_mcp.config.loader import get_settings

# Matches OpenAI-style secret keys (sk-..., sk-proj-...)
_SECRET_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")

REDACTED = "[REDACTED]"


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract token from Authorization header."""
    if authorization is None:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def is_well_formed(credential: str | None) -> bool:
    """Check a credential is non-empty and carries the expected prefix."""
    if not credential:
        return False
    return credential.startswith(get_settings().credential_prefix)


def redact(text: str, *secrets: str | None) -> str:
    """Remove credential values from text shown to clients or written to logs."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return _SECRET_PATTERN.sub(REDACTED, text)
