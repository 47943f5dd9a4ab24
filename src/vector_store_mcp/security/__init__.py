"""Security modules: credential handling and redaction."""

from vector_store_mcp.security.credentials import extract_bearer_token, is_well_formed, redact

__all__ = ["extract_bearer_token", "is_well_formed", "redact"]
