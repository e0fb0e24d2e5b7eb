"""storehook validation module.

Signature verification and sanitization of platform input.
"""

from .sanitizers import sanitize_external_api_response, sanitize_text
from .signature import SignatureVerifier

__all__ = [
    "SignatureVerifier",
    "sanitize_text",
    "sanitize_external_api_response",
]
