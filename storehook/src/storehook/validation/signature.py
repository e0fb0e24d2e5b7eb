"""HMAC signature verification for inbound webhook deliveries."""

import hashlib
import hmac
import re
from typing import Optional

# "<algorithm>=<hexdigest>" or "<algorithm>:<hexdigest>"
_SCHEME_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*[=:]")


class SignatureVerifier:
    """Verifies that a payload was signed with the shared webhook secret.

    Stateless; safe to share between concurrent deliveries.
    """

    def __init__(self, digestmod=hashlib.sha256) -> None:
        self.digestmod = digestmod

    def sign(self, payload: bytes, shared_secret: str) -> str:
        """Return the hex HMAC of ``payload`` keyed with ``shared_secret``."""
        return hmac.new(
            shared_secret.encode("utf-8"), payload, self.digestmod
        ).hexdigest()

    @staticmethod
    def normalize(claimed_signature: str) -> str:
        """Strip an optional scheme prefix and surrounding whitespace."""
        signature = claimed_signature.strip()
        signature = _SCHEME_PREFIX.sub("", signature, count=1)
        return signature.strip().lower()

    def verify(
        self,
        payload: bytes,
        claimed_signature: Optional[str],
        shared_secret: Optional[str],
    ) -> bool:
        """
        Check ``claimed_signature`` against the payload.

        Never raises; every failure mode yields False.

        Args:
            payload: Exact raw request body
            claimed_signature: Signature header value, optionally prefixed
            shared_secret: Webhook secret configured on the platform

        Returns:
            True only when the normalized signature matches
        """
        if not claimed_signature or not shared_secret or not payload:
            return False

        expected = self.sign(payload, shared_secret)
        candidate = self.normalize(claimed_signature)

        # compare_digest on bytes accepts non-ASCII input
        return hmac.compare_digest(
            expected.encode("ascii"), candidate.encode("utf-8", "replace")
        )
