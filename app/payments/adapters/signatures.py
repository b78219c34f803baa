"""
Webhook signature helpers.

Providers sign the raw request body with a shared secret. Signatures are
recomputed over the exact bytes received and compared in constant time.
"""

from __future__ import annotations

import base64
import hashlib
import hmac


def hmac_hex_digest(secret: str, payload: bytes, digestmod=hashlib.sha512) -> str:
    """HMAC of payload as lowercase hex."""
    return hmac.new(secret.encode("utf-8"), payload, digestmod).hexdigest()


def hmac_base64_digest(secret: str, payload: bytes, digestmod=hashlib.sha256) -> str:
    """HMAC of payload as standard base64."""
    digest = hmac.new(secret.encode("utf-8"), payload, digestmod).digest()
    return base64.b64encode(digest).decode("ascii")


def signatures_match(expected: str, received: str | None) -> bool:
    """
    Constant-time comparison of two signatures.

    Missing or empty values never match.
    """
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.strip().encode("utf-8"))
