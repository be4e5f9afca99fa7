"""Token signatures."""

import hashlib
import hmac

SIGNATURE_LENGTH = 32


class TokenSigner:
    """Computes permit token signatures with a server-held secret.

    The current scheme is HMAC-SHA256 over ``"<permitId>|<issuedAtMillis>"``.
    Tokens printed before it used a salted SHA-256 digest over
    ``"<permitId>|<expiresAtMillis>|<secret>"``, which is still verified so
    those documents keep scanning until they expire. Both are truncated to
    32 lowercase hex characters to keep QR codes small.
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._key = secret.encode()

    def sign(self, permit_id: str, issued_at_ms: int) -> str:
        message = f"{permit_id}|{issued_at_ms}".encode()
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()[:SIGNATURE_LENGTH]

    def sign_legacy(self, permit_id: str, expires_at_ms: int) -> str:
        payload = f"{permit_id}|{expires_at_ms}|".encode() + self._key
        return hashlib.sha256(payload).hexdigest()[:SIGNATURE_LENGTH]


def signatures_match(expected: str, candidate: str) -> bool:
    """Constant-time comparison that never raises on odd input.

    Comparing bytes (not str) lets non-ASCII candidates through
    ``compare_digest``; a length mismatch is simply False.
    """
    return hmac.compare_digest(expected.encode(), candidate.encode("utf-8", "replace"))
