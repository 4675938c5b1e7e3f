"""Admin API request signing and verification."""

import base64
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple, Union

NONCE_BYTES = 24
MIN_NONCE_LENGTH = 16
DEFAULT_TOLERANCE_SECONDS = 300  # 5 minutes

TIMESTAMP_HEADER = "X-Timestamp"
NONCE_HEADER = "X-Nonce"
SIGNATURE_HEADER = "X-Signature"

Body = Union[str, bytes]


@dataclass
class SignatureComponents:
    """Signed header values of one request."""
    timestamp: str
    nonce: str
    signature: str

    def to_headers(self) -> Dict[str, str]:
        return {
            TIMESTAMP_HEADER: self.timestamp,
            NONCE_HEADER: self.nonce,
            SIGNATURE_HEADER: self.signature,
        }


def generate_nonce() -> str:
    """
    Generate a single-use request nonce.

    24 random bytes, base64url encoded without padding: 32 characters
    from ``[A-Za-z0-9_-]``.
    """
    raw = secrets.token_bytes(NONCE_BYTES)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _to_bytes(value: Body) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def compute_signature(
    api_key: str,
    timestamp: Union[str, int],
    nonce: str,
    method: str,
    path: str,
    body: Body = "",
) -> str:
    """
    Compute the HMAC-SHA256 signature of a request.

    The signature is computed as:
        body_hash = hex(SHA256(body))
        message = timestamp + nonce + METHOD + path + body_hash
        signature = hex(HMAC-SHA256(api_key, message))

    Args:
        api_key: Shared secret
        timestamp: Unix timestamp in seconds
        nonce: Single-use random token
        method: HTTP method, case-insensitive
        path: Request path without query string
        body: Exact body bytes sent; empty for GET/DELETE

    Returns:
        Lowercase hex signature
    """
    body_hash = hashlib.sha256(_to_bytes(body)).hexdigest()
    message = f"{timestamp}{nonce}{method.upper()}{path}{body_hash}"
    return hmac.new(
        api_key.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def generate_signed_headers(
    api_key: str,
    method: str,
    path: str,
    body: Body = "",
    timestamp: Optional[int] = None,
) -> Dict[str, str]:
    """
    Build the signed headers for one request.

    A fresh nonce is drawn on every call and the timestamp defaults to now.

    Returns:
        Dict with X-Timestamp, X-Nonce and X-Signature
    """
    if timestamp is None:
        timestamp = int(time.time())

    components = SignatureComponents(
        timestamp=str(timestamp),
        nonce=generate_nonce(),
        signature="",
    )
    components.signature = compute_signature(
        api_key, components.timestamp, components.nonce, method, path, body
    )
    return components.to_headers()


def verify_signature(
    api_key: str,
    headers: Mapping[str, str],
    method: str,
    path: str,
    body: Body = "",
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[int] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Verify signed request headers.

    Nonce replay tracking is the receiver's responsibility; this checks
    the nonce shape, the timestamp window and the signature itself.

    Returns:
        Tuple of (is_valid, error_message)
    """
    timestamp = headers.get(TIMESTAMP_HEADER)
    nonce = headers.get(NONCE_HEADER)
    signature = headers.get(SIGNATURE_HEADER)

    if not timestamp or not nonce or not signature:
        return False, "Missing signature headers"

    if len(nonce) < MIN_NONCE_LENGTH:
        return False, "Nonce too short"

    try:
        issued_at = int(timestamp)
    except ValueError:
        return False, "Invalid timestamp"

    current_time = int(time.time()) if now is None else now
    if abs(current_time - issued_at) > tolerance_seconds:
        return False, "Signature timestamp out of tolerance"

    expected = compute_signature(api_key, timestamp, nonce, method, path, body)

    # Constant-time comparison
    if not hmac.compare_digest(signature, expected):
        return False, "Signature mismatch"

    return True, None
