import hashlib
import hmac
import time

from deapi_bridge.logger import get_logger

logger = get_logger(__name__)

REPLAY_WINDOW = 300  # seconds
SIGNATURE_PREFIX = "sha256="


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def compute_signature(secret: str, timestamp: str, raw_body: bytes | str) -> str:
    message = _as_bytes(timestamp) + b"." + _as_bytes(raw_body)
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_webhook_signature(
    secret: str | None,
    signature: str | None,
    timestamp: str | None,
    raw_body: bytes | str,
    now: int | None = None,
) -> bool:
    """Check a webhook's ``sha256=<hex>`` HMAC signature and its timestamp.

    The signed message is ``"{timestamp}.{raw_body}"``. Timestamps more than
    REPLAY_WINDOW seconds away from ``now`` in either direction are rejected.
    """
    if not secret:
        logger.warning("Rejected webhook: no webhook secret configured")
        return False

    # The header value is signed as sent; only its integer reading is trimmed
    seconds = timestamp.strip() if timestamp else ""
    if not (seconds.isascii() and seconds.isdigit()):
        logger.warning("Rejected webhook: missing or malformed timestamp")
        return False

    now = int(time.time()) if now is None else now
    if abs(now - int(seconds)) > REPLAY_WINDOW:
        logger.warning("Rejected webhook: timestamp outside the replay window")
        return False

    expected = compute_signature(secret, timestamp, raw_body).encode("utf-8")

    if signature is None:
        logger.warning("Rejected webhook: missing signature")
        return False

    received = signature.encode("utf-8")
    if len(received) != len(expected):
        logger.warning("Rejected webhook: signature has the wrong length")
        return False

    if not hmac.compare_digest(received, expected):
        logger.warning("Rejected webhook: signature mismatch")
        return False

    return True
