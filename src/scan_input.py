"""
Scan input boundary.

The camera decoder is a black box that either hands over decoded text or
stops with a terminal reason. Decoded text is cleaned here and then treated
exactly like typed text; terminal reasons become DecoderError.
"""
from exceptions import DecoderError
from logger import get_logger

logger = get_logger(__name__)

REASON_PERMISSION_DENIED = 'permission-denied'
REASON_NOT_FOUND = 'not-found'
REASON_DEVICE_BUSY = 'device-busy'
REASON_INSECURE_CONTEXT = 'insecure-context'

DECODER_MESSAGES = {
    REASON_PERMISSION_DENIED: "Camera permission was denied. Allow camera access and try again.",
    REASON_NOT_FOUND: "No camera was found on this device.",
    REASON_DEVICE_BUSY: "The camera is in use by another application.",
    REASON_INSECURE_CONTEXT: "Camera access requires a secure (HTTPS) connection.",
}


def clean_decoded_text(text) -> str:
    """Strip whitespace and control characters scanners append (CR, LF, GS, tabs)."""
    if text is None:
        return ''
    return ''.join(ch for ch in str(text) if ch.isprintable()).strip()


def decoder_error(reason: str) -> DecoderError:
    """
    Build the DecoderError for a terminal decoder reason.

    Raises:
        ValueError: If the reason is not one the decoder can report
    """
    if reason not in DECODER_MESSAGES:
        raise ValueError(f"Unknown decoder reason: {reason}")
    logger.warning(f"Scanner stopped: {reason}")
    return DecoderError(DECODER_MESSAGES[reason], reason=reason)
