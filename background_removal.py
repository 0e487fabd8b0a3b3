"""
Background removal for logos, backed by rembg.

rembg is lazy-loaded to avoid slow startup from numba compilation, and it is
optional: without it the service still stamps logos, it just cannot strip
their backgrounds.
"""

import logging
import threading

from config import Config
from errors import BackgroundRemovalError

logger = logging.getLogger(__name__)

REMBG_AVAILABLE = True
_rembg_remove = None
_rembg_new_session = None
_session = None
_session_lock = threading.Lock()


def get_rembg_remove():
    global _rembg_remove, _rembg_new_session, REMBG_AVAILABLE
    if _rembg_remove is None and REMBG_AVAILABLE:
        try:
            from rembg import remove, new_session
            _rembg_remove = remove
            _rembg_new_session = new_session
        except ImportError:
            REMBG_AVAILABLE = False
            logger.warning("rembg not available, background removal disabled")
    return _rembg_remove


def _get_session():
    global _session
    with _session_lock:
        if _session is None and _rembg_new_session is not None:
            logger.info("Loading rembg model %s", Config.REMBG_MODEL)
            _session = _rembg_new_session(Config.REMBG_MODEL)
    return _session


def remove_background(image_bytes: bytes) -> bytes:
    """
    Remove the background from an image.

    Args:
        image_bytes: The source image as bytes

    Returns:
        PNG bytes with the background made transparent
    """
    remove_fn = get_rembg_remove()
    if remove_fn is None:
        raise BackgroundRemovalError("rembg not available. Install rembg package.", unavailable=True)

    try:
        session = _get_session()
        if session is None:
            return remove_fn(image_bytes)
        return remove_fn(image_bytes, session=session)
    except Exception as e:
        raise BackgroundRemovalError(f"Background removal failed: {e}") from e
