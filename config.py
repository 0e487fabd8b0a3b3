"""
Runtime configuration for the letterhead service.

Values come from the process environment, optionally seeded from a .env
file next to this module.
"""

import os
import logging

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env'))

logger = logging.getLogger(__name__)


def _env_number(name, default, cast=float):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


class Config:
    PORT = _env_number('PORT', 5000, int)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Uploads carry a whole PDF plus a logo, base64 encoded when sent as JSON
    MAX_CONTENT_LENGTH = _env_number('MAX_CONTENT_LENGTH', 50 * 1024 * 1024, int)
    DOWNLOAD_TIMEOUT = _env_number('DOWNLOAD_TIMEOUT', 30)

    # Placement defaults, in PDF points
    DEFAULT_LOGO_SIZE = _env_number('DEFAULT_LOGO_SIZE', 100)
    DEFAULT_PADDING = _env_number('DEFAULT_PADDING', 30)
    DEFAULT_POSITION = os.environ.get('DEFAULT_POSITION', 'top-right')

    REMBG_MODEL = os.environ.get('REMBG_MODEL', 'u2net')
    OUTPUT_FILENAME = os.environ.get('OUTPUT_FILENAME', 'letterhead.pdf')
