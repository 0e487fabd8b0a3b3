"""
Logo overlay module for compositing a logo onto the pages of a PDF.
"""

import logging

import requests
from pypdf import PdfWriter

from background_removal import remove_background
from errors import PageProcessingError
from logo_preparer import PreparedLogo, prepare_logo
from pdf_document import (
    draw_image,
    embed_png,
    get_page_origin,
    get_page_size,
    get_pages,
    load_document,
    save_document,
)
from placement import Mode, PerPage, position_for, resolve_origin, validate_number

logger = logging.getLogger(__name__)


def download_image(url: str, timeout: float = 30) -> bytes:
    """
    Download a file from a URL.

    Args:
        url: The URL of the file to download
        timeout: Seconds to wait for the server

    Returns:
        The file data as bytes
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


def composite(document: PdfWriter, logo: PreparedLogo, mode: Mode, padding: float) -> bytes:
    """
    Draw a prepared logo onto the pages selected by `mode`.

    The logo is embedded once and every stamped page references that one
    image. Output is only produced after every page succeeded, so a failure
    never yields a half-stamped file.

    Args:
        document: Writable document from load_document()
        logo: Logo from prepare_logo()
        mode: Uniform or PerPage placement
        padding: Distance from the page edges, in points

    Returns:
        The stamped PDF as bytes

    Raises:
        PageProcessingError: if a page cannot be read or drawn to
        SerializationError: if the final PDF cannot be written
    """
    padding = validate_number('padding', padding, allow_zero=True)

    pages = get_pages(document)
    if isinstance(mode, PerPage):
        for config in mode.configs:
            if config.page_number > len(pages):
                logger.warning("Page config for page %d ignored, document has %d page(s)",
                               config.page_number, len(pages))

    image_ref = embed_png(document, logo.png_bytes)

    stamped = 0
    for ordinal, page in enumerate(pages, start=1):
        position = position_for(ordinal, mode)
        if position is None:
            logger.debug("Skipping page %d", ordinal)
            continue

        try:
            page_width, page_height = get_page_size(page)
            x, y = resolve_origin(page_width, page_height,
                                  logo.display_width, logo.display_height,
                                  padding, position)
            left, bottom = get_page_origin(page)
            draw_image(document, page, image_ref, left + x, bottom + y,
                       logo.display_width, logo.display_height)
        except Exception as e:
            raise PageProcessingError(ordinal, f"Failed to process page {ordinal}: {e}") from e
        stamped += 1

    logger.info("Stamped logo on %d of %d page(s)", stamped, len(pages))
    return save_document(document)


def add_logo_to_pdf(pdf_bytes: bytes, logo_bytes: bytes, size: float, padding: float,
                    mode: Mode, remove_bg: bool = False) -> bytes:
    """
    Overlay a logo onto a PDF, end to end.

    Args:
        pdf_bytes: The source PDF
        logo_bytes: The logo image in any format Pillow reads
        size: Length of the logo's longer side, in points
        padding: Distance from the page edges, in points
        mode: Uniform or PerPage placement
        remove_bg: Strip the logo's background before placing it

    Returns:
        The new PDF as bytes
    """
    size = validate_number('size', size, allow_zero=False)
    padding = validate_number('padding', padding, allow_zero=True)

    if remove_bg:
        logo_bytes = remove_background(logo_bytes)

    logo = prepare_logo(logo_bytes, size)
    document = load_document(pdf_bytes)
    return composite(document, logo, mode, padding)
