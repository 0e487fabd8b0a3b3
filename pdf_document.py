"""
Thin pypdf layer: load and save PDFs, embed an image XObject once, and draw
it onto pages as an overlay.
"""

import logging
from io import BytesIO
from typing import List, Tuple

from PIL import Image
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NullObject,
    NumberObject,
)

from errors import DecodeError, SerializationError

logger = logging.getLogger(__name__)

LOGO_RESOURCE_NAME = '/Logo'


def load_document(pdf_bytes: bytes) -> PdfWriter:
    """
    Parse PDF bytes into a writable document.

    Encrypted files are opened with the empty user password, which covers
    the common "owner password only" case. Anything else is rejected.

    Raises:
        DecodeError: if the bytes are not a PDF pypdf can read
    """
    if not pdf_bytes:
        raise DecodeError("PDF document is empty")

    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        encrypted = reader.is_encrypted
        if encrypted:
            decrypted = reader.decrypt('')
    except Exception as e:
        raise DecodeError(f"Failed to read PDF: {e}") from e

    if encrypted and not decrypted:
        raise DecodeError("PDF is password protected")

    try:
        writer = PdfWriter(clone_from=reader)
    except Exception as e:
        raise DecodeError(f"Failed to read PDF: {e}") from e

    logger.debug("Loaded PDF with %d page(s)", len(writer.pages))
    return writer


def save_document(writer: PdfWriter) -> bytes:
    output = BytesIO()
    try:
        writer.write(output)
    except Exception as e:
        raise SerializationError(f"Failed to write PDF: {e}") from e
    return output.getvalue()


def get_pages(writer: PdfWriter) -> List[PageObject]:
    return list(writer.pages)


def get_page_size(page: PageObject) -> Tuple[float, float]:
    box = page.mediabox
    return float(box.width), float(box.height)


def get_page_origin(page: PageObject) -> Tuple[float, float]:
    """Lower-left corner of the MediaBox; (0, 0) for almost every PDF."""
    box = page.mediabox
    return float(box.left), float(box.bottom)


def _image_xobject(data: bytes, width: int, height: int, color_space: str):
    stream = DecodedStreamObject()
    stream.set_data(data)
    stream.update({
        NameObject('/Type'): NameObject('/XObject'),
        NameObject('/Subtype'): NameObject('/Image'),
        NameObject('/Width'): NumberObject(width),
        NameObject('/Height'): NumberObject(height),
        NameObject('/ColorSpace'): NameObject(color_space),
        NameObject('/BitsPerComponent'): NumberObject(8),
    })
    return stream.flate_encode()


def embed_png(writer: PdfWriter, png_bytes: bytes) -> IndirectObject:
    """
    Add a PNG to the document as a single image XObject.

    Transparency is carried in a separate /SMask image, which is how PDF
    expresses per-pixel alpha. Callers draw the returned reference on as
    many pages as they like; the pixel data is stored once.

    Args:
        writer: Document to embed into
        png_bytes: PNG data in RGB, RGBA, L or LA mode

    Returns:
        Indirect reference to the image XObject
    """
    img = Image.open(BytesIO(png_bytes))
    img.load()
    width, height = img.size

    if img.mode in ('L', 'LA'):
        color_space, base_mode = '/DeviceGray', 'L'
    else:
        color_space, base_mode = '/DeviceRGB', 'RGB'

    alpha = None
    if 'A' in img.getbands():
        alpha = img.getchannel('A')
        if alpha.getextrema() == (255, 255):
            # Fully opaque, no soft mask needed
            alpha = None

    image = _image_xobject(img.convert(base_mode).tobytes(), width, height, color_space)
    if alpha is not None:
        smask = _image_xobject(alpha.tobytes(), width, height, '/DeviceGray')
        image[NameObject('/SMask')] = writer._add_object(smask)

    return writer._add_object(image)


def _format_number(value: float) -> str:
    text = f"{value:.4f}".rstrip('0').rstrip('.')
    return '0' if text == '-0' else text


def _content_stream(writer: PdfWriter, data: bytes) -> IndirectObject:
    stream = DecodedStreamObject()
    stream.set_data(data)
    return writer._add_object(stream)


def _register_xobject(page: PageObject, image_ref: IndirectObject) -> str:
    # Copy before mutating: several pages may share one /Resources
    # dictionary, and pages we do not stamp must stay as they were.
    resources = page.get('/Resources')
    if resources is None or isinstance(resources.get_object(), NullObject):
        resources = DictionaryObject()
    else:
        resources = DictionaryObject(resources.get_object())

    xobjects = resources.get('/XObject')
    if xobjects is None:
        xobjects = DictionaryObject()
    else:
        xobjects = DictionaryObject(xobjects.get_object())

    name = LOGO_RESOURCE_NAME
    counter = 1
    while name in xobjects:
        name = f"{LOGO_RESOURCE_NAME}{counter}"
        counter += 1

    xobjects[NameObject(name)] = image_ref
    resources[NameObject('/XObject')] = xobjects
    page[NameObject('/Resources')] = resources
    return name


def draw_image(writer: PdfWriter, page: PageObject, image_ref: IndirectObject,
               x: float, y: float, width: float, height: float) -> None:
    """
    Draw an embedded image on top of the existing page content.

    The original content streams are kept as they are and wrapped in q/Q,
    so whatever graphics state they leave behind does not affect the logo.
    """
    name = _register_xobject(page, image_ref)
    draw_ops = (
        f"q {_format_number(width)} 0 0 {_format_number(height)} "
        f"{_format_number(x)} {_format_number(y)} cm {name} Do Q\n"
    ).encode('ascii')

    streams = []
    contents = page.get('/Contents')
    if contents is not None:
        resolved = contents.get_object()
        if isinstance(resolved, ArrayObject):
            streams.extend(resolved)
        elif isinstance(resolved, NullObject):
            pass
        elif isinstance(contents, IndirectObject):
            streams.append(contents)
        else:
            streams.append(writer._add_object(resolved))

    if streams:
        streams.insert(0, _content_stream(writer, b'q\n'))
        streams.append(_content_stream(writer, b'\nQ\n' + draw_ops))
    else:
        streams.append(_content_stream(writer, draw_ops))

    page[NameObject('/Contents')] = ArrayObject(streams)
