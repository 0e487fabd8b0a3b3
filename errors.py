"""
Error types raised by the letterhead logo engine.
"""


class LetterheadError(Exception):
    """Base class for every failure the engine reports to its callers."""


class DecodeError(LetterheadError):
    """The input bytes are not a readable PDF or raster image."""


class InvalidParameterError(LetterheadError):
    """A size, padding, position or page number is out of range."""


class PageProcessingError(LetterheadError):
    """A single page could not be read or drawn to."""

    def __init__(self, page_ordinal: int, message: str = None):
        self.page_ordinal = page_ordinal
        if message is None:
            message = f"Failed to process page {page_ordinal}"
        super().__init__(message)


class SerializationError(LetterheadError):
    """Writing the modified PDF back to bytes failed."""


class BackgroundRemovalError(LetterheadError):
    """Background removal is unavailable or failed."""

    def __init__(self, message: str, unavailable: bool = False):
        self.unavailable = unavailable
        super().__init__(message)
