"""
Logo placement: corner positions, per-page configuration and page geometry.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from errors import InvalidParameterError


class Position(str, Enum):
    TOP_LEFT = 'top-left'
    TOP_RIGHT = 'top-right'
    BOTTOM_LEFT = 'bottom-left'
    BOTTOM_RIGHT = 'bottom-right'

    @classmethod
    def parse(cls, value) -> 'Position':
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidParameterError(f"Invalid position: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ', '.join(p.value for p in cls)
            raise InvalidParameterError(
                f"Invalid position: {value!r} (expected one of {allowed})"
            ) from None


@dataclass(frozen=True)
class PageConfig:
    page_number: int
    position: Position

    @classmethod
    def create(cls, page_number, position) -> 'PageConfig':
        if isinstance(page_number, bool) or not isinstance(page_number, int):
            # Form posts and JSON clients sometimes send "3" or 3.0
            try:
                as_float = float(page_number)
            except (TypeError, ValueError):
                raise InvalidParameterError(f"Invalid page number: {page_number!r}") from None
            if isinstance(page_number, bool) or not as_float.is_integer():
                raise InvalidParameterError(f"Invalid page number: {page_number!r}")
            page_number = int(as_float)
        if page_number < 1:
            raise InvalidParameterError(f"Page numbers start at 1, got {page_number}")
        return cls(page_number, Position.parse(position))


@dataclass(frozen=True)
class Uniform:
    """Stamp every page at the same corner."""
    position: Position


@dataclass(frozen=True)
class PerPage:
    """Stamp only the listed pages; the first entry for a page wins."""
    configs: Tuple[PageConfig, ...]

    def __init__(self, configs: Sequence[PageConfig]):
        object.__setattr__(self, 'configs', tuple(configs))


Mode = Union[Uniform, PerPage]


def position_for(page_ordinal: int, mode: Mode) -> Optional[Position]:
    """
    Decide which corner, if any, page `page_ordinal` (1-indexed) gets.

    Returns None when the page must be left untouched.
    """
    if isinstance(mode, Uniform):
        return mode.position
    for config in mode.configs:
        if config.page_number == page_ordinal:
            return config.position
    return None


def resolve_origin(page_width: float, page_height: float,
                   display_width: float, display_height: float,
                   padding: float, position: Position) -> Tuple[float, float]:
    """
    Compute the lower-left corner of the logo box in PDF page space.

    PDF coordinates grow up and to the right from the bottom-left of the
    page. The result is not clamped: a logo wider than the page minus its
    padding ends up partly off-page.

    Args:
        page_width: Page width in points
        page_height: Page height in points
        display_width: Width the logo is drawn at
        display_height: Height the logo is drawn at
        padding: Gap between the page edges and the logo box
        position: Corner to anchor the logo to

    Returns:
        The (x, y) drawing origin
    """
    if position in (Position.TOP_LEFT, Position.BOTTOM_LEFT):
        x = padding
    else:
        x = page_width - padding - display_width

    if position in (Position.TOP_LEFT, Position.TOP_RIGHT):
        y = page_height - padding - display_height
    else:
        y = padding

    return x, y


def validate_number(name: str, value, allow_zero: bool) -> float:
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    if number < 0 or (number == 0 and not allow_zero):
        bound = '>= 0' if allow_zero else '> 0'
        raise InvalidParameterError(f"{name} must be {bound}, got {value!r}")
    return number


def parse_mode(apply_to_all: bool = True, position=None, page_configs=None) -> Mode:
    """
    Build a placement mode from request-shaped values.

    `page_configs` is a list of {"pageNumber": int, "position": str} dicts;
    it is only consulted when `apply_to_all` is false.
    """
    if apply_to_all:
        return Uniform(Position.parse(position))

    if page_configs is None:
        page_configs = []
    if not isinstance(page_configs, (list, tuple)):
        raise InvalidParameterError("pageConfigs must be a list")

    configs = []
    for entry in page_configs:
        if not isinstance(entry, dict):
            raise InvalidParameterError(f"Invalid page config: {entry!r}")
        configs.append(PageConfig.create(entry.get('pageNumber'), entry.get('position')))
    return PerPage(configs)
