"""
Document access layer.

Everything the extraction engine needs from the markup tree goes through
this module: parsing, compiled CSS selectors, scoped selection, parent
lookup, text/markup/attribute reads and node removal. BeautifulSoup holds
the tree and soupsieve compiles and matches the selectors.
"""

import logging
from typing import Iterable, List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString, Tag

from .settings import get_settings

logger = logging.getLogger(__name__)

Matcher = sv.SoupSieve


def parse_html(markup: str, parser: Optional[str] = None) -> BeautifulSoup:
    """
    Parse an HTML page.

    Args:
        markup: HTML text
        parser: BeautifulSoup tree builder; defaults to DOMFINDER_HTML_PARSER

    Returns:
        BeautifulSoup document
    """
    return BeautifulSoup(markup, parser or get_settings().html_parser)


def compile_selector(selector: str) -> Optional[Matcher]:
    """
    Compile a CSS selector once for repeated use.

    Returns None when the selector is empty or its syntax is invalid.
    """
    if not selector or not selector.strip():
        return None
    try:
        return sv.compile(selector)
    except (sv.SelectorSyntaxError, ValueError) as e:
        logger.debug(f"Invalid selector {selector!r}: {e}")
        return None


def select(scope: Iterable[Tag], matcher: Matcher, many: bool = True) -> List[Tag]:
    """
    Find descendants of every scope element that match `matcher`.

    With `many=False` at most the first match is returned. Results keep
    document order per scope element and contain no duplicates.
    """
    found: List[Tag] = []
    seen = set()
    for root in scope:
        if many:
            matches = matcher.select(root)
        else:
            first = matcher.select_one(root)
            matches = [first] if first is not None else []
        for element in matches:
            if id(element) in seen:
                continue
            seen.add(id(element))
            found.append(element)
        if not many and found:
            break
    return found


def parents(elements: Iterable[Tag]) -> List[Tag]:
    """Replace every element with its direct parent (deduplicated)."""
    result: List[Tag] = []
    seen = set()
    for element in elements:
        parent = element.parent
        if parent is None or id(parent) in seen:
            continue
        seen.add(id(parent))
        result.append(parent)
    return result


def text(element: Tag) -> str:
    """Text of the element and all of its descendants."""
    return element.get_text()


def inner_text(element: Tag) -> str:
    """Text of the element's own text nodes; descendant elements are skipped."""
    return "".join(
        str(child) for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    )


def outer_html(element: Tag) -> Optional[str]:
    """Serialized markup of the element itself."""
    return element.decode()


def inner_html(element: Tag) -> Optional[str]:
    """Serialized markup of the element's children."""
    return element.decode_contents()


def attribute(element: Tag, name: str) -> Optional[str]:
    """Attribute value, or None when the element does not have it."""
    value = element.get(name)
    if value is None:
        return None
    # multi-valued attributes such as `class` come back as lists
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def detach(elements: Iterable[Tag]):
    """Remove elements from their document."""
    for element in elements:
        if element.parent is not None:
            element.extract()
