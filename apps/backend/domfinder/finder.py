"""
Plan compiler and extraction engine.

A `Finder` compiles a `FieldConfig` tree once into an immutable tree of
`PlanNode`s (selectors compiled, pipelines compiled, extract targets
resolved) and then applies it to any number of documents:

    finder = Finder.from_yaml(SPEC)
    for page in pages:
        result = finder.parse(page)

The plan is never modified after construction, so one `Finder` can be used
from many threads at once. `remove_selection` is the exception to "read
only": it detaches nodes from the document being parsed, so a document
must not be shared between concurrent calls when it is in use. `parse()`
builds a fresh document per call and is always safe.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from . import document as dom
from .config import CastType, FieldConfig
from .errors import FinderError, PipelineError, RequireMatcher, ValidationError
from .pipeline import Pipeline, compile_pipeline
from .sanitize import POLICY_NONE, SanitizePolicy, get_policy
from .value import Value

logger = logging.getLogger(__name__)

# Key of the position field added by `enumerate`
INDEX_FIELD = "index"

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1
_INT_RE = re.compile(r'[+-]?[0-9]+')


class ExtractTarget(Enum):
    """What to read from a matched element."""
    TEXT = "text"
    INNER_TEXT = "inner_text"
    HTML = "html"
    INNER_HTML = "inner_html"
    ATTRIBUTE = "attribute"


@dataclass(frozen=True, eq=False)
class PlanNode:
    """A compiled specification node."""

    name: str
    target: Optional[ExtractTarget]
    # attribute name when target is ATTRIBUTE
    attribute: str
    cast: CastType
    join_sep: str
    many: bool
    enumerate: bool
    inherit: bool
    parent: bool
    first_occurrence: bool
    remove_selection: bool
    flatten: bool
    matcher: Optional[dom.Matcher]
    pipeline: Optional[Pipeline]
    sanitizer: Optional[SanitizePolicy]
    children: Tuple['PlanNode', ...]

    def iter_nodes(self) -> Iterator['PlanNode']:
        """This node and all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()


def compile_node(config: FieldConfig, is_root: bool = False) -> PlanNode:
    """
    Validate and compile a specification node and its children.

    Args:
        config: specification node
        is_root: True only for the outermost node; the root always needs a selector

    Returns:
        PlanNode

    Raises:
        FieldIsMissing, ExtractOrDive: the node breaks a structural rule
        RequireMatcher: no selector compiles where one is required
        PipelineError: a pipeline step does not compile
    """
    try:
        config.validate()
    except ValidationError as e:
        if config.name:
            e.with_node(config.name)
        raise

    matcher = dom.compile_selector(config.base_path)
    if matcher is None and config.base_path:
        logger.warning(f"Selector {config.base_path!r} of node {config.name!r} does not compile")
    if matcher is None and (is_root or not config.inherit):
        raise RequireMatcher(config.name)

    try:
        pipeline = compile_pipeline(config.pipeline)
    except PipelineError as e:
        raise e.with_node(config.name)

    target, attribute = _resolve_target(config.extract)

    sanitizer = None
    if config.sanitize_policy != POLICY_NONE and target in (ExtractTarget.HTML, ExtractTarget.INNER_HTML):
        sanitizer = get_policy(config.sanitize_policy)

    children = tuple(compile_node(child, is_root=False) for child in config.children)

    return PlanNode(
        name=config.name,
        target=target,
        attribute=attribute,
        cast=config.cast,
        join_sep=config.join_sep,
        many=config.many,
        enumerate=config.enumerate,
        inherit=config.inherit,
        parent=config.parent,
        first_occurrence=config.first_occurrence,
        remove_selection=config.remove_selection,
        flatten=config.flatten,
        matcher=matcher,
        pipeline=pipeline,
        sanitizer=sanitizer,
        children=children,
    )


_KEYWORD_TARGETS = {
    target.value: target for target in ExtractTarget if target is not ExtractTarget.ATTRIBUTE
}


def _resolve_target(extract: str) -> Tuple[Optional[ExtractTarget], str]:
    """Map an `extract` string to a target; unknown words are attribute names."""
    if not extract:
        return None, ""
    target = _KEYWORD_TARGETS.get(extract)
    if target is not None:
        return target, ""
    return ExtractTarget.ATTRIBUTE, extract


class Finder:
    """
    A compiled extraction plan.

    The result of every parse is an object with a single key, the root
    node's name, holding the extracted value.
    """

    def __init__(self, config: Union[FieldConfig, Mapping[str, Any]]):
        if not isinstance(config, FieldConfig):
            config = FieldConfig.from_dict(config)
        self._root = compile_node(config, is_root=True)
        node_count = sum(1 for _ in self._root.iter_nodes())
        logger.info(f"Compiled plan {self._root.name!r} ({node_count} nodes)")

    @classmethod
    def from_yaml(cls, data: str) -> 'Finder':
        return cls(FieldConfig.from_yaml(data))

    @classmethod
    def from_json(cls, data: str) -> 'Finder':
        return cls(FieldConfig.from_json(data))

    @property
    def name(self) -> str:
        return self._root.name

    @property
    def root(self) -> PlanNode:
        return self._root

    def parse(self, html: str, parser: Optional[str] = None) -> Value:
        """
        Parse an HTML page and extract from it.

        Args:
            html: page markup
            parser: BeautifulSoup tree builder, defaults to DOMFINDER_HTML_PARSER

        Returns:
            Object value keyed by the root node's name
        """
        return self.parse_document(dom.parse_html(html, parser))

    def parse_document(self, document: Union[BeautifulSoup, Tag]) -> Value:
        """
        Extract from an already parsed document (or any element of one).

        Nodes flagged `remove_selection` detach their matches from
        `document`.
        """
        value = extract(self._root, [document])
        return Value.object({self._root.name: value})

    def __repr__(self):
        return f"<Finder(name={self._root.name})>"


def extract(node: PlanNode, scope: List[Tag]) -> Value:
    """
    Apply a plan node to a scope (the elements its parent resolved).

    Returns Null as soon as the node's own selection is empty; its children
    are not evaluated in that case. With `parent` and without `many`, only
    the first match is shifted to its parent, so `remove_selection` then
    detaches that one parent.
    """
    if node.inherit:
        selection = list(scope)
    else:
        if node.matcher is None:
            raise FinderError(f"internal error: node {node.name!r} has no compiled selector")
        selection = dom.select(scope, node.matcher, many=node.many)
        if node.parent:
            selection = dom.parents(selection)

    if not selection:
        logger.debug(f"Node {node.name!r}: nothing selected")
        return Value.null()

    if node.children:
        if node.many:
            value = _extract_object_list(node, selection)
        else:
            value = Value.object(_extract_object(node, selection[0]))
    elif node.many:
        value = _extract_many(node, selection)
    else:
        raw = _read(node, selection[0])
        value = cast_value(raw, node.cast) if raw is not None else Value.null()

    # last, so the value above reflects the document before removal
    if node.remove_selection:
        logger.debug(f"Node {node.name!r}: removing {len(selection)} element(s)")
        dom.detach(selection)

    return value


def _extract_object(node: PlanNode, element: Tag) -> Dict[str, Value]:
    """Run every child against one element and collect the non-empty results."""
    entries: Dict[str, Value] = {}
    for child in node.children:
        value = extract(child, [element])
        if value.is_empty():
            continue

        inner = value.as_dict()
        if child.flatten and inner is not None:
            entries.update(inner)
        else:
            entries[child.name] = value

        if node.first_occurrence:
            break
    return entries


def _extract_object_list(node: PlanNode, selection: List[Tag]) -> Value:
    items: List[Dict[str, Value]] = []
    for element in selection:
        entries = _extract_object(node, element)
        if entries:
            items.append(entries)

    if node.enumerate:
        for i, entries in enumerate(items):
            entries[INDEX_FIELD] = Value.of(i)

    return Value.array(Value.object(entries) for entries in items)


def _extract_many(node: PlanNode, selection: List[Tag]) -> Value:
    values = [raw for raw in (_read(node, element) for element in selection) if raw is not None]
    if node.join_sep:
        # joined output is always a string, `cast` does not apply
        return Value.of(node.join_sep.join(values))
    return Value.array(cast_value(raw, node.cast) for raw in values)


def _read(node: PlanNode, element: Tag) -> Optional[str]:
    """Read the node's extract target from an element and run its pipeline."""
    raw = _read_target(node, element)
    if raw is None:
        return None
    if node.pipeline is not None:
        return node.pipeline.handle(raw)
    return raw


def _read_target(node: PlanNode, element: Tag) -> Optional[str]:
    target = node.target
    if target is ExtractTarget.TEXT:
        return dom.text(element)
    if target is ExtractTarget.INNER_TEXT:
        return dom.inner_text(element)
    if target is ExtractTarget.HTML:
        markup = dom.outer_html(element)
    elif target is ExtractTarget.INNER_HTML:
        markup = dom.inner_html(element)
    else:
        return dom.attribute(element, node.attribute)

    if markup is not None and node.sanitizer is not None:
        return node.sanitizer.clean(markup)
    return markup


def cast_value(raw: str, cast: CastType) -> Value:
    """
    Convert an extracted string to the requested type.

    - bool: empty string is False, anything else True
    - int: signed 64-bit integer, 0 when the text is not one
    - float: 0.0 when the text is not a number
    - string: unchanged
    """
    if cast is CastType.BOOL:
        return Value.of(bool(raw))
    if cast is CastType.INT:
        return Value.of(_parse_int(raw))
    if cast is CastType.FLOAT:
        return Value.of(_parse_float(raw))
    return Value.of(raw)


def _parse_int(raw: str) -> int:
    if not _INT_RE.fullmatch(raw):
        logger.debug(f"Cannot cast {raw[:50]!r} to int")
        return 0
    try:
        number = int(raw)
    except ValueError:
        # digit runs past the interpreter's int conversion limit
        logger.debug(f"Integer {raw[:50]!r}... is too long")
        return 0
    if number < _INT64_MIN or number > _INT64_MAX:
        logger.debug(f"Integer {raw[:50]!r} is out of 64-bit range")
        return 0
    return number


def _parse_float(raw: str) -> float:
    # float() is more permissive than a plain number literal
    if not raw or not raw.isascii() or raw != raw.strip() or '_' in raw:
        logger.debug(f"Cannot cast {raw[:50]!r} to float")
        return 0.0
    try:
        return float(raw)
    except ValueError:
        logger.debug(f"Cannot cast {raw[:50]!r} to float")
        return 0.0
