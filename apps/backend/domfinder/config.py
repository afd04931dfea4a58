"""
Field specification: the user-authored description of what to extract.

A specification is a tree of `FieldConfig` nodes, usually written in YAML:

    name: root
    base_path: html
    children:
      - name: links
        base_path: a[href]
        many: true
        extract: href

`FieldConfig` only holds and validates the user's input. Compilation into an
executable plan happens in `domfinder.finder`.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping

import yaml

from .errors import ConfigError, ExtractOrDive, FieldIsMissing
from .sanitize import POLICY_NONE, POLICY_NAMES

logger = logging.getLogger(__name__)


class CastType(Enum):
    """Final scalar coercion applied to an extracted string."""
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"


_STRING_FIELDS = ('name', 'base_path', 'extract', 'join_sep')
_BOOL_FIELDS = (
    'many', 'enumerate', 'inherit', 'parent',
    'first_occurrence', 'remove_selection', 'flatten',
)
_KNOWN_FIELDS = set(_STRING_FIELDS) | set(_BOOL_FIELDS) | {
    'cast', 'sanitize_policy', 'pipeline', 'children'
}


@dataclass
class FieldConfig:
    """One node of a field specification."""

    # `name` is the key of this node's value in the result
    name: str = ""
    # CSS selector; may be empty only when `inherit` is set
    base_path: str = ""
    # `text`, `inner_text`, `html`, `inner_html` or an attribute name
    extract: str = ""
    cast: CastType = CastType.STRING
    # joins the values of a `many` leaf into one string
    join_sep: str = ""
    many: bool = False
    enumerate: bool = False
    inherit: bool = False
    parent: bool = False
    first_occurrence: bool = False
    remove_selection: bool = False
    flatten: bool = False
    # policy applied to `html`/`inner_html` before the pipeline
    sanitize_policy: str = POLICY_NONE
    pipeline: List[List[str]] = field(default_factory=list)
    children: List['FieldConfig'] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, data: str) -> 'FieldConfig':
        """Load a specification from YAML text."""
        try:
            raw = yaml.safe_load(data)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}") from e
        return cls.from_dict(raw)

    @classmethod
    def from_json(cls, data: str) -> 'FieldConfig':
        """Load a specification from JSON text."""
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON: {e}") from e
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Any) -> 'FieldConfig':
        """
        Build a specification tree from plain data (as produced by a YAML or
        JSON loader).

        Only types are checked here; structural rules are enforced by
        `validate()`.

        Raises:
            ConfigError: if the data is not a mapping or a key has the wrong type
        """
        if not isinstance(raw, Mapping):
            raise ConfigError(f"specification node must be a mapping, got {type(raw).__name__}")

        node_name = raw.get('name')
        label = node_name if isinstance(node_name, str) else None

        unknown = sorted(str(k) for k in raw.keys() if k not in _KNOWN_FIELDS)
        if unknown:
            logger.warning(f"Ignoring unknown specification keys {unknown} (node: {label!r})")

        kwargs: Dict[str, Any] = {}

        for key in _STRING_FIELDS:
            value = raw.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"`{key}` must be a string, got {type(value).__name__}", label)
            kwargs[key] = value

        for key in _BOOL_FIELDS:
            value = raw.get(key)
            if value is None:
                continue
            if not isinstance(value, bool):
                raise ConfigError(f"`{key}` must be a boolean, got {value!r}", label)
            kwargs[key] = value

        cast = raw.get('cast')
        if cast is not None:
            try:
                kwargs['cast'] = CastType(str(cast).lower())
            except ValueError:
                allowed = ', '.join(c.value for c in CastType)
                raise ConfigError(f"`cast` must be one of {allowed}, got {cast!r}", label) from None

        policy = raw.get('sanitize_policy')
        if policy is not None:
            policy = str(policy).lower()
            if policy != POLICY_NONE and policy not in POLICY_NAMES:
                allowed = ', '.join((POLICY_NONE,) + POLICY_NAMES)
                raise ConfigError(f"`sanitize_policy` must be one of {allowed}, got {policy!r}", label)
            kwargs['sanitize_policy'] = policy

        kwargs['pipeline'] = _parse_pipeline(raw.get('pipeline'), label)

        children = raw.get('children')
        if children is not None:
            if not isinstance(children, list):
                raise ConfigError("`children` must be a list", label)
            kwargs['children'] = [cls.from_dict(child) for child in children]

        return cls(**kwargs)

    def validate(self):
        """
        Check the structural rules of this node (not its children).

        Raises:
            FieldIsMissing: `name` is empty, or `base_path` is empty without `inherit`
            ExtractOrDive: both or neither of `extract` and `children` are set
        """
        if not self.name:
            raise FieldIsMissing('name')
        # an empty base_path under `inherit` is checked again at compile time for the root
        if not self.base_path and not self.inherit:
            raise FieldIsMissing('base_path', self.name)
        must_extract = bool(self.extract)
        must_dive = bool(self.children)
        if must_extract == must_dive:
            raise ExtractOrDive(self.name)


def _parse_pipeline(raw: Any, label) -> List[List[str]]:
    """Normalize `pipeline` into a list of `[proc_name, *args]` string lists."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("`pipeline` must be a list of lists", label)

    steps: List[List[str]] = []
    for step in raw:
        # a bare procedure name is shorthand for a step without arguments
        if isinstance(step, str):
            step = [step]
        if not isinstance(step, list):
            raise ConfigError(f"pipeline step must be a list, got {step!r}", label)
        items = []
        for item in step:
            if isinstance(item, (dict, list)) or item is None:
                raise ConfigError(f"pipeline arguments must be scalars, got {item!r}", label)
            items.append(item if isinstance(item, str) else str(item))
        steps.append(items)
    return steps
