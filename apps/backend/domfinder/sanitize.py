"""
Allow-list HTML sanitization.

A policy keeps a fixed set of tags and drops everything else *except the
text*: a disallowed element is unwrapped so its children take its place,
and an allowed element keeps only its tag name (all attributes are
stripped). `<script>` and `<style>` bodies are not user-visible text and are
removed together with their element. Comments are removed as well.

Four policies exist, looked up by name in a registry that is built once at
import time and never changed afterwards:

    highlight  b, del, em, i, ins, mark, s, small, strong, u
    list       highlight + ul, ol, li, dl, dt, dd
    table      highlight + table, caption, colgroup, col, thead, tbody, tfoot, tr, th, td
    common     highlight + list + table
"""

import html
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import PreformattedString, Tag
from bs4.builder import ParserRejectedMarkup

logger = logging.getLogger(__name__)

POLICY_NONE = 'none'
POLICY_HIGHLIGHT = 'highlight'
POLICY_LIST = 'list'
POLICY_TABLE = 'table'
POLICY_COMMON = 'common'

POLICY_NAMES = (POLICY_HIGHLIGHT, POLICY_LIST, POLICY_TABLE, POLICY_COMMON)

HIGHLIGHT_TAGS = frozenset({
    'b', 'del', 'em', 'i', 'ins', 'mark', 's', 'small', 'strong', 'u',
})
LIST_TAGS = HIGHLIGHT_TAGS | frozenset({'ul', 'ol', 'li', 'dl', 'dt', 'dd'})
TABLE_TAGS = HIGHLIGHT_TAGS | frozenset({
    'table', 'caption', 'colgroup', 'col', 'thead', 'tbody', 'tfoot', 'tr', 'th', 'td',
})
COMMON_TAGS = HIGHLIGHT_TAGS | LIST_TAGS | TABLE_TAGS

# Raw-text elements: their body is code, not content, so it goes with the tag
DROP_CONTENT_TAGS = frozenset({'script', 'style'})


class SanitizePolicy:
    """An immutable allow-list of tag names."""

    def __init__(self, name: str, allowed_tags: Iterable[str]):
        self._name = name
        self._allowed: FrozenSet[str] = frozenset(t.lower() for t in allowed_tags)

    @property
    def name(self) -> str:
        return self._name

    @property
    def allowed_tags(self) -> FrozenSet[str]:
        return self._allowed

    def allows(self, tag_name: str) -> bool:
        return tag_name.lower() in self._allowed

    def clean(self, markup: str) -> str:
        """
        Sanitize a markup fragment and return the cleaned markup.

        Never raises: markup the parser rejects outright is returned as
        escaped text, which still keeps every character of content.
        """
        if not markup:
            return ""
        try:
            fragment = BeautifulSoup(markup, 'html.parser')
        except ParserRejectedMarkup as e:
            logger.debug(f"[sanitize:{self._name}] parser rejected markup, escaping it: {e}")
            return html.escape(markup, quote=False)
        self.sanitize_children(fragment)
        return fragment.decode()

    def sanitize_children(self, root: Tag):
        """
        Sanitize every descendant of `root` in place. `root` itself is kept
        as it is.

        Walks the tree with an explicit stack, so nesting depth is not
        bounded by the interpreter's recursion limit.
        """
        stack: List = list(root.children)
        while stack:
            node = stack.pop()
            if isinstance(node, PreformattedString):
                # comments, doctypes, processing instructions
                node.extract()
                continue
            if not isinstance(node, Tag):
                continue

            name = (node.name or '').lower()
            if name in DROP_CONTENT_TAGS:
                node.decompose()
                continue

            children = list(node.children)
            if name in self._allowed:
                node.attrs = {}
            else:
                node.unwrap()
            stack.extend(children)

    def __repr__(self):
        return f"<SanitizePolicy(name={self._name}, tags={len(self._allowed)})>"


class PolicyRegistry:
    """Read-only mapping of policy name to `SanitizePolicy`."""

    def __init__(self, policies: Iterable[SanitizePolicy]):
        by_name: Dict[str, SanitizePolicy] = {}
        for policy in policies:
            if policy.name in by_name:
                raise ValueError(f"duplicate sanitize policy: {policy.name}")
            by_name[policy.name] = policy
        self._policies = MappingProxyType(by_name)

    def get(self, name: str) -> Optional[SanitizePolicy]:
        """Get policy by name"""
        return self._policies.get(name)

    def names(self) -> List[str]:
        return list(self._policies.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._policies

    def __len__(self) -> int:
        return len(self._policies)


def _builtin_policies() -> List[SanitizePolicy]:
    return [
        SanitizePolicy(POLICY_HIGHLIGHT, HIGHLIGHT_TAGS),
        SanitizePolicy(POLICY_LIST, LIST_TAGS),
        SanitizePolicy(POLICY_TABLE, TABLE_TAGS),
        SanitizePolicy(POLICY_COMMON, COMMON_TAGS),
    ]


# Global registry, built once at import
_registry = PolicyRegistry(_builtin_policies())
logger.info(f"Sanitize policy registry initialized: {_registry.names()}")


def get_policy_registry() -> PolicyRegistry:
    """Get the global policy registry"""
    return _registry


def get_policy(name: str) -> SanitizePolicy:
    """
    Look up a built-in policy.

    Raises:
        KeyError: if no policy has that name
    """
    policy = _registry.get(name)
    if policy is None:
        raise KeyError(name)
    return policy


def clean(name: str, markup: str) -> str:
    """Sanitize `markup` with the named built-in policy."""
    return get_policy(name).clean(markup)
