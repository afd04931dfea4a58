"""
Text-transform pipelines.

A pipeline is an ordered list of procedures, written in a specification as

    pipeline: [[regex, '(\\d+)'], [trim_space]]

Each step is `[proc_name, *args]`. Steps are compiled once (regexes and
JSONPath expressions included) and then applied left to right, the output
of one step feeding the next. Compilation is strict; running is not: a step
that cannot use its input returns an empty string instead of raising.

Supported procedures:
- regex <pattern>: concatenation of all capture groups of the first match
- regex_find <pattern>: text of the first whole match
- replace <old> <new>: literal replacement of every occurrence
- extract_json <path>: value at a dotted path (or `$` JSONPath) in JSON text
- trim_space: strip leading and trailing whitespace
- trim <cutset>: strip leading and trailing characters found in cutset
- normalize_spaces: collapse whitespace runs to one space and trim
- html_unescape: decode HTML entities
- policy_highlight, policy_list, policy_table, policy_common: sanitize markup
"""

import html
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Type

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse as parse_jsonpath

from .errors import ProcDoesNotExist, ProcInvalidArgument, ProcNotEnoughArguments
from .sanitize import (
    POLICY_COMMON, POLICY_HIGHLIGHT, POLICY_LIST, POLICY_TABLE, get_policy
)

logger = logging.getLogger(__name__)

_MISSING = object()


class Proc:
    """A compiled pipeline procedure."""

    name: str = ""
    # number of required arguments; extra arguments are ignored
    arity: int = 0

    def handle(self, value: str) -> str:
        raise NotImplementedError

    def __repr__(self):
        return f"<{self.__class__.__name__}>"


class RegexProc(Proc):
    """Concatenated capture groups of the first match."""

    name = "regex"
    arity = 1

    def __init__(self, pattern: str):
        self.regex = _compile_regex(self.name, pattern)

    def handle(self, value: str) -> str:
        match = self.regex.search(value)
        if not match:
            return ""
        return "".join(group for group in match.groups() if group is not None)


class RegexFindProc(Proc):
    """Text of the first whole match."""

    name = "regex_find"
    arity = 1

    def __init__(self, pattern: str):
        self.regex = _compile_regex(self.name, pattern)

    def handle(self, value: str) -> str:
        match = self.regex.search(value)
        return match.group(0) if match else ""


class ReplaceProc(Proc):
    name = "replace"
    arity = 2

    def __init__(self, old: str, new: str):
        self.old = old
        self.new = new

    def handle(self, value: str) -> str:
        if not self.old:
            return value
        return value.replace(self.old, self.new)


class ExtractJsonProc(Proc):
    """
    Look up a value inside JSON text.

    Paths starting with `$` are JSONPath expressions (first match wins).
    Anything else is a dotted path: object keys, array indexes and `#`,
    which yields the array length when last and otherwise maps the rest of
    the path over the array.
    """

    name = "extract_json"
    arity = 1

    def __init__(self, path: str):
        self.path = path
        self.expr = None
        self.keys: List[str] = []
        if path.startswith('$'):
            try:
                self.expr = parse_jsonpath(path)
            except (JsonPathLexerError, JsonPathParserError) as e:
                raise ProcInvalidArgument(self.name, f"bad JSONPath {path!r}: {e}") from e
        elif path:
            self.keys = path.split('.')

    def handle(self, value: str) -> str:
        try:
            data = json.loads(value)
        except (ValueError, TypeError, RecursionError) as e:
            logger.debug(f"[extract_json] input is not usable JSON: {e}")
            return ""

        if self.expr is not None:
            try:
                matches = self.expr.find(data)
            except (TypeError, AttributeError, KeyError) as e:
                logger.debug(f"[extract_json] JSONPath {self.path!r} does not apply: {e}")
                return ""
            found = matches[0].value if matches else _MISSING
        else:
            found = _lookup(data, self.keys)

        if found is _MISSING:
            return ""
        return _json_to_text(found)


class TrimSpaceProc(Proc):
    name = "trim_space"

    def handle(self, value: str) -> str:
        return value.strip()


class TrimProc(Proc):
    name = "trim"
    arity = 1

    def __init__(self, cutset: str):
        self.cutset = cutset

    def handle(self, value: str) -> str:
        if not self.cutset:
            return value
        return value.strip(self.cutset)


class NormalizeSpacesProc(Proc):
    name = "normalize_spaces"

    def handle(self, value: str) -> str:
        return " ".join(value.split())


class HtmlUnescapeProc(Proc):
    name = "html_unescape"

    def handle(self, value: str) -> str:
        return html.unescape(value)


class SanitizeProc(Proc):
    """Clean markup with one of the built-in sanitize policies."""

    policy_name: str = ""

    def __init__(self):
        self.policy = get_policy(self.policy_name)

    def handle(self, value: str) -> str:
        return self.policy.clean(value)


class PolicyHighlightProc(SanitizeProc):
    name = "policy_highlight"
    policy_name = POLICY_HIGHLIGHT


class PolicyListProc(SanitizeProc):
    name = "policy_list"
    policy_name = POLICY_LIST


class PolicyTableProc(SanitizeProc):
    name = "policy_table"
    policy_name = POLICY_TABLE


class PolicyCommonProc(SanitizeProc):
    name = "policy_common"
    policy_name = POLICY_COMMON


PROCS: Dict[str, Type[Proc]] = {
    proc.name: proc for proc in (
        RegexProc,
        RegexFindProc,
        ReplaceProc,
        ExtractJsonProc,
        TrimSpaceProc,
        TrimProc,
        NormalizeSpacesProc,
        HtmlUnescapeProc,
        PolicyHighlightProc,
        PolicyListProc,
        PolicyTableProc,
        PolicyCommonProc,
    )
}


def compile_proc(proc_name: str, args: Sequence[str]) -> Proc:
    """
    Compile one pipeline step.

    Raises:
        ProcDoesNotExist: unknown procedure name
        ProcNotEnoughArguments: fewer arguments than the procedure requires
        ProcInvalidArgument: an argument does not compile (regex, JSONPath)
    """
    proc_cls = PROCS.get(proc_name)
    if proc_cls is None:
        raise ProcDoesNotExist(proc_name)
    if len(args) < proc_cls.arity:
        raise ProcNotEnoughArguments(proc_name, proc_cls.arity, len(args))
    return proc_cls(*args[:proc_cls.arity])


class Pipeline:
    """An immutable, ordered chain of compiled procedures."""

    def __init__(self, procs: Sequence[Proc]):
        self._procs = tuple(procs)

    @classmethod
    def compile(cls, raw_steps: Sequence[Sequence[str]]) -> 'Pipeline':
        """
        Compile raw `[proc_name, *args]` steps. Empty steps are skipped.
        """
        procs = []
        for step in raw_steps:
            if not step:
                continue
            proc_name, args = step[0], list(step[1:])
            procs.append(compile_proc(proc_name, args))
        return cls(procs)

    @property
    def procs(self) -> tuple:
        return self._procs

    def handle(self, value: str) -> str:
        """Run `value` through every procedure in order."""
        result = value
        for proc in self._procs:
            result = proc.handle(result)
        return result

    def __len__(self) -> int:
        return len(self._procs)

    def __repr__(self):
        names = ', '.join(p.name for p in self._procs)
        return f"<Pipeline([{names}])>"


def _compile_regex(proc_name: str, pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ProcInvalidArgument(proc_name, f"bad regex {pattern!r}: {e}") from e


def _lookup(data: Any, keys: List[str]) -> Any:
    """Walk a dotted path through decoded JSON."""
    if not keys:
        return data
    key, rest = keys[0], keys[1:]

    if isinstance(data, dict):
        if key not in data:
            return _MISSING
        return _lookup(data[key], rest)

    if isinstance(data, list):
        if key == '#':
            if not rest:
                return len(data)
            projected = [_lookup(item, rest) for item in data]
            return [item for item in projected if item is not _MISSING]
        if not key.isdecimal():
            return _MISSING
        index = int(key)
        if index >= len(data):
            return _MISSING
        return _lookup(data[index], rest)

    return _MISSING


def _json_to_text(value: Any) -> str:
    """Render a decoded JSON value the way it reads in the source text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, ensure_ascii=False, separators=(',', ':'))


def compile_pipeline(raw_steps: Optional[Sequence[Sequence[str]]]) -> Optional[Pipeline]:
    """Compile steps, or return None when there are none."""
    if not raw_steps:
        return None
    pipeline = Pipeline.compile(raw_steps)
    return pipeline if len(pipeline) else None
