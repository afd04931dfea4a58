"""
Exceptions raised while building an extraction plan.

Extraction itself never raises: missing selections, failed casts and broken
embedded JSON degrade to null/zero/empty values. Everything here is a
construction-time failure and aborts the whole plan build.
"""

from typing import Optional


class FinderError(Exception):
    """Base class for all plan construction errors."""

    def __init__(self, message: str, node: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.node = node

    def with_node(self, node: str) -> "FinderError":
        """Attach the offending node name unless a deeper node already did."""
        if self.node is None:
            self.node = node
        return self

    def __str__(self):
        if self.node:
            return f"{self.message} (node: {self.node!r})"
        return self.message


class ConfigError(FinderError):
    """Raised when specification text cannot be loaded or has wrong types."""
    pass


class ValidationError(FinderError):
    """Raised when a field specification breaks a structural rule."""
    pass


class FieldIsMissing(ValidationError):
    """A required field (`name` or `base_path`) is empty."""

    def __init__(self, field: str, node: Optional[str] = None):
        super().__init__(f"the required `{field}` field is missing", node)
        self.field = field


class ExtractOrDive(ValidationError):
    """Both or neither of `extract` and `children` are set."""

    def __init__(self, node: Optional[str] = None):
        super().__init__("it is only possible to use either 'extract' or 'children' options", node)


class RequireMatcher(FinderError):
    """No selector could be compiled for a node that needs one."""

    def __init__(self, node: Optional[str] = None):
        super().__init__("matcher can be empty only if inherit is set to true", node)


class PipelineError(FinderError):
    """Base class for pipeline compile errors."""
    pass


class ProcDoesNotExist(PipelineError):

    def __init__(self, proc: str, node: Optional[str] = None):
        super().__init__(f"pipeline proc with name `{proc}` does not exist", node)
        self.proc = proc


class ProcNotEnoughArguments(PipelineError):

    def __init__(self, proc: str, required: int, got: int, node: Optional[str] = None):
        super().__init__(
            f"pipeline proc `{proc}`: not enough arguments, require {required}, got {got}",
            node
        )
        self.proc = proc
        self.required = required
        self.got = got


class ProcInvalidArgument(PipelineError):
    """An argument could not be compiled (bad regex or JSONPath)."""

    def __init__(self, proc: str, reason: str, node: Optional[str] = None):
        super().__init__(f"pipeline proc `{proc}`: invalid argument: {reason}", node)
        self.proc = proc
        self.reason = reason
