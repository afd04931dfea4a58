"""
HTML extraction with declarative, reusable plans.

A YAML/JSON field specification is compiled once into a plan (CSS selectors
and text pipelines included) and then applied to any number of documents,
each producing a typed `Value` tree.
"""

__version__ = "0.1.0"

from domfinder.config import CastType, FieldConfig
from domfinder.errors import (
    ConfigError,
    ExtractOrDive,
    FieldIsMissing,
    FinderError,
    PipelineError,
    ProcDoesNotExist,
    ProcInvalidArgument,
    ProcNotEnoughArguments,
    RequireMatcher,
    ValidationError,
)
from domfinder.finder import Finder, PlanNode
from domfinder.pipeline import Pipeline
from domfinder.sanitize import SanitizePolicy, get_policy, get_policy_registry
from domfinder.value import Value, ValueKind
from domfinder.batch import parse_many

__all__ = [
    'CastType',
    'FieldConfig',
    'ConfigError',
    'ExtractOrDive',
    'FieldIsMissing',
    'FinderError',
    'PipelineError',
    'ProcDoesNotExist',
    'ProcInvalidArgument',
    'ProcNotEnoughArguments',
    'RequireMatcher',
    'ValidationError',
    'Finder',
    'PlanNode',
    'Pipeline',
    'SanitizePolicy',
    'get_policy',
    'get_policy_registry',
    'Value',
    'ValueKind',
    'parse_many',
]
