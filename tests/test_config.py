"""
Unit tests for field specification loading and validation.
"""
import logging
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "apps" / "backend"))

from domfinder.config import CastType, FieldConfig
from domfinder.errors import (
    ConfigError,
    ExtractOrDive,
    FieldIsMissing,
    FinderError,
    RequireMatcher,
    ValidationError,
)
from domfinder.finder import Finder

SPEC = """
name: root
base_path: html
children:
  - name: links
    base_path: a[href]
    many: true
    extract: href
    pipeline: [[regex, '(\\d+)'], [trim_space]]
  - name: title
    base_path: h1
    extract: text
    cast: INT
    sanitize_policy: none
"""


class TestLoading:
    """Test building specifications from YAML, JSON and dicts."""

    def test_from_yaml(self):
        config = FieldConfig.from_yaml(SPEC)
        assert config.name == "root"
        assert config.base_path == "html"
        assert [c.name for c in config.children] == ["links", "title"]

        links = config.children[0]
        assert links.many is True
        assert links.extract == "href"
        assert links.cast is CastType.STRING
        assert links.pipeline == [["regex", "(\\d+)"], ["trim_space"]]

    def test_cast_is_case_insensitive(self):
        config = FieldConfig.from_yaml(SPEC)
        assert config.children[1].cast is CastType.INT

    def test_defaults(self):
        config = FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text"})
        assert config.join_sep == ""
        assert config.sanitize_policy == "none"
        assert not any([
            config.many, config.enumerate, config.inherit, config.parent,
            config.first_occurrence, config.remove_selection, config.flatten,
        ])
        assert config.children == []
        assert config.pipeline == []

    def test_null_means_default(self):
        config = FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text", "many": None})
        assert config.many is False

    def test_from_json(self):
        config = FieldConfig.from_json('{"name": "root", "base_path": "html", "extract": "text"}')
        assert config.extract == "text"

    def test_bare_pipeline_step_and_scalar_args(self):
        config = FieldConfig.from_dict({
            "name": "a", "base_path": "p", "extract": "text",
            "pipeline": ["trim_space", ["replace", 1, 2.5]],
        })
        assert config.pipeline == [["trim_space"], ["replace", "1", "2.5"]]

    def test_unknown_keys_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="domfinder.config"):
            FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text", "split_path": True})
        assert "split_path" in caplog.text


class TestLoadingErrors:
    """Test rejection of malformed specification text."""

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_yaml("name: [unclosed")

    def test_invalid_json(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_json("{name: root}")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_yaml("- name: root")

    def test_wrong_bool_type(self):
        with pytest.raises(ConfigError) as exc_info:
            FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text", "many": "yes"})
        assert exc_info.value.node == "a"

    def test_wrong_string_type(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_dict({"name": "a", "base_path": 5, "extract": "text"})

    def test_unknown_cast(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text", "cast": "date"})

    def test_unknown_sanitize_policy(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "html", "sanitize_policy": "strict"})

    def test_children_must_be_a_list(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_dict({"name": "a", "base_path": "p", "children": {"name": "b"}})

    def test_pipeline_arguments_must_be_scalars(self):
        with pytest.raises(ConfigError):
            FieldConfig.from_dict({"name": "a", "base_path": "p", "extract": "text",
                                   "pipeline": [["replace", {"a": 1}, "b"]]})

    def test_config_errors_are_finder_errors(self):
        with pytest.raises(FinderError):
            Finder.from_yaml("name: [unclosed")


class TestValidation:
    """Test structural rules enforced when a plan is built."""

    def test_missing_name(self):
        with pytest.raises(FieldIsMissing) as exc_info:
            Finder({"base_path": "html", "extract": "text"})
        assert exc_info.value.field == "name"

    def test_missing_base_path(self):
        with pytest.raises(FieldIsMissing) as exc_info:
            Finder({"name": "root", "extract": "text"})
        assert exc_info.value.field == "base_path"
        assert exc_info.value.node == "root"

    def test_neither_extract_nor_children(self):
        with pytest.raises(ExtractOrDive):
            Finder({"name": "root", "base_path": "html"})

    def test_both_extract_and_children(self):
        with pytest.raises(ExtractOrDive):
            Finder({
                "name": "root", "base_path": "html", "extract": "text",
                "children": [{"name": "a", "base_path": "a", "extract": "href"}],
            })

    def test_empty_children_list_counts_as_absent(self):
        with pytest.raises(ExtractOrDive):
            Finder({"name": "root", "base_path": "html", "children": []})

    def test_validation_errors_share_a_base(self):
        with pytest.raises(ValidationError):
            Finder({"name": "root", "base_path": "html"})

    def test_error_names_nested_node(self):
        with pytest.raises(ExtractOrDive) as exc_info:
            Finder({
                "name": "root", "base_path": "html",
                "children": [{"name": "broken", "base_path": "a"}],
            })
        assert exc_info.value.node == "broken"
        assert "broken" in str(exc_info.value)

    def test_root_inherit_without_selector(self):
        with pytest.raises(RequireMatcher):
            Finder({"name": "root", "inherit": True, "extract": "text"})

    def test_root_inherit_with_selector(self):
        finder = Finder({"name": "root", "base_path": "html", "inherit": True, "extract": "text"})
        assert finder.root.inherit

    def test_child_inherit_without_selector(self):
        finder = Finder({
            "name": "root", "base_path": "html",
            "children": [{"name": "text", "inherit": True, "extract": "text"}],
        })
        assert finder.root.children[0].matcher is None

    def test_invalid_selector(self):
        with pytest.raises(RequireMatcher) as exc_info:
            Finder({
                "name": "root", "base_path": "html",
                "children": [{"name": "bad", "base_path": "a[href", "extract": "href"}],
            })
        assert exc_info.value.node == "bad"

    def test_invalid_selector_with_inherit_is_allowed(self):
        finder = Finder({
            "name": "root", "base_path": "html",
            "children": [{"name": "bad", "base_path": "a[href", "inherit": True, "extract": "text"}],
        })
        assert finder.root.children[0].matcher is None

    def test_pipeline_error_names_node(self):
        with pytest.raises(FinderError) as exc_info:
            Finder({
                "name": "root", "base_path": "html",
                "children": [{"name": "domain", "base_path": "a", "extract": "href",
                              "pipeline": [["regex"]]}],
            })
        assert exc_info.value.node == "domain"
