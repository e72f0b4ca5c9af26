"""
Tests for annotation scanning and metadata resolution.

Run with: uv run pytest tests/test_annotations.py -v
"""

from pathlib import Path
from textwrap import dedent

import pytest

from xray_reporter.annotations import (
    MetadataResolver,
    SourceScanner,
    docstring_summary,
    parse_tags,
    split_iteration_title,
)
from xray_reporter.models.records import TestKind


def _write(tmp_path: Path, source: str, name: str = "test_sample.py") -> Path:
    path = tmp_path / name
    path.write_text(dedent(source), encoding="utf-8")
    return path


# =============================================================================
# parse_tags
# =============================================================================


class TestParseTags:
    """Tests for @Key value extraction."""

    def test_single_tag(self):
        assert parse_tags("@JiraIssue PROV-105") == {"JiraIssue": "PROV-105"}

    def test_keeps_first_line_of_value(self):
        text = "Login works.\n\n@JiraIssue PROV-1\nsome description"
        assert parse_tags(text) == {"JiraIssue": "PROV-1"}

    def test_multiple_tags(self):
        text = "@JiraIssue PROV-1\n@DDT PROV-2"
        assert parse_tags(text) == {"JiraIssue": "PROV-1", "DDT": "PROV-2"}

    def test_no_tags(self):
        assert parse_tags("Plain docstring") == {}


# =============================================================================
# SourceScanner
# =============================================================================


class TestSourceScanner:
    """Tests for per-function annotation scanning."""

    def test_comment_block_above_def(self, tmp_path):
        path = _write(
            tmp_path,
            """
            # @JiraIssue PROV-105
            def test_login():
                pass
            """,
        )
        assert SourceScanner().scan_file(path) == {"test_login": {"JiraIssue": "PROV-105"}}

    def test_comment_block_above_decorators(self, tmp_path):
        path = _write(
            tmp_path,
            """
            import pytest


            # Search by user
            # @DDT PROV-110
            @pytest.mark.parametrize("row", [1, 2])
            @pytest.mark.slow
            def test_search(row):
                pass
            """,
        )
        assert SourceScanner().scan_file(path) == {"test_search": {"DDT": "PROV-110"}}

    def test_blank_line_breaks_comment_block(self, tmp_path):
        path = _write(
            tmp_path,
            """
            # @JiraIssue PROV-105

            def test_login():
                pass
            """,
        )
        assert SourceScanner().scan_file(path) == {}

    def test_docstring_tags(self, tmp_path):
        path = _write(
            tmp_path,
            '''
            def test_logout():
                """User can log out.

                @JiraIssue PROV-106
                """
            ''',
        )
        assert SourceScanner().scan_file(path) == {"test_logout": {"JiraIssue": "PROV-106"}}

    def test_comment_overrides_docstring(self, tmp_path):
        path = _write(
            tmp_path,
            '''
            # @JiraIssue PROV-200
            def test_logout():
                """@JiraIssue PROV-106"""
            ''',
        )
        assert SourceScanner().annotations_for(path, "test_logout") == {"JiraIssue": "PROV-200"}

    def test_methods_use_qualname(self, tmp_path):
        path = _write(
            tmp_path,
            """
            class TestCart:
                # @JiraIssue PROV-7
                def test_add(self):
                    pass

                async def test_remove(self):
                    pass
            """,
        )
        scanner = SourceScanner()
        assert scanner.annotations_for(path, "TestCart.test_add") == {"JiraIssue": "PROV-7"}
        assert scanner.annotations_for(path, "TestCart.test_remove") is None

    def test_trailing_comment_is_not_a_tag(self, tmp_path):
        path = _write(
            tmp_path,
            """
            x = 1  # @JiraIssue PROV-1
            def test_a():
                pass
            """,
        )
        assert SourceScanner().scan_file(path) == {}

    def test_syntax_error_yields_nothing(self, tmp_path):
        path = _write(tmp_path, "def test_broken(:\n    pass\n")
        assert SourceScanner().scan_file(path) == {}

    def test_missing_file_yields_nothing(self, tmp_path):
        assert SourceScanner().scan_file(tmp_path / "missing.py") == {}

    def test_docstring_summaries(self, tmp_path):
        path = _write(
            tmp_path,
            '''
            class TestCart:
                def test_add(self):
                    """Adds an item

                    @JiraIssue PROV-7
                    """
            ''',
        )
        scanner = SourceScanner()
        assert scanner.summary_for(path, "TestCart.test_add") == "Adds an item"
        assert scanner.summary_for(tmp_path / "missing.py", "test_a") is None

    def test_results_are_cached(self, tmp_path):
        path = _write(
            tmp_path,
            """
            # @JiraIssue PROV-1
            def test_a():
                pass
            """,
        )
        scanner = SourceScanner()
        first = scanner.scan_file(path)
        path.write_text("", encoding="utf-8")
        assert scanner.scan_file(path) is first


# =============================================================================
# Title helpers and resolver
# =============================================================================


class TestSplitIterationTitle:
    """Tests for `<base> -> Iteration <N>` parsing."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Search -> Iteration 1", ("Search", 0)),
            ("Search  ->  Iteration 12", ("Search", 11)),
            ("a -> b -> Iteration 3", ("a -> b", 2)),
            ("Search -> Iteration 1-chrome", ("Search", 0)),
            ("Search -> chrome-Iteration 2", ("Search", 1)),
            ("Search -> chrome-Iteration 2-fast", ("Search", 1)),
        ],
    )
    def test_matches(self, title, expected):
        assert split_iteration_title(title) == expected

    @pytest.mark.parametrize(
        "title",
        [
            "Search",
            "Search -> Iteration 0",
            "Search -> Iteration x",
            "Search -> alice",
            "Search -> chrome Iteration 1",
        ],
    )
    def test_no_match(self, title):
        assert split_iteration_title(title) is None


class TestMetadataResolver:
    """Tests for identifier, kind and iteration resolution."""

    def test_simple_test(self):
        meta = MetadataResolver().resolve("Login", {"JiraIssue": "PROV-1"})

        assert meta is not None
        assert meta.identifier == "PROV-1"
        assert meta.kind is TestKind.SIMPLE
        assert meta.summary == "Login"
        assert meta.iteration is None

    def test_data_driven_iteration(self):
        meta = MetadataResolver().resolve("Search -> Iteration 2", {"DDT": "PROV-2"})

        assert meta is not None
        assert meta.identifier == "PROV-2"
        assert meta.kind is TestKind.DATA_DRIVEN
        assert meta.summary == "Search"
        assert meta.iteration == 1

    def test_ddt_tag_without_iteration_title_falls_back_to_simple(self):
        meta = MetadataResolver().resolve("Search", {"DDT": "PROV-2", "JiraIssue": "PROV-3"})

        assert meta is not None
        assert meta.identifier == "PROV-3"
        assert meta.kind is TestKind.SIMPLE

    def test_ddt_tag_alone_without_iteration_title_is_unlinked(self):
        assert MetadataResolver().resolve("Search", {"DDT": "PROV-2"}) is None

    def test_no_annotations(self):
        assert MetadataResolver().resolve("Login", None) is None
        assert MetadataResolver().resolve("Login", {"Owner": "qa"}) is None

    def test_custom_tag_names(self):
        resolver = MetadataResolver(test_key_tag="TestKey", ddt_key_tag="Dataset")

        assert resolver.resolve("Login", {"JiraIssue": "PROV-1"}) is None
        meta = resolver.resolve("Login", {"TestKey": "PROV-1"})
        assert meta is not None and meta.identifier == "PROV-1"

    def test_resolve_test_from_source(self, tmp_path):
        path = _write(
            tmp_path,
            """
            # @DDT PROV-9
            def test_search(row):
                pass
            """,
        )
        meta = MetadataResolver().resolve_test(path, "test_search", "search -> Iteration 1")

        assert meta is not None
        assert meta.identifier == "PROV-9"
        assert meta.iteration == 0


class TestDocstringSummary:
    @pytest.mark.parametrize(
        "doc,expected",
        [
            ("Login works\n\nMore text", "Login works"),
            ("@JiraIssue PROV-1", None),
            ("   ", None),
            (None, None),
        ],
    )
    def test_first_line(self, doc, expected):
        assert docstring_summary(doc) == expected
