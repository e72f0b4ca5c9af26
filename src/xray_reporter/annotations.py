"""Test annotation scanning and metadata resolution.

Tests are linked to Jira through `@Key value` tags written either in the
comment block right above the test (above its decorators, if any) or in its
docstring:

    # @JiraIssue PROV-105
    def test_login(): ...

    # @DDT PROV-110
    @pytest.mark.parametrize("row", dataset_params("PROV-110"))
    def test_search(row): ...

Source files are parsed with AST (functions, decorators, docstrings) and
tokenize (comments), once per file.
"""

import ast
import io
import logging
import re
import tokenize
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from xray_reporter.exceptions import AnnotationError
from xray_reporter.models.records import TestKind

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"@(\w+)\s+([^@]+)")
# Other parametrize ids may be stacked around the iteration id ("chrome-Iteration 2-fast")
DDT_TITLE_PATTERN = re.compile(r"^(.*?)\s*->\s*(?:\S*-)?Iteration ([1-9]\d*)(?!\d)", re.DOTALL)

Annotations = dict[str, str]


def parse_tags(text: str) -> Annotations:
    """Extract `@Key value` pairs from a comment or docstring.

    Only the first line of each value is kept; empty values are dropped.
    """
    tags: Annotations = {}
    for match in TAG_PATTERN.finditer(text):
        lines = match.group(2).strip().splitlines()
        value = lines[0].strip().rstrip("*/").strip() if lines else ""
        if value:
            tags[match.group(1)] = value
    return tags


def _comment_lines(source: str) -> dict[int, str]:
    """Map line numbers to the text of full-line comments."""
    comments: dict[int, str] = {}
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if token.type != tokenize.COMMENT:
            continue
        line_no, col = token.start
        if token.line[:col].strip():
            continue  # trailing comment after code
        comments[line_no] = token.string.lstrip("#").strip()
    return comments


def docstring_summary(doc: str | None) -> str | None:
    """First docstring line, unless it is a tag line."""
    if not doc or not doc.strip():
        return None
    first = doc.strip().splitlines()[0].strip()
    if not first or first.startswith("@"):
        return None
    return first


class SourceScanner:
    """Scans test modules for per-function annotations and docstring summaries."""

    def __init__(self) -> None:
        self._cache: dict[Path, dict[str, Annotations]] = {}
        self._summaries: dict[Path, dict[str, str]] = {}

    def scan_file(self, file_path: Path) -> dict[str, Annotations]:
        """Scan a file, caching the result.

        Never raises: unreadable or unparsable sources yield no annotations.

        Returns:
            Mapping of function qualname (e.g. `TestCart.test_add`) to tags.
        """
        file_path = Path(file_path)
        if file_path not in self._cache:
            try:
                self._cache[file_path], self._summaries[file_path] = self._scan(file_path)
            except AnnotationError as e:
                logger.warning(f"[SourceScanner] {e}")
                self._cache[file_path], self._summaries[file_path] = {}, {}
        return self._cache[file_path]

    def annotations_for(self, file_path: Path, qualname: str) -> Annotations | None:
        """Tags of one test function, None when it has none."""
        return self.scan_file(file_path).get(qualname) or None

    def summary_for(self, file_path: Path, qualname: str) -> str | None:
        """Docstring summary of one test function, read from source."""
        self.scan_file(file_path)
        return self._summaries[Path(file_path)].get(qualname)

    def _scan(self, file_path: Path) -> tuple[dict[str, Annotations], dict[str, str]]:
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise AnnotationError(f"Cannot read {file_path}: {e}") from e

        try:
            tree = ast.parse(source)
            comments = _comment_lines(source)
        except (SyntaxError, tokenize.TokenError) as e:
            raise AnnotationError(f"Cannot parse {file_path}: {e}") from e

        result: dict[str, Annotations] = {}
        summaries: dict[str, str] = {}
        self._visit(tree.body, "", comments, result, summaries)
        return result, summaries

    def _visit(
        self,
        body: list[ast.stmt],
        prefix: str,
        comments: dict[int, str],
        result: dict[str, Annotations],
        summaries: dict[str, str],
    ) -> None:
        for node in body:
            if isinstance(node, ast.ClassDef):
                self._visit(node.body, f"{prefix}{node.name}.", comments, result, summaries)
            elif isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
                qualname = f"{prefix}{node.name}"
                tags = self._extract(node, comments)
                if tags:
                    result[qualname] = tags
                summary = docstring_summary(ast.get_docstring(node))
                if summary:
                    summaries[qualname] = summary

    def _extract(
        self, node: ast.FunctionDef | ast.AsyncFunctionDef, comments: dict[int, str]
    ) -> Annotations:
        """Docstring tags, overridden by the comment block above the test."""
        anchor = min([node.lineno] + [dec.lineno for dec in node.decorator_list])

        block: list[str] = []
        line = anchor - 1
        while line in comments:
            block.insert(0, comments[line])
            line -= 1

        tags = parse_tags(ast.get_docstring(node) or "")
        tags.update(parse_tags("\n".join(block)))
        return tags


@dataclass(frozen=True)
class TestMetadata:
    """Export identity of one host test."""

    __test__ = False

    identifier: str
    kind: TestKind
    summary: str
    iteration: int | None = None  # 0-based, DataDriven only


def split_iteration_title(title: str) -> tuple[str, int] | None:
    """Split `<base> -> Iteration <N>` into (base, N - 1)."""
    match = DDT_TITLE_PATTERN.match(title)
    if not match:
        return None
    return match.group(1).strip(), int(match.group(2)) - 1


class MetadataResolver:
    """Derives identifier, kind and iteration of a test from its tags and title."""

    def __init__(
        self,
        scanner: SourceScanner | None = None,
        *,
        test_key_tag: str = "JiraIssue",
        ddt_key_tag: str = "DDT",
    ) -> None:
        self.scanner = scanner or SourceScanner()
        self.test_key_tag = test_key_tag
        self.ddt_key_tag = ddt_key_tag

    def resolve(self, title: str, annotations: Mapping[str, str] | None) -> TestMetadata | None:
        """Resolve test metadata.

        Args:
            title: Test title as shown by the host.
            annotations: Tags declared for the test.

        Returns:
            TestMetadata, or None when the test is not linked to Jira.
        """
        if not annotations:
            return None

        ddt_key = annotations.get(self.ddt_key_tag)
        if ddt_key:
            split = split_iteration_title(title)
            if split:
                base, iteration = split
                return TestMetadata(
                    identifier=ddt_key,
                    kind=TestKind.DATA_DRIVEN,
                    summary=base,
                    iteration=iteration,
                )

        test_key = annotations.get(self.test_key_tag)
        if test_key:
            return TestMetadata(identifier=test_key, kind=TestKind.SIMPLE, summary=title)

        return None

    def resolve_test(self, file_path: Path, qualname: str, title: str) -> TestMetadata | None:
        """Resolve a test from its source location."""
        return self.resolve(title, self.scanner.annotations_for(file_path, qualname))
