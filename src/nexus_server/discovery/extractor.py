"""Extract operation signatures from the Python sources of one domain.

Parsing is purely static (``ast``); library code is never imported at build
time. Each public module-level function becomes one operation.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass, replace
from pathlib import Path

import structlog

from ..errors import ExtractionFailed
from ..models.catalog import OperationEntry, OperationKey, ParamEntry
from ..naming import to_wire_name

logger = structlog.get_logger(__name__)

ANY_TYPE = "Any"

# error, Exception, ValueError, MyError | None, Optional[KeyError] ...
_ERROR_TYPE_RE = re.compile(r"^(error|\w*Error|\w*Exception)$")


@dataclass(frozen=True)
class SignatureParam:
    """One declared input: source identifier, wire name and type text."""

    identifier: str
    wire_name: str
    type: str
    keyword_only: bool = False


@dataclass(frozen=True)
class OperationSignature:
    """Language-neutral signature plus what is needed to bind the callable."""

    method: str
    source: Path
    function: str
    params: tuple[SignatureParam, ...] = ()
    output_types: tuple[str, ...] = ()
    is_async: bool = False
    namespace: str = ""

    @property
    def key(self) -> OperationKey:
        return (self.namespace, self.method)

    @property
    def reports_failure(self) -> bool:
        """True when the last result slot follows the failure-signal convention."""
        return bool(self.output_types) and is_error_type(self.output_types[-1])


@dataclass
class ExtractedOperation:
    entry: OperationEntry
    signature: OperationSignature

    def stamped(self, namespace: str) -> "ExtractedOperation":
        """Return a copy carrying *namespace*."""
        return ExtractedOperation(
            entry=self.entry.model_copy(update={"namespace": namespace}),
            signature=replace(self.signature, namespace=namespace),
        )


def is_error_type(type_text: str) -> bool:
    """Whether *type_text* names an error-like result slot."""
    text = type_text.replace(" ", "")
    if text.startswith("Optional[") and text.endswith("]"):
        text = text[len("Optional[") : -1]
    parts = [p for p in text.split("|") if p != "None"]
    if len(parts) != 1:
        return False
    name = parts[0].rsplit(".", 1)[-1]
    return bool(_ERROR_TYPE_RE.match(name))


class SignatureExtractor:
    """Reflects over the ``.py`` files directly inside a domain directory."""

    def __init__(self, include_async: bool = True):
        self.include_async = include_async

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, domain_path: Path) -> list[ExtractedOperation]:
        """Return the operations of *domain_path* (namespace left blank)."""
        if not domain_path.is_dir():
            raise ExtractionFailed(str(domain_path), "not a directory")

        operations: list[ExtractedOperation] = []
        for source_file in self._source_files(domain_path):
            try:
                source = source_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ExtractionFailed(str(source_file), str(e)) from e
            operations.extend(self.extract_source(source, source_file))

        logger.debug(
            "Extracted domain",
            path=str(domain_path),
            operation_count=len(operations),
        )
        return operations

    def extract_source(self, source: str, path: Path) -> list[ExtractedOperation]:
        """Parse one already-loaded source unit (useful for testing)."""
        try:
            tree = ast.parse(source, filename=str(path))
        except (SyntaxError, ValueError) as e:
            raise ExtractionFailed(str(path), str(e)) from e

        lines = source.splitlines()
        exported = _literal_all(tree)
        # A redefinition replaces the earlier function at runtime, so the
        # last definition of a name is the one kept.
        found: dict[str, ExtractedOperation] = {}
        for node in tree.body:
            if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            if isinstance(node, ast.AsyncFunctionDef) and not self.include_async:
                continue
            if not _is_exported(node.name, exported):
                continue
            found[node.name] = self._build(node, path, lines)
        return list(found.values())

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def _build(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        path: Path,
        lines: list[str],
    ) -> ExtractedOperation:
        params = self._params(node.args)
        output_types = _output_types(node.returns)
        description = _description(node, lines)

        entry = OperationEntry(
            method=node.name,
            description=description,
            inputs=[ParamEntry(name=p.wire_name, type=p.type) for p in params],
            outputs=[
                ParamEntry(name=f"result_{i}", type=t)
                for i, t in enumerate(output_types)
            ],
        )
        signature = OperationSignature(
            method=node.name,
            source=path,
            function=node.name,
            params=tuple(params),
            output_types=tuple(output_types),
            is_async=isinstance(node, ast.AsyncFunctionDef),
        )
        return ExtractedOperation(entry=entry, signature=signature)

    @staticmethod
    def _params(args: ast.arguments) -> list[SignatureParam]:
        params: list[SignatureParam] = []
        for arg in [*args.posonlyargs, *args.args]:
            params.append(_param(arg, keyword_only=False))
        for arg in args.kwonlyargs:
            params.append(_param(arg, keyword_only=True))
        return params

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _source_files(domain_path: Path) -> list[Path]:
        files = []
        for path in sorted(domain_path.glob("*.py")):
            if not path.is_file():
                continue
            if path.name.startswith("_") and path.name != "__init__.py":
                continue
            files.append(path)
        return files


def _param(arg: ast.arg, *, keyword_only: bool) -> SignatureParam:
    return SignatureParam(
        identifier=arg.arg,
        wire_name=to_wire_name(arg.arg),
        type=_annotation_text(arg.annotation),
        keyword_only=keyword_only,
    )


def _annotation_text(node: ast.expr | None) -> str:
    if node is None:
        return ANY_TYPE
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip()
    return ast.unparse(node)


def _output_types(returns: ast.expr | None) -> list[str]:
    if returns is None:
        return [ANY_TYPE]
    if isinstance(returns, ast.Constant):
        if returns.value is None:
            return []
        if isinstance(returns.value, str):
            try:
                returns = ast.parse(returns.value, mode="eval").body
            except SyntaxError:
                return [returns.value.strip()]
            if isinstance(returns, ast.Constant) and returns.value is None:
                return []
    if isinstance(returns, ast.Subscript) and _is_tuple(returns.value):
        slice_ = returns.slice
        elts = slice_.elts if isinstance(slice_, ast.Tuple) else [slice_]
        # tuple[int, ...] is a single variable-length value.
        if not any(isinstance(e, ast.Constant) and e.value is Ellipsis for e in elts):
            return [ast.unparse(e) for e in elts]
    return [ast.unparse(returns)]


def _is_tuple(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id in ("tuple", "Tuple")
    if isinstance(node, ast.Attribute):
        return node.attr == "Tuple"
    return False


def _description(node: ast.FunctionDef | ast.AsyncFunctionDef, lines: list[str]) -> str:
    """Docstring, else the ``#`` comment block right above the definition."""
    doc = ast.get_docstring(node)
    if doc:
        return doc.strip()

    first_line = min([node.lineno, *(d.lineno for d in node.decorator_list)])
    comments: list[str] = []
    idx = first_line - 2
    while idx >= 0:
        text = lines[idx].strip()
        if not text.startswith("#"):
            break
        comments.append(text[1:].strip())
        idx -= 1
    return "\n".join(reversed(comments)).strip()


def _literal_all(tree: ast.Module) -> set[str] | None:
    for node in tree.body:
        targets: list[ast.expr] = []
        value: ast.expr | None = None
        if isinstance(node, ast.Assign):
            targets, value = node.targets, node.value
        elif isinstance(node, ast.AnnAssign):
            targets, value = [node.target], node.value
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
            continue
        if isinstance(value, (ast.List, ast.Tuple)) and all(
            isinstance(e, ast.Constant) and isinstance(e.value, str) for e in value.elts
        ):
            return {e.value for e in value.elts}
        return None
    return None


def _is_exported(name: str, exported: set[str] | None) -> bool:
    if name.startswith("_"):
        return False
    return exported is None or name in exported
