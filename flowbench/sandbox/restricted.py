"""Restricted Snippet Interpreter

Runs a package-call snippet as the body of a function. The snippet sees only
``input``, its package binding(s), a curated set of builtins and a captured
``print``. Source is screened with the ast module before it is compiled.

Rejected constructs:
- import / from-import, global, nonlocal
- any name starting with a double underscore, any attribute starting with
  an underscore
- frame, code and traceback attributes (gi_frame, f_back, tb_frame, ...)
  and module handles such as sys or builtins reached as attributes
- eval, exec, compile, open, getattr, setattr, delattr, vars, globals,
  locals, __import__, breakpoint, memoryview, as names or as attributes

A snippet consisting of a single expression returns that expression's value.

This is the in-process half of the sandbox; the process boundary, resource
limits and timeout live in runner.py and executor.py.
"""

from __future__ import annotations

import ast
import builtins
import logging
import textwrap
from typing import Any, Dict, List, Optional

from ..errors import SandboxViolation

logger = logging.getLogger(__name__)

# Maximum snippet length to prevent abuse
MAX_CODE_LENGTH = 20000

SNIPPET_FUNCTION = "_snippet"

_FORBIDDEN_NAMES = frozenset({
    "eval", "exec", "compile", "open", "getattr", "setattr", "delattr",
    "vars", "globals", "locals", "__import__", "breakpoint", "memoryview",
    "help", "exit", "quit",
})

# Generator, coroutine, frame, traceback and code object internals
_FORBIDDEN_ATTR_PREFIXES = ("_", "f_", "gi_", "cr_", "ag_", "tb_", "co_")

_FORBIDDEN_ATTRS = _FORBIDDEN_NAMES | frozenset({
    "builtins", "sys", "os", "modules", "importlib", "subprocess", "mro",
})

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bin", "bool", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "hex", "int",
    "isinstance", "iter", "len", "list", "map", "max", "min", "next", "oct",
    "ord", "pow", "range", "repr", "reversed", "round", "set", "slice",
    "sorted", "str", "sum", "tuple", "zip",
    "ArithmeticError", "AssertionError", "Exception", "IndexError",
    "KeyError", "LookupError", "RuntimeError", "StopIteration",
    "TypeError", "ValueError", "ZeroDivisionError",
)

SAFE_BUILTINS: Dict[str, Any] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}


class _Screen(ast.NodeVisitor):
    """Walk a snippet's AST and raise on the first forbidden construct."""

    def _reject(self, node: ast.AST, reason: str) -> None:
        line = getattr(node, "lineno", None)
        where = f" (line {line - 1})" if line and line > 1 else ""
        raise SandboxViolation(f"{reason}{where}")

    def visit_Import(self, node: ast.Import) -> None:
        self._reject(node, "Imports are not allowed in snippets")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._reject(node, "Imports are not allowed in snippets")

    def visit_Global(self, node: ast.Global) -> None:
        self._reject(node, "'global' is not allowed in snippets")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._reject(node, "'nonlocal' is not allowed in snippets")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"Access to '{node.id}' is not allowed")
        if node.id in _FORBIDDEN_NAMES:
            self._reject(node, f"Use of '{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith(_FORBIDDEN_ATTR_PREFIXES) or node.attr in _FORBIDDEN_ATTRS:
            self._reject(node, f"Access to attribute '{node.attr}' is not allowed")
        self.generic_visit(node)


def build_snippet(code: str, parameters: List[str],
                  max_length: int = MAX_CODE_LENGTH) -> ast.Module:
    """Wrap a snippet in a function definition and screen it.

    Args:
        code: Snippet source; an empty snippet returns its input unchanged
        parameters: Names the function receives (``input`` plus bindings)
        max_length: Longest accepted snippet

    Returns:
        Module AST containing the single function definition

    Raises:
        SandboxViolation: Snippet too long, invalid syntax or forbidden construct
    """
    code = code or ""
    if len(code) > max_length:
        raise SandboxViolation(f"Snippet too long ({len(code)} chars, max {max_length})")

    body = textwrap.dedent(code).strip("\n")
    if not body.strip():
        body = "return input"

    source = f"def {SNIPPET_FUNCTION}({', '.join(parameters)}):\n" + textwrap.indent(body, "    ")
    try:
        tree = ast.parse(source, mode="exec")
    except SyntaxError as e:
        raise SandboxViolation(f"Invalid snippet syntax: {e.msg} (line {(e.lineno or 2) - 1})") from e

    function = tree.body[0]
    for statement in function.body:
        _Screen().visit(statement)

    # A lone expression is returned
    if len(function.body) == 1 and isinstance(function.body[0], ast.Expr):
        expression = function.body[0]
        function.body[0] = ast.copy_location(ast.Return(value=expression.value), expression)
        ast.fix_missing_locations(tree)

    return tree


def run_snippet(code: str, bindings: Dict[str, Any],
                max_length: int = MAX_CODE_LENGTH,
                stdout: Optional[List[str]] = None) -> Any:
    """Compile and call a snippet.

    Args:
        code: Snippet source (a function body)
        bindings: Values passed to the snippet by name; must include ``input``
        max_length: Longest accepted snippet
        stdout: Optional list collecting the snippet's print() output

    Returns:
        Whatever the snippet returns

    Raises:
        SandboxViolation: Rejected by the screen
        Exception: Anything the snippet itself raises
    """
    parameters = list(bindings)
    tree = build_snippet(code, parameters, max_length)

    captured = stdout if stdout is not None else []

    def _print(*args, sep=" ", end="\n", **_):
        captured.append(sep.join(str(a) for a in args) + end)

    namespace: Dict[str, Any] = {"__builtins__": {**SAFE_BUILTINS, "print": _print}}
    exec(compile(tree, "<snippet>", "exec"), namespace)
    return namespace[SNIPPET_FUNCTION](**bindings)
