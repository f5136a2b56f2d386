"""
ESM -> CommonJS Transpiler

Line-oriented rewriting of import/export statements for engines that can
only evaluate scripts. This is not a JavaScript parser: each line that
starts with `import` or `export` is parsed on its own with a small lark
grammar (esm.lark); lines it cannot parse pass through unchanged.

    import React, { useState as useS } from "react";
    export default function App() {}

becomes

    exports.__esModule = true; exports.default = App;
    const __mod0 = require("react"); const React = (__mod0 && __mod0.__esModule) ? __mod0.default : __mod0; const { useState: useS } = __mod0;
    function App() {}

Every rewritten statement stays on the line it came from.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError

from ..utils.config import MAX_STATEMENT_LINES

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).parent / "esm.lark"

_STATEMENT_START = re.compile(r"(?:import|export)(?![\w$])")
# Opening line of a brace list that continues on following lines
_OPEN_BRACE_LIST = re.compile(r"^(?:import\s+(?:[A-Za-z_$][\w$]*\s*,\s*)?|export\s+)\{[^}]*$")
_EXPORT_DEFAULT_PREFIX = re.compile(r"^export\s+default\s+")
_EXPORT_PREFIX = re.compile(r"^export\s+")
# Declarator after a top-level comma: `, name =`, `, name;` or a trailing `, name`
_DECLARATOR_NAME = re.compile(r"\s*([A-Za-z_$][\w$]*)\s*(?:=|;|//|$)")
_VARIABLE_KINDS = ("const", "let", "var")

ES_MODULE_FLAG = "exports.__esModule = true;"
EXPORT_STAR_HELPER = "__exportStar"
_EXPORT_STAR_FUNCTION = (
    f"function {EXPORT_STAR_HELPER}(m) {{ if (!m) return; for (const k of Object.keys(m)) {{ "
    f"if (k !== \"default\" && k !== \"__esModule\" && "
    f"!Object.prototype.hasOwnProperty.call(exports, k)) exports[k] = m[k]; }} }}"
)


# ============================================================================
# Statement model
# ============================================================================

@dataclass
class Binding:
    """`imported as local` inside braces; both sides equal when no alias."""
    imported: str
    local: str

    def as_pattern(self) -> str:
        """Destructuring form: `a` or `a: b`."""
        if self.imported == self.local:
            return self.local
        return f"{self.imported}: {self.local}"


@dataclass
class ImportClause:
    default: Optional[str] = None
    namespace: Optional[str] = None
    named: Optional[List[Binding]] = None

    @property
    def is_empty(self) -> bool:
        return self.default is None and self.namespace is None and self.named is None


@dataclass
class ImportStatement:
    source: str  # quoted, exactly as written
    clause: ImportClause = field(default_factory=ImportClause)


class ExportForm(Enum):
    DEFAULT_FUNCTION = "default-function"
    DEFAULT_CLASS = "default-class"
    DEFAULT_EXPRESSION = "default-expression"
    DECLARATION = "declaration"
    LIST = "list"
    FROM = "from"
    ALL = "all"
    NAMESPACE_FROM = "namespace-from"


@dataclass
class ExportStatement:
    form: ExportForm
    name: Optional[str] = None
    declaration_kind: Optional[str] = None
    expression: Optional[str] = None
    bindings: List[Binding] = field(default_factory=list)
    source: Optional[str] = None
    more_names: List[str] = field(default_factory=list)  # `export let a = 1, b = 2`

    @property
    def declared_names(self) -> List[str]:
        return [self.name] + self.more_names

    @property
    def is_hoisted(self) -> bool:
        """Function declarations exist before the first line runs."""
        return self.form is ExportForm.DEFAULT_FUNCTION or self.declaration_kind == "function"


@v_args(inline=True)
class StatementTransformer(Transformer):
    """Converts an esm.lark parse tree into an ImportStatement/ExportStatement."""

    def start(self, statement):
        return statement

    def namespace(self, name):
        return str(name)

    def binding(self, imported, local=None):
        return Binding(str(imported), str(local if local is not None else imported))

    def named_bindings(self, *bindings):
        return list(bindings)

    def default_clause(self, name):
        return ImportClause(default=str(name))

    def namespace_clause(self, namespace):
        return ImportClause(namespace=namespace)

    def named_clause(self, bindings):
        return ImportClause(named=bindings)

    def default_namespace_clause(self, name, namespace):
        return ImportClause(default=str(name), namespace=namespace)

    def default_named_clause(self, name, bindings):
        return ImportClause(default=str(name), named=bindings)

    def import_from(self, clause, source):
        return ImportStatement(str(source), clause)

    def import_bare(self, source):
        return ImportStatement(str(source))

    def export_default_function(self, _default, _function, name, _rest=None):
        return ExportStatement(ExportForm.DEFAULT_FUNCTION, name=str(name))

    def export_default_class(self, _default, _class, name, _rest=None):
        return ExportStatement(ExportForm.DEFAULT_CLASS, name=str(name))

    def export_default_expression(self, _default, expression):
        return ExportStatement(ExportForm.DEFAULT_EXPRESSION, expression=str(expression))

    def export_declaration(self, *tokens):
        # [ASYNC] DECL_KIND NAME [REST]
        kind = next(str(t) for t in tokens if t.type == "DECL_KIND")
        name = next(str(t) for t in tokens if t.type == "NAME")
        rest = next((str(t) for t in tokens if t.type == "REST"), "")
        more_names = following_declarators(rest) if kind in _VARIABLE_KINDS else []
        return ExportStatement(ExportForm.DECLARATION, name=name, declaration_kind=kind,
                               more_names=more_names)

    def export_list(self, bindings):
        return ExportStatement(ExportForm.LIST, bindings=bindings)

    def export_from(self, bindings, source):
        return ExportStatement(ExportForm.FROM, bindings=bindings, source=str(source))

    def export_all(self, source):
        return ExportStatement(ExportForm.ALL, source=str(source))

    def export_namespace_from(self, name, source):
        return ExportStatement(ExportForm.NAMESPACE_FROM, name=str(name), source=str(source))


def following_declarators(rest: str) -> List[str]:
    """
    Names declared after the first one in `let a = 1, b = f(x, y), c;`.

    rest is the text after the first name. Commas nested in brackets or
    string literals are skipped; the scan stops at the first top-level `;`
    or line comment.
    """
    names = []
    depth = 0
    quote = None
    i = 0
    while i < len(rest):
        c = rest[i]
        if quote is not None:
            if c == "\\":
                i += 1
            elif c == quote:
                quote = None
        elif c in "\"'`":
            quote = c
        elif c in "([{":
            depth += 1
        elif c in ")]}":
            depth -= 1
        elif depth == 0 and (c == ";" or rest.startswith("//", i)):
            break
        elif depth == 0 and c == ",":
            m = _DECLARATOR_NAME.match(rest, i + 1)
            if m:
                names.append(m.group(1))
        i += 1
    return names


@lru_cache(maxsize=None)
def statement_parser() -> Lark:
    return Lark.open(
        GRAMMAR_PATH,
        start="start",
        parser="lalr",
        maybe_placeholders=False,
    )


def parse_statement(text: str):
    """Parse one import/export statement; None if it is not one we rewrite."""
    try:
        tree = statement_parser().parse(text)
    except LarkError as e:
        logger.debug(f"Leaving statement unchanged ({type(e).__name__}): {text.strip()[:80]}")
        return None
    return StatementTransformer().transform(tree)


# ============================================================================
# Rewriting
# ============================================================================

def _interop_default(temp: str) -> str:
    return f"({temp} && {temp}.__esModule) ? {temp}.default : {temp}"


class EsmToCjsTranspiler:
    """
    One transpile run. Holds the temporary-name counter and the export
    assignments collected for the top (hoisted functions) and the bottom
    (everything else) of the output.
    """

    def __init__(self):
        self._temp_counter = 0
        self.uses_exports = False
        self.prologue: List[str] = []
        self.epilogue: List[str] = []
        self.uses_export_star = False

    def _temp(self) -> str:
        name = f"__mod{self._temp_counter}"
        self._temp_counter += 1
        return name

    def transpile(self, source: str) -> str:
        lines = source.split("\n")
        output: List[str] = []
        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.lstrip()
            if not _STATEMENT_START.match(stripped):
                output.append(line)
                i += 1
                continue

            text, consumed = stripped, 1
            if _OPEN_BRACE_LIST.match(stripped.rstrip()):
                joined = self._join_brace_list(lines, i)
                if joined is not None:
                    text, consumed = joined

            statement = parse_statement(text)
            if statement is None:
                output.append(line)
                i += 1
                continue

            indent = line[:len(line) - len(stripped)]
            output.append(indent + self.rewrite(statement, text))
            # Keep later line numbers stable
            output.extend([""] * (consumed - 1))
            i += consumed

        body = "\n".join(output)
        if not self.uses_exports:
            return body

        if self.uses_export_star:
            self.epilogue.append(_EXPORT_STAR_FUNCTION)
        parts = [" ".join([ES_MODULE_FLAG] + self.prologue), body]
        if self.epilogue:
            parts.append("\n".join(self.epilogue))
        return "\n".join(parts)

    def _join_brace_list(self, lines: List[str], start: int) -> Optional[Tuple[str, int]]:
        pieces = [lines[start].strip()]
        end = min(len(lines), start + MAX_STATEMENT_LINES)
        for j in range(start + 1, end):
            pieces.append(lines[j].strip())
            if "}" in lines[j]:
                return " ".join(pieces), j - start + 1
        return None

    def rewrite(self, statement, text: str) -> str:
        if isinstance(statement, ImportStatement):
            return self._rewrite_import(statement)
        self.uses_exports = True
        return self._rewrite_export(statement, text)

    def _rewrite_import(self, statement: ImportStatement) -> str:
        clause = statement.clause
        require = f"require({statement.source})"
        if clause.is_empty:
            return f"{require};"

        if clause.default is None:
            if clause.namespace is not None:
                return f"const {clause.namespace} = {require};"
            return f"const {{ {', '.join(b.as_pattern() for b in clause.named)} }} = {require};"

        temp = self._temp()
        parts = [
            f"const {temp} = {require};",
            f"const {clause.default} = {_interop_default(temp)};",
        ]
        if clause.namespace is not None:
            parts.append(f"const {clause.namespace} = {temp};")
        if clause.named:
            parts.append(f"const {{ {', '.join(b.as_pattern() for b in clause.named)} }} = {temp};")
        return " ".join(parts)

    def _rewrite_export(self, statement: ExportStatement, text: str) -> str:
        form = statement.form

        if form is ExportForm.DEFAULT_FUNCTION:
            self.prologue.append(f"exports.default = {statement.name};")
            return _EXPORT_DEFAULT_PREFIX.sub("", text, count=1)

        if form is ExportForm.DEFAULT_CLASS:
            self.epilogue.append(f"exports.default = {statement.name};")
            return _EXPORT_DEFAULT_PREFIX.sub("", text, count=1)

        if form is ExportForm.DEFAULT_EXPRESSION:
            return f"exports.default = {statement.expression}"

        if form is ExportForm.DECLARATION:
            target = self.prologue if statement.is_hoisted else self.epilogue
            target.extend(f"exports.{name} = {name};" for name in statement.declared_names)
            return _EXPORT_PREFIX.sub("", text, count=1)

        if form is ExportForm.LIST:
            for b in statement.bindings:
                self.epilogue.append(f"exports.{b.local} = {b.imported};")
            return ""

        require = f"require({statement.source})"
        if form is ExportForm.ALL:
            self.uses_export_star = True
            return f"{EXPORT_STAR_HELPER}({require});"

        if form is ExportForm.NAMESPACE_FROM:
            return f"exports.{statement.name} = {require};"

        # ExportForm.FROM
        temp = self._temp()
        parts = [f"const {temp} = {require};"]
        for b in statement.bindings:
            value = _interop_default(temp) if b.imported == "default" else f"{temp}.{b.imported}"
            parts.append(f"exports.{b.local} = {value};")
        return " ".join(parts)


def transpile_esm_to_cjs(source: str) -> str:
    """Rewrite an ES module into CommonJS-shaped script source."""
    return EsmToCjsTranspiler().transpile(source)
