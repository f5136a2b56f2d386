"""
Tests for the line-oriented ESM -> CommonJS transpiler.
"""

import pytest

from jsmodules.frontend.esm_transpiler import (
    ES_MODULE_FLAG, EXPORT_STAR_HELPER, Binding, ExportForm, ExportStatement, ImportClause,
    ImportStatement, parse_statement, transpile_esm_to_cjs,
)


def body_lines(output):
    """Output lines after the header line."""
    return output.split("\n")[1:]


class TestStatementParsing:
    def test_default_and_named_import(self):
        statement = parse_statement('import React, { useState as useS, default as D } from "react";')
        assert statement == ImportStatement('"react"', ImportClause(
            default="React",
            named=[Binding("useState", "useS"), Binding("default", "D")],
        ))

    def test_namespace_import(self):
        statement = parse_statement("import * as path from 'path'")
        assert statement.clause == ImportClause(namespace="path")
        assert statement.source == "'path'"

    def test_bare_import(self):
        assert parse_statement('import "./polyfill.js";') == ImportStatement('"./polyfill.js"')

    def test_export_forms(self):
        assert parse_statement("export default function App() {").form is ExportForm.DEFAULT_FUNCTION
        assert parse_statement("export default class Widget extends Base {").form is ExportForm.DEFAULT_CLASS
        assert parse_statement("export default function () {}").form is ExportForm.DEFAULT_EXPRESSION
        assert parse_statement("export default class {}").form is ExportForm.DEFAULT_EXPRESSION
        assert parse_statement("export default 42;").expression == "42;"
        assert parse_statement('export * from "./all.js";').form is ExportForm.ALL
        assert parse_statement('export * as ns from "./ns.js";') == ExportStatement(
            ExportForm.NAMESPACE_FROM, name="ns", source='"./ns.js"')

    def test_declarations(self):
        statement = parse_statement("export async function load(url) {")
        assert statement.name == "load"
        assert statement.declaration_kind == "function"
        assert statement.is_hoisted
        generator = parse_statement("export function* ids() {")
        assert generator.name == "ids"
        const = parse_statement("export const answer = 42;")
        assert (const.name, const.declaration_kind, const.is_hoisted) == ("answer", "const", False)

    def test_async_and_generator_default_functions(self):
        statement = parse_statement("export default async function App() {")
        assert (statement.form, statement.name) == (ExportForm.DEFAULT_FUNCTION, "App")
        assert parse_statement("export default function* ids() {").name == "ids"
        assert parse_statement("export default async () => {};").form is ExportForm.DEFAULT_EXPRESSION

    @pytest.mark.parametrize("text,names", [
        ("export let x = 1, y = 2;", ["x", "y"]),
        ("export const a = f(1, 2), b = [3, 4], c = { d: 5, e };", ["a", "b", "c"]),
        ("export var s = ', t = 1', u;", ["s", "u"]),
        ("export let p, q; const r = 1, z = 2;", ["p", "q"]),
        ("export let m = 1 // , n = 2", ["m"]),
        ("export function f(a, b) {}", ["f"]),
    ])
    def test_declared_names(self, text, names):
        assert parse_statement(text).declared_names == names

    def test_export_list_with_trailing_comma(self):
        statement = parse_statement("export { a, b as c, };")
        assert statement.bindings == [Binding("a", "a"), Binding("b", "c")]

    @pytest.mark.parametrize("text", [
        'import("./lazy.js").then(run);',
        "import.meta.url",
        "export const { a, b } = obj;",
        "exporter.run();",
        'import x from "unterminated',
    ])
    def test_unrecognized_statements(self, text):
        assert parse_statement(text) is None


class TestImportRewriting:
    def test_default_import_uses_interop(self):
        assert transpile_esm_to_cjs('import fs from "fs";') == (
            'const __mod0 = require("fs"); '
            'const fs = (__mod0 && __mod0.__esModule) ? __mod0.default : __mod0;'
        )

    def test_named_import(self):
        assert transpile_esm_to_cjs("import { a, b as c } from './m.js';") == \
            "const { a, b: c } = require('./m.js');"

    def test_namespace_import(self):
        assert transpile_esm_to_cjs('import * as ns from "./m.js";') == 'const ns = require("./m.js");'

    def test_default_with_namespace(self):
        out = transpile_esm_to_cjs('import d, * as ns from "./m.js";')
        assert out.endswith("const ns = __mod0;")

    def test_side_effect_import(self):
        assert transpile_esm_to_cjs('import "./setup.js";') == 'require("./setup.js");'

    def test_unique_temporaries(self):
        out = transpile_esm_to_cjs('import a from "./a.js";\nimport b from "./b.js";')
        first, second = out.split("\n")
        assert "const __mod0 = require(\"./a.js\");" in first
        assert "const __mod1 = require(\"./b.js\");" in second

    def test_multiline_brace_list(self):
        source = "import {\n  alpha,\n  beta as b,\n} from \"./greek.js\";\nconsole.log(alpha, b);"
        out = transpile_esm_to_cjs(source)
        assert out.split("\n") == [
            'const { alpha, beta: b } = require("./greek.js");',
            "",
            "",
            "",
            "console.log(alpha, b);",
        ]

    def test_indentation_kept(self):
        assert transpile_esm_to_cjs('  import x from "x";').startswith("  const __mod0")

    def test_imports_only_have_no_header(self):
        source = 'import "./a.js";\nconst x = 1;'
        assert transpile_esm_to_cjs(source).split("\n")[1] == "const x = 1;"


class TestExportRewriting:
    def test_default_function_is_hoisted(self):
        source = 'import React from "react";\nexport default function App() {\n  return React;\n}'
        out = transpile_esm_to_cjs(source)
        header, *body = out.split("\n")
        assert header == f"{ES_MODULE_FLAG} exports.default = App;"
        assert body[0].startswith('const __mod0 = require("react");')
        assert body[1] == "function App() {"
        assert body[3] == "}"

    def test_default_class_assigned_at_end(self):
        out = transpile_esm_to_cjs("export default class Widget {\n}")
        assert out.split("\n") == [ES_MODULE_FLAG, "class Widget {", "}", "exports.default = Widget;"]

    def test_default_expression(self):
        out = transpile_esm_to_cjs("export default { a: 1 };")
        assert body_lines(out) == ["exports.default = { a: 1 };"]

    def test_declarations(self):
        source = "export const x = 1;\nexport function f() {}\nexport class C {}\nexport let y;"
        out = transpile_esm_to_cjs(source)
        lines = out.split("\n")
        assert lines[0] == f"{ES_MODULE_FLAG} exports.f = f;"
        assert lines[1:5] == ["const x = 1;", "function f() {}", "class C {}", "let y;"]
        assert lines[5:] == ["exports.x = x;", "exports.C = C;", "exports.y = y;"]

    def test_async_default_function_is_hoisted(self):
        out = transpile_esm_to_cjs("export default async function App() {}\nApp.displayName = \"App\";")
        assert out.split("\n") == [
            f"{ES_MODULE_FLAG} exports.default = App;",
            "async function App() {}",
            "App.displayName = \"App\";",
        ]

    def test_multiple_declarators(self):
        out = transpile_esm_to_cjs("export let x = 1, y = 2;")
        assert out.split("\n") == [ES_MODULE_FLAG, "let x = 1, y = 2;", "exports.x = x;", "exports.y = y;"]

    def test_export_list(self):
        out = transpile_esm_to_cjs("const a = 1, b = 2;\nexport { a, b as beta };")
        assert out.split("\n") == [
            ES_MODULE_FLAG, "const a = 1, b = 2;", "", "exports.a = a;", "exports.beta = b;",
        ]

    def test_reexport_names(self):
        out = transpile_esm_to_cjs('export { default as Foo, bar } from "./foo.js";')
        assert body_lines(out) == [
            'const __mod0 = require("./foo.js"); '
            'exports.Foo = (__mod0 && __mod0.__esModule) ? __mod0.default : __mod0; '
            'exports.bar = __mod0.bar;'
        ]

    def test_export_star(self):
        out = transpile_esm_to_cjs('export * from "./all.js";')
        lines = out.split("\n")
        assert lines[1] == f'{EXPORT_STAR_HELPER}(require("./all.js"));'
        assert lines[2].startswith(f"function {EXPORT_STAR_HELPER}(m)")
        assert '"default"' in lines[2]

    def test_export_namespace(self):
        out = transpile_esm_to_cjs('export * as utils from "./utils.js";')
        assert body_lines(out) == ['exports.utils = require("./utils.js");']

    def test_line_numbers_stable(self):
        source = "\n".join([
            'import a from "./a.js";',
            "export {",
            "  a,",
            "};",
            "throw new Error('line 5');",
        ])
        out = transpile_esm_to_cjs(source)
        assert body_lines(out)[4] == "throw new Error('line 5');"


class TestPassthrough:
    def test_plain_commonjs_unchanged(self):
        source = "const fs = require('fs');\nmodule.exports = { fs };\n"
        assert transpile_esm_to_cjs(source) == source

    def test_unparseable_statement_kept(self):
        source = "export const { a } = obj;\nconst important = import.meta;"
        assert transpile_esm_to_cjs(source) == source

    def test_unterminated_brace_list_kept(self):
        source = "import {\n  a,\n  b"
        assert transpile_esm_to_cjs(source) == source
