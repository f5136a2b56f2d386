"""Source-level readers: package.json parsing and ESM -> CJS rewriting."""

from .json_parser import JsonKind, JsonValue, JsonParser, parse_json
from .esm_transpiler import EsmToCjsTranspiler, transpile_esm_to_cjs, parse_statement

__all__ = [
    'JsonKind',
    'JsonValue',
    'JsonParser',
    'parse_json',
    'EsmToCjsTranspiler',
    'transpile_esm_to_cjs',
    'parse_statement',
]
