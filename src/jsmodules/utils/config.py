"""
Configuration constants to replace magic strings throughout jsmodules
"""

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8-sig"  # strips a leading BOM like Node does

# Package metadata constants
PACKAGE_JSON = "package.json"
NODE_MODULES = "node_modules"
DEFAULT_MAIN = "index.js"
INDEX_BASENAME = "index"
PACKAGE_TYPE_MODULE = "module"
FILE_URL_PREFIX = "file://"
SUBPATH_ROOT = "."

# Require-mode probe order (exact name is always tried first)
REQUIRE_EXTENSIONS = (".js", ".json", ".mjs", ".cjs", ".ts", ".tsx", ".mts", ".cts")
TYPESCRIPT_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts")

# Extension -> format tables; ".js"-like extensions defer to package "type"
ESM_EXTENSIONS = (".mjs", ".mts")
CJS_EXTENSIONS = (".cjs", ".cts")
JSON_EXTENSIONS = (".json",)
TYPE_DEPENDENT_EXTENSIONS = (".js", ".ts", ".tsx")

# Conditional exports, in priority order
IMPORT_CONDITIONS = ("import", "node", "default")
REQUIRE_CONDITIONS = ("require", "node", "default")

# A bundle directory "exists" if it holds one of these
BUNDLE_DIR_MARKERS = (PACKAGE_JSON, "index.js", "index.mjs", "index.cjs")

# Embedded bundle format
BUNDLE_MAGIC = b"MYSBNDL1"
BUNDLE_VERSION = 1
DEFAULT_BUNDLE_FILENAME = "app.bundle"
BUNDLE_ENV_VAR = "JSMODULES_BUNDLE"

# Engine integration
HOST_REQUIRE_GLOBAL = "__jsmodulesRequire"
CJS_WRAPPER_PARAMS = ("exports", "require", "module", "__filename", "__dirname")

# Transpiler limits
MAX_STATEMENT_LINES = 64  # longest brace list joined into one import/export

# package.json limits
MAX_JSON_DEPTH = 128  # nested objects/arrays before the parser gives up

# Diagnostics
COLOR_ENV_VAR = "JSMODULES_COLOR"
