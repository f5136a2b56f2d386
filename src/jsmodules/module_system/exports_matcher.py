"""
Exports / Imports Target Matching

Maps a requested subpath onto a package.json "exports" or "imports" tree.

Node Pattern: PACKAGE_EXPORTS_RESOLVE / PACKAGE_IMPORTS_EXPORTS_RESOLVE,
simplified: first matching key wins, and no longest-prefix ordering is
applied to pattern keys.
"""

from typing import Optional, Sequence

from ..frontend.json_parser import JsonValue
from ..shared.errors import ErrorKind, ResolutionError
from ..utils.config import SUBPATH_ROOT


def is_subpath_key(key: str) -> bool:
    """Keys that address a subpath rather than name a condition."""
    return bool(key) and key[0] in "./#"


def match_pattern(pattern: str, subpath: str) -> Optional[str]:
    """
    Match subpath against a single-"*" key; return the captured fragment.

    >>> match_pattern("./features/*.js", "./features/foo.js")
    'foo'
    """
    if pattern.count("*") != 1:
        return None
    prefix, suffix = pattern.split("*")
    if not subpath.startswith(prefix) or not subpath.endswith(suffix):
        return None
    if len(subpath) < len(prefix) + len(suffix):
        return None
    return subpath[len(prefix):len(subpath) - len(suffix)]


def resolve_conditional_target(node: JsonValue, conditions: Sequence[str]) -> str:
    """
    Reduce a target node (string, fallback array or condition object) to a
    single target string.
    """
    if node.is_string:
        return node.value

    if node.is_array:
        last_error = ResolutionError("No matching export condition")
        for entry in node:
            try:
                return resolve_conditional_target(entry, conditions)
            except ResolutionError as e:
                last_error = e
        raise last_error

    if not node.is_object:
        raise ResolutionError("Invalid conditional exports target", kind=ErrorKind.MALFORMED_METADATA)

    for condition in conditions:
        selected = node.get(condition)
        if selected is not None:
            return resolve_conditional_target(selected, conditions)

    raise ResolutionError(
        "No matching export condition",
        note=f"conditions tried: {', '.join(conditions)}",
    )


def resolve_exports_target(node: JsonValue, subpath: str, conditions: Sequence[str]) -> str:
    """
    Resolve subpath ("." for the package root, "./x" or "#x") against an
    exports/imports tree. Returns the raw target string (still relative to
    the package root); raises ResolutionError when nothing matches.
    """
    if node.is_string:
        if subpath != SUBPATH_ROOT and subpath != node.value:
            raise ResolutionError(f"No export defined for subpath: {subpath}")
        return node.value

    if node.is_array:
        last_error = ResolutionError(f"No matching export for subpath: {subpath}")
        for entry in node:
            try:
                return resolve_exports_target(entry, subpath, conditions)
            except ResolutionError as e:
                last_error = e
        raise last_error

    if not node.is_object:
        raise ResolutionError("Invalid exports definition", kind=ErrorKind.MALFORMED_METADATA)

    if not any(is_subpath_key(key) for key in node.keys()):
        # Bare condition map: only describes the package root
        if subpath != SUBPATH_ROOT:
            raise ResolutionError(f"No export defined for subpath: {subpath}")
        return resolve_conditional_target(node, conditions)

    exact = node.get(subpath)
    if exact is not None:
        return resolve_conditional_target(exact, conditions)

    for key, value in node.items():
        if not is_subpath_key(key):
            continue
        captured = match_pattern(key, subpath)
        if captured is None:
            continue
        target = resolve_conditional_target(value, conditions)
        if "*" in captured:
            raise ResolutionError("Nested export pattern not supported", kind=ErrorKind.POLICY)
        return target.replace("*", captured)

    raise ResolutionError(f"No matching export for subpath: {subpath}")
