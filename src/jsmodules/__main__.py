"""CLI entry point: `python -m jsmodules resolve|transpile|bundle ...`."""

import logging
import sys
from pathlib import Path


def _cmd_resolve(args) -> int:
    from .module_system import ModuleResolver
    from .shared.types import ResolveMode
    from .vfs import BundleSource, EmbeddedBundle

    if args.bundle:
        bundle = EmbeddedBundle.load_from_path(args.bundle)
        if bundle is None:
            sys.stderr.write(f"jsmodules: error: not a bundle: {args.bundle}\n")
            return 1
        resolver = ModuleResolver(args.root, BundleSource(bundle))
    else:
        resolver = ModuleResolver.for_environment(args.root)

    mode = ResolveMode(args.mode)
    resolved = resolver.resolve(args.specifier, args.referrer, mode)
    sys.stdout.write(f"{resolved.resolved_path}\t{resolved.storage.value}\t{resolved.format.value}\n")
    return 0


def _cmd_transpile(args) -> int:
    from .frontend.esm_transpiler import transpile_esm_to_cjs
    from .utils.io_utils import decode_source, read_source_bytes

    try:
        source = decode_source(read_source_bytes(args.file))
    except (OSError, UnicodeDecodeError) as e:
        sys.stderr.write(f"jsmodules: error: could not read file: {e}\n")
        return 1
    sys.stdout.write(transpile_esm_to_cjs(source))
    return 0


def _cmd_bundle(args) -> int:
    from .vfs import collect_directory, normalize_bundle_path, write_bundle

    root = args.directory
    if not root.is_dir():
        sys.stderr.write(f"jsmodules: error: not a directory: {root}\n")
        return 1
    files = collect_directory(root)
    entry = normalize_bundle_path(args.entry)
    if not any(name == entry for name, _ in files):
        sys.stderr.write(f"jsmodules: error: entry not found in {root}: {args.entry}\n")
        return 1
    try:
        output = write_bundle(files, entry, args.output, prefix=args.prefix)
    except OSError as e:
        sys.stderr.write(f"jsmodules: error: could not write bundle: {e}\n")
        return 1
    sys.stdout.write(f"Wrote {len(files)} files to {output}\n")
    return 0


def main(argv=None) -> int:
    import argparse
    from .shared.errors import ModuleError, format_error

    parser = argparse.ArgumentParser(prog="jsmodules",
                                     description="Resolve, transpile and bundle JavaScript modules.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution steps")
    sub = parser.add_subparsers(dest="command", required=True)

    p_resolve = sub.add_parser("resolve", help="Resolve a module specifier")
    p_resolve.add_argument("specifier")
    p_resolve.add_argument("--from", dest="referrer", default="", help="Path of the importing module")
    p_resolve.add_argument("--mode", choices=["import", "require"], default="require")
    p_resolve.add_argument("--root", default=".", help="Directory the entry point resolves against")
    p_resolve.add_argument("--bundle", type=Path, help="Resolve inside this bundle file")
    p_resolve.set_defaults(handler=_cmd_resolve)

    p_transpile = sub.add_parser("transpile", help="Print the CommonJS rendition of an ES module")
    p_transpile.add_argument("file", type=Path)
    p_transpile.set_defaults(handler=_cmd_transpile)

    p_bundle = sub.add_parser("bundle", help="Pack a directory into a bundle file")
    p_bundle.add_argument("directory", type=Path)
    p_bundle.add_argument("--entry", required=True, help="Entry module, relative to the directory")
    p_bundle.add_argument("-o", "--output", type=Path, required=True)
    p_bundle.add_argument("--prefix", type=Path, help="Binary to prepend (e.g. a runtime executable)")
    p_bundle.set_defaults(handler=_cmd_bundle)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.handler(args)
    except ModuleError as e:
        sys.stderr.write(format_error(e) + "\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
