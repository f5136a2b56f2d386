"""
Tests for the embedded bundle format and the bundle-backed file source.
"""

import pytest

from jsmodules.shared.errors import BundleFormatError, ModuleLoadError
from jsmodules.utils.config import BUNDLE_ENV_VAR, BUNDLE_MAGIC, DEFAULT_BUNDLE_FILENAME
from jsmodules.vfs import (
    BundleSource, EmbeddedBundle, build_bundle, collect_directory, discover_bundle,
    normalize_bundle_path, write_bundle,
)


class TestNormalizeBundlePath:
    @pytest.mark.parametrize("raw,expected", [
        ("main.js", "main.js"),
        ("./lib/a.js", "lib/a.js"),
        ("/lib/a.js", "lib/a.js"),
        ("lib\\win\\a.js", "lib/win/a.js"),
        ("file://lib/a.js", "lib/a.js"),
        ("lib/../b.js", "b.js"),
        ("lib//x/./y.js", "lib/x/y.js"),
    ])
    def test_normalizes(self, raw, expected):
        assert normalize_bundle_path(raw) == expected

    @pytest.mark.parametrize("raw", ["", ".", "./", "..", "../escape.js", "a/../../b.js"])
    def test_root_or_escaping_is_empty(self, raw):
        assert normalize_bundle_path(raw) == ""


class TestBundleFormat:
    def test_round_trip(self, make_bundle):
        bundle = make_bundle({"main.js": "console.log(1);", "./lib/util.js": "x", "data.json": "{}"})
        assert bundle.entry_path == "main.js"
        assert bundle.file_names == ["data.json", "lib/util.js", "main.js"]
        assert bundle.read_file("lib/util.js") == b"x"
        assert bundle.read_file("./main.js") == b"console.log(1);"
        assert "data.json" in bundle
        assert bundle.read_file("missing.js") is None

    def test_prefix_is_skipped(self, make_bundle):
        bundle = make_bundle({"main.js": "abc"}, prefix=b"\x7fELF" + b"\0" * 1000)
        assert bundle.read_file("main.js") == b"abc"

    def test_empty_file(self, make_bundle):
        bundle = make_bundle({"main.js": "", "other.js": "y"})
        assert bundle.read_file("main.js") == b""
        assert bundle.read_file("other.js") == b"y"

    def test_entry_path_is_normalized(self, make_bundle):
        assert make_bundle({"app/main.js": ""}, entry="./app/main.js").entry_path == "app/main.js"

    def test_rejects_invalid_file_name(self):
        with pytest.raises(BundleFormatError):
            build_bundle([("../outside.js", b"")], "main.js")

    @pytest.mark.parametrize("data", [
        b"",
        b"not a bundle at all, just some bytes that are long enough",
        b"\0" * 64,
    ])
    def test_malformed_is_none(self, data):
        assert EmbeddedBundle.from_bytes(data) is None

    def test_truncated_index_is_none(self):
        data = build_bundle([("main.js", b"hello")], "main.js")
        assert EmbeddedBundle.from_bytes(data[5:]) is None

    def test_bad_version_is_none(self):
        data = bytearray(build_bundle([("main.js", b"hello")], "main.js"))
        footer_start = data.rindex(BUNDLE_MAGIC)
        data[footer_start + len(BUNDLE_MAGIC)] ^= 0xFF
        assert EmbeddedBundle.from_bytes(bytes(data)) is None


class TestBundleFiles:
    def test_write_and_load(self, tmp_path):
        prefix = tmp_path / "runtime.bin"
        prefix.write_bytes(b"RUNTIME" * 10)
        output = write_bundle([("main.js", b"1")], "main.js", tmp_path / "out" / "app", prefix=prefix)
        assert output.read_bytes().startswith(b"RUNTIME")

        bundle = EmbeddedBundle.load_from_path(output)
        assert bundle is not None
        assert bundle.read_file("main.js") == b"1"

    def test_load_missing_path(self, tmp_path):
        assert EmbeddedBundle.load_from_path(tmp_path / "nope.bundle") is None

    def test_collect_directory(self, project):
        root = project({"main.js": "m", "lib/a.js": "a", "node_modules/p/package.json": {}})
        names = [name for name, _ in collect_directory(root)]
        assert names == ["lib/a.js", "main.js", "node_modules/p/package.json"]

    def test_discover_from_env(self, tmp_path, monkeypatch):
        path = write_bundle([("main.js", b"")], "main.js", tmp_path / "custom.bundle")
        monkeypatch.setenv(BUNDLE_ENV_VAR, str(path))
        bundle = discover_bundle(search_dirs=[])
        assert bundle is not None and bundle.entry_path == "main.js"

    def test_discover_invalid_env_falls_back(self, tmp_path, monkeypatch):
        bogus = tmp_path / "bogus"
        bogus.write_bytes(b"garbage")
        write_bundle([("entry.js", b"")], "entry.js", tmp_path / DEFAULT_BUNDLE_FILENAME)
        monkeypatch.setenv(BUNDLE_ENV_VAR, str(bogus))
        bundle = discover_bundle(search_dirs=[tmp_path])
        assert bundle is not None and bundle.entry_path == "entry.js"

    def test_discover_nothing(self, tmp_path, monkeypatch):
        monkeypatch.delenv(BUNDLE_ENV_VAR, raising=False)
        assert discover_bundle(search_dirs=[tmp_path]) is None


class TestBundleSource:
    def test_directories_inferred_from_markers(self, make_bundle):
        source = BundleSource(make_bundle({
            "main.js": "",
            "lib/index.js": "",
            "node_modules/pkg/package.json": "{}",
            "assets/logo.txt": "",
        }))
        assert source.exists_dir("lib")
        assert source.exists_dir("node_modules/pkg")
        assert not source.exists_dir("assets")
        assert not source.exists_dir("node_modules")

    def test_files(self, make_bundle):
        source = BundleSource(make_bundle({"main.js": "m", "lib/a.js": "a"}))
        assert source.exists_file("/lib/a.js")
        assert not source.exists_file("lib")
        assert not source.exists_file("")
        assert source.read_file("lib/a.js") == b"a"
        with pytest.raises(ModuleLoadError):
            source.read_file("lib/b.js")
