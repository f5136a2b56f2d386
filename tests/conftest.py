"""
Pytest configuration and shared fixtures for the jsmodules tests.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))
from jsmodules.module_system import ModuleResolver, ModuleSystem
from jsmodules.runtime.engine import EngineType
from jsmodules.vfs import BundleSource, EmbeddedBundle, build_bundle
from test_utils import FakeEngine, bundle_files, write_tree


@pytest.fixture
def project(tmp_path):
    """
    Builder for an on-disk project tree.

    Usage: root = project({"main.js": "...", "package.json": {...}})
    """
    def build(files):
        return write_tree(tmp_path, files)
    return build


@pytest.fixture
def make_bundle():
    """Builder for an in-memory EmbeddedBundle."""
    def build(files, entry="main.js", prefix=b""):
        bundle = EmbeddedBundle.from_bytes(build_bundle(bundle_files(files), entry, prefix=prefix))
        assert bundle is not None
        return bundle
    return build


@pytest.fixture
def bundle_resolver(make_bundle):
    def build(files, entry="main.js"):
        return ModuleResolver(source=BundleSource(make_bundle(files, entry)))
    return build


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def native_esm_engine():
    return FakeEngine(EngineType.V8)


@pytest.fixture
def module_system(fake_engine, tmp_path):
    """ModuleSystem on a script-only engine, rooted at tmp_path."""
    return ModuleSystem(fake_engine, root_dir=str(tmp_path))
