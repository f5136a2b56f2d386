"""
jsmodules utilities package
"""

from .io_utils import read_source_bytes, decode_source, to_generic_path

__all__ = ["read_source_bytes", "decode_source", "to_generic_path"]
