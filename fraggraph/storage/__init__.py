"""
Storage module for fraggraph.

Provides persistence for:
- Graphs (JSON, optionally gzipped)
- Fragment-space definitions
- Ring-closing conformation blobs
"""

from .json_storage import (
    JSONStorage, NumpyEncoder, numpy_decoder,
    read_json, write_json, save_graph, load_graph,
)
from .space_loader import block_from_dict, build_fragment_space, load_fragment_space

__all__ = [
    "JSONStorage",
    "NumpyEncoder",
    "numpy_decoder",
    "read_json",
    "write_json",
    "save_graph",
    "load_graph",
    "block_from_dict",
    "build_fragment_space",
    "load_fragment_space",
]
