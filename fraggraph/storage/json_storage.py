"""
JSON storage for graphs, space definitions and ring-closure blobs.

Plain or gzipped JSON; numpy arrays survive a round trip through the
encoder/decoder pair.
"""

from __future__ import annotations
import json
import gzip
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import asdict, is_dataclass
import numpy as np

from fraggraph.core.graph import Graph
from fraggraph.exceptions import ConfigurationError


_EXTENSIONS = ('', '.json', '.json.gz')


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder for numpy values, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return {
                '__numpy__': True,
                'dtype': str(obj.dtype),
                'shape': obj.shape,
                'data': obj.tolist(),
            }
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, Enum):
            return obj.name
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        return super().default(obj)


def numpy_decoder(dct):
    """JSON decoder hook restoring numpy arrays."""
    if '__numpy__' in dct:
        return np.array(dct['data'], dtype=dct['dtype']).reshape(dct['shape'])
    return dct


def strict_pairs_decoder(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    JSON decoder hook rejecting duplicate keys in one object.

    Raises:
        ConfigurationError: on the first repeated key
    """
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ConfigurationError(f"Duplicate key '{key}' in JSON object")
        result[key] = value
    return numpy_decoder(result)


def _open(filepath: Path, mode: str):
    if filepath.suffix == '.gz':
        return gzip.open(filepath, mode + 't', encoding='utf-8')
    return open(filepath, mode, encoding='utf-8')


def write_json(data: Any, filepath: Union[str, Path], compress: Optional[bool] = None) -> Path:
    """
    Write `data` to `filepath`.

    Args:
        data: JSON-serializable data (numpy arrays allowed)
        filepath: Destination; a '.gz' suffix means gzipped output
        compress: Force gzip and append '.gz' if missing

    Returns:
        Path written
    """
    filepath = Path(filepath)
    if compress and filepath.suffix != '.gz':
        filepath = filepath.with_name(filepath.name + '.gz')
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with _open(filepath, 'w') as f:
        json.dump(data, f, cls=NumpyEncoder, indent=None if filepath.suffix == '.gz' else 2)
    return filepath


def read_json(filepath: Union[str, Path], strict: bool = False) -> Any:
    """
    Read a plain or gzipped JSON file.

    Args:
        filepath: File to read
        strict: Reject objects with duplicate keys (ConfigurationError)
    """
    filepath = Path(filepath)
    with _open(filepath, 'r') as f:
        if strict:
            return json.load(f, object_pairs_hook=strict_pairs_decoder)
        return json.load(f, object_hook=numpy_decoder)


class JSONStorage:
    """
    Directory of JSON documents addressed by name.

    Example:
        storage = JSONStorage("blobs")
        storage.save({"a": np.zeros(3)}, "17", compress=True)
        storage.load("17")["a"]
    """

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, filename: str) -> Optional[Path]:
        for ext in _EXTENSIONS:
            filepath = self.base_path / f"{filename}{ext}"
            if filepath.is_file():
                return filepath
        return None

    def save(self, data: Any, filename: str, compress: bool = False) -> Path:
        """Save `data` as '<filename>.json' (or '.json.gz')."""
        suffix = '.json.gz' if compress else '.json'
        return write_json(data, self.base_path / f"{filename}{suffix}")

    def load(self, filename: str) -> Any:
        filepath = self._resolve(filename)
        if filepath is None:
            raise FileNotFoundError(f"No JSON file found for {filename} in {self.base_path}")
        return read_json(filepath)

    def list_files(self, pattern: str = "*.json*") -> List[Path]:
        return sorted(self.base_path.glob(pattern))

    def exists(self, filename: str) -> bool:
        return self._resolve(filename) is not None

    def delete(self, filename: str) -> bool:
        filepath = self._resolve(filename)
        if filepath is None:
            return False
        filepath.unlink()
        return True


def save_graph(graph: Graph, filepath: Union[str, Path], compress: bool = False) -> Path:
    """Write a Graph to JSON."""
    return write_json(graph.to_dict(), filepath, compress=compress)


def load_graph(filepath: Union[str, Path]) -> Graph:
    """Read a Graph written by save_graph()."""
    return Graph.from_dict(read_json(filepath))
