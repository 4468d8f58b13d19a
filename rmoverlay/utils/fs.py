"""Filesystem helpers: atomic writes, YAML and JSON loading.

Provides:
    - Atomic writes: tmp file → fsync → rename (no half-written PDFs)
    - YAML load via PyYAML safe_load
    - JSON load from paths or open binary streams (bundle descriptors)
    - Directory creation with exist_ok semantics

All paths use pathlib.Path.

Usage:
    from rmoverlay.utils import fs
    settings = fs.load_yaml("pens.yaml")
    fs.atomic_write_bytes("out.pdf", pdf_bytes)
"""

import json
import os
from pathlib import Path
from typing import IO, Any, Dict, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    The temporary file lives in the target directory so the rename stays on
    one filesystem. A failed conversion therefore never leaves a partial
    output file behind.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)
    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def load_yaml(path: Union[str, Path]) -> Any:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Any
        Parsed YAML content (None for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def load_json_stream(stream: IO[bytes], name: str = "<stream>") -> Dict[str, Any]:
    """Decode a JSON object from an open binary stream.

    Parameters
    ----------
    stream : IO[bytes]
        Readable binary stream (file or archive member)
    name : str
        Member name used in error messages

    Returns
    -------
    Dict[str, Any]
        Decoded JSON object

    Raises
    ------
    ValueError
        If the content is not valid JSON or not an object
    """
    try:
        data = json.loads(stream.read().decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not decode JSON from {name}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {name}, got {type(data).__name__}")
    return data
