"""Filesystem gateway for the strike pipeline.

Provides:
    - Atomic writes: tmp file → fsync → rename (the interpreter never
      reads a half-written fragment)
    - Raw byte reads for substrate verification
    - YAML loading for configuration
    - Directory creation with exist_ok semantics

The pipeline never touches the filesystem directly; every read, write and
mkdir goes through this module so that tests can point it at ``tmp_path``
and so ``OSError`` handling lives in one place.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from dotmatrix.utils import fs
    fs.ensure_dir("dist")
    fs.atomic_write_text(kernel_dir / "data.fth", source)
    raw = fs.read_bytes("dist/substrate.bin")
"""

import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)

    Notes
    -----
    Creates parent directories as needed.
    """
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
        Target file path; its parent directory must already exist
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    OSError
        If the temporary file cannot be written or renamed.  The
        temporary file is removed before the error propagates.
    """
    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "ascii"
) -> None:
    """Encode *text* and write it atomically.

    Generated interpreter sources are pure ASCII, so that is the default
    encoding; a non-ASCII character raises ``UnicodeEncodeError`` before
    anything touches the disk.
    """
    atomic_write_bytes(path, text.encode(encoding))


def read_bytes(path: Union[str, Path]) -> bytes:
    """Read a whole file as raw bytes.

    Raises
    ------
    OSError
        Propagated unchanged (FileNotFoundError, PermissionError, ...).
    """
    with open(Path(path), 'rb') as f:
        return f.read()


def remove_quietly(path: Union[str, Path]) -> bool:
    """Delete *path* if present.

    Returns
    -------
    bool
        ``True`` if a file was removed.
    """
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails

    Notes
    -----
    Uses safe_load to prevent arbitrary code execution.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
