"""
Portable session strings.

An auth folder is packed into a single base64 string holding a JSON object
that maps each file name to its content. Text files are stored as-is; files
that are not valid UTF-8 (the protocol client's SQLite store), and text that
itself starts with the prefix, are stored as ``"base64:<data>"``.
"""
from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Dict, Optional, Union

from pairing_api.exceptions import ValidationError
from pairing_api.logger import logger

BINARY_PREFIX = "base64:"


def _encode_file(content: bytes) -> str:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        text = None
    # Text that already looks prefixed is stored encoded so it decodes back as-is.
    if text is None or text.startswith(BINARY_PREFIX):
        return BINARY_PREFIX + base64.b64encode(content).decode("ascii")
    return text


def _decode_file(value: str) -> bytes:
    if value.startswith(BINARY_PREFIX):
        return base64.b64decode(value[len(BINARY_PREFIX):], validate=True)
    return value.encode("utf-8")


def encode_session(auth_dir: Union[str, Path]) -> Optional[str]:
    """
    Pack every file directly inside ``auth_dir`` into a session string.

    Returns None when the folder cannot be read.
    """
    auth_dir = Path(auth_dir)
    try:
        files: Dict[str, str] = {}
        for path in sorted(auth_dir.iterdir()):
            if path.is_file():
                files[path.name] = _encode_file(path.read_bytes())
    except OSError as e:
        logger.warning("session_encode_failed", auth_dir=str(auth_dir), error=str(e))
        return None

    payload = json.dumps(files).encode("utf-8")
    return base64.b64encode(payload).decode("ascii")


def decode_session(value: str) -> Dict[str, bytes]:
    """Unpack a session string into ``{file name: bytes}``."""
    try:
        raw = base64.b64decode(value.strip(), validate=True)
        files = json.loads(raw.decode("utf-8"))
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Malformed session string: {e}", field="session") from e

    if not isinstance(files, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in files.items()
    ):
        raise ValidationError("Malformed session string: expected a file map", field="session")

    try:
        return {name: _decode_file(content) for name, content in files.items()}
    except ValueError as e:
        raise ValidationError(f"Malformed session string: {e}", field="session") from e


def restore_session(value: str, target_dir: Union[str, Path]) -> Path:
    """Write the files of a session string into ``target_dir``."""
    target_dir = Path(target_dir)
    files = decode_session(value)
    for name in files:
        # Only plain file names are accepted.
        if Path(name).name != name or name in {"", ".", ".."}:
            raise ValidationError(f"Invalid file name in session: {name!r}", field="session")

    target_dir.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (target_dir / name).write_bytes(content)
    return target_dir
