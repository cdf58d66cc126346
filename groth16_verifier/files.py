# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json

from pathlib import Path
from typing import Any

# CBOR byte-string header for a 32-byte payload, as hex.
KEY_HEADER = "5820"


def _writable(path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def save_string(path: str | Path, string: str) -> None:
    """
    Write text to `path`, replacing any existing file.

    Missing parent directories are created, so converted requests can be
    written straight into a fresh output directory.
    """
    _writable(path).write_text(string, encoding="utf-8")


def save_json(path: str | Path, data: Any) -> None:
    """
    Write `data` as JSON with two-space indentation and sorted keys, so a
    manifest written twice from the same request is byte-identical.

    Raises:
        TypeError: If `data` holds something json cannot serialize.
    """
    with _writable(path).open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)


def load_json(path: str | Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def extract_key(file_path: str | Path) -> str:
    """
    Read the 32-byte key held in a `cborHex` key file and return it as hex.

    Args:
        file_path: A JSON key file whose `cborHex` field is a CBOR byte string.

    Returns:
        str: 64 hex characters, the key without its `5820` header.

    Raises:
        KeyError: If the file has no `cborHex` field.
        ValueError: If `cborHex` is not a 32-byte CBOR byte string.
    """
    cbor_hex = load_json(file_path)["cborHex"].lower()
    if not cbor_hex.startswith(KEY_HEADER) or len(cbor_hex) != len(KEY_HEADER) + 64:
        raise ValueError(f"{file_path} does not hold a 32-byte key")
    return cbor_hex[len(KEY_HEADER) :]


def load_hex(path: str | Path) -> bytes:
    """
    Read a file holding a hex string and return the bytes it encodes.

    Surrounding whitespace and an optional `0x` prefix are ignored.

    Raises:
        ValueError: If the content is not valid hex.
    """
    text = Path(path).read_text(encoding="utf-8").strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)
