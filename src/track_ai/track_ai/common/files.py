from __future__ import annotations

import mimetypes
import os
from typing import Optional

from werkzeug.datastructures import FileStorage


def file_size(file: FileStorage) -> int:
    """Size in bytes without consuming the stream."""
    stream = file.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return int(size)


def file_bytes(file: FileStorage) -> bytes:
    file.stream.seek(0)
    data = file.stream.read()
    file.stream.seek(0)
    return data


def file_mime(file: FileStorage) -> Optional[str]:
    if file.mimetype:
        return file.mimetype
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return guessed


def file_name(file: FileStorage) -> str:
    return file.filename or "upload.bin"
