"""Small formatting helpers shared by services and routes."""
import math
import os
import re
import time
import uuid

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_file_size(size_bytes: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size_bytes <= 0:
        return "0 Bytes"
    i = min(int(math.floor(math.log(size_bytes, 1024))), len(SIZE_UNITS) - 1)
    value = round(size_bytes / (1024 ** i), 2)
    return f"{value:g} {SIZE_UNITS[i]}"


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-z0-9.-]", "_", filename, flags=re.IGNORECASE).lower()


def unique_stored_name(original_name: str) -> str:
    """Sanitized, collision-free name under which an upload is stored."""
    stem, extension = os.path.splitext(sanitize_filename(original_name))
    return f"{stem}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{extension}"
