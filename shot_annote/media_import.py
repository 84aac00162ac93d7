# shot_annote/media_import.py
from __future__ import annotations

import os
from typing import Optional, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname


# Allowed local extensions (strict)
ALLOWED_MEDIA_EXTS = {
    ".mp4", ".mov", ".mkv", ".avi", ".m4v", ".webm",
    ".mpg", ".mpeg", ".wmv", ".mp3", ".wav", ".m4a",
}


def ext_lower(path_or_url: str) -> str:
    base = path_or_url.strip().split("?")[0].split("#")[0]
    _, ext = os.path.splitext(base)
    return ext.lower().strip()


def media_path_from_uri(uri: str) -> Optional[str]:
    """
    file:///home/me/clip%20one.mp4 -> /home/me/clip one.mp4
    Plain paths are returned unchanged; non-file URLs give None (no sidecar possible).
    """
    if not uri:
        return None
    s = uri.strip()
    p = urlparse(s)
    if p.scheme == "file":
        path = url2pathname(p.path)
        if p.netloc and p.netloc != "localhost":
            path = "//" + p.netloc + path
        return path
    if p.scheme and len(p.scheme) > 1:
        return None
    # bare path (len(scheme)==1 is a Windows drive letter)
    return s


def validate_local_media_path(path: str) -> Tuple[bool, str]:
    if not path:
        return (False, "No file selected.")
    if not os.path.exists(path):
        return (False, f"File does not exist: {path}")
    if not os.path.isfile(path):
        return (False, f"Not a file: {path}")
    ext = ext_lower(path)
    if ext not in ALLOWED_MEDIA_EXTS:
        return (False, f"Unsupported file type '{ext}'. Allowed: {sorted(ALLOWED_MEDIA_EXTS)}")
    return (True, "OK")


def media_file_filter() -> str:
    """Name filter for QFileDialog."""
    patterns = " ".join(f"*{e}" for e in sorted(ALLOWED_MEDIA_EXTS))
    return f"Media files ({patterns});;All files (*)"
