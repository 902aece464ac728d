from __future__ import annotations
"""
File identity and classification.

identify() is the single source of truth for record ids: the scan, the live
watch and removal events all resolve ids through it, so a deleted path maps
back to the id it was discovered under.
"""

import hashlib
import os
from datetime import datetime, timezone

from filesphere.models import FileRecord, FileType

ID_LENGTH = 16  # hex chars of the sha256 digest

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg", ".ico"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov", ".avi", ".mkv", ".flv", ".wmv"})
TEXT_EXTENSIONS = frozenset({
    ".txt", ".md", ".json", ".xml", ".csv", ".log",
    ".js", ".ts", ".jsx", ".tsx", ".py", ".html", ".css",
})


def identify(absolute_path: str) -> str:
    return hashlib.sha256(absolute_path.encode("utf-8", "surrogateescape")).hexdigest()[:ID_LENGTH]


def classify(extension: str) -> FileType:
    ext = (extension or "").lower()
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in TEXT_EXTENSIONS:
        return "text"
    return "binary"


def extension_of(path: str) -> str:
    return os.path.splitext(path)[1].lower()


def is_hidden(path: str, root: str) -> bool:
    """True if any segment of path below root starts with a dot."""
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # different drive on Windows; judge the full path
        rel = path
    return any(part.startswith(".") and part not in (".", "..") for part in rel.split(os.sep))


def _iso_utc(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return _iso_utc(datetime.now(timezone.utc).timestamp())


def build_record(absolute_path: str, st: os.stat_result) -> FileRecord:
    ext = extension_of(absolute_path)
    created = getattr(st, "st_birthtime", None) or st.st_ctime
    return FileRecord(
        id=identify(absolute_path),
        name=os.path.basename(absolute_path),
        absolute_path=absolute_path,
        extension=ext,
        size=st.st_size,
        type=classify(ext),
        created_at=_iso_utc(created),
    )
