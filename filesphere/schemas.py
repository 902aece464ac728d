from __future__ import annotations
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import FileRecord


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---- Push channel messages -------------------------------------------------- #

class ConnectedMessage(_Wire):
    type: Literal["connected"] = "connected"
    total_files: int


class FileAddedMessage(_Wire):
    type: Literal["file-added"] = "file-added"
    file: FileRecord


class FileRemovedMessage(_Wire):
    type: Literal["file-removed"] = "file-removed"
    id: str


class ScanCompleteMessage(_Wire):
    type: Literal["scan-complete"] = "scan-complete"
    total_files: int


# ---- HTTP responses --------------------------------------------------------- #

class FilesPage(_Wire):
    files: List[FileRecord]
    next_cursor: Optional[int] = None
    has_more: bool = False

    def to_wire(self) -> dict:
        # nextCursor is part of the contract even when null
        data = self.model_dump(mode="json", by_alias=True, exclude={"files"})
        data["files"] = [f.to_wire() for f in self.files]
        return data


class StatsOut(_Wire):
    total_files: int
    last_scan: Optional[str] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class VisibleFileOut(_Wire):
    id: str
    distance: float
    tier: Literal["near", "mid", "far"]
    lod: Literal["preview", "icon", "point"]


class VisibleOut(_Wire):
    files: List[VisibleFileOut]
    counts: Dict[str, int] = Field(default_factory=dict)


class ScanOut(_Wire):
    started: bool
