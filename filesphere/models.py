from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

FileType = Literal["image", "video", "text", "binary"]
Position = Tuple[float, float, float]


class FileRecord(BaseModel):
    """One filesystem entry as served to clients (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    absolute_path: str
    extension: str
    size: int
    type: FileType = "binary"
    created_at: str
    position: Optional[Position] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---- Index events (single ordered sink) ------------------------------------ #

@dataclass(frozen=True)
class FileDiscovered:
    record: FileRecord


@dataclass(frozen=True)
class FileRemoved:
    file_id: str
    path: str


@dataclass(frozen=True)
class DirectoryRemoved:
    """A directory left the tree (deleted or moved out); drop everything under it."""

    path: str


@dataclass(frozen=True)
class ScanComplete:
    timestamp: str


@dataclass(frozen=True)
class EntrySkipped:
    path: str
    reason: str


IndexEvent = Union[FileDiscovered, FileRemoved, DirectoryRemoved, ScanComplete]
ScanOutcome = Union[FileDiscovered, EntrySkipped]
