from __future__ import annotations
"""
Distance-based visibility and LOD tiering.

query() is a pure function of (records, viewpoint, view_distance, thresholds):
no state is kept between calls, so it can run in a worker thread against a
snapshot of positioned records.

Conventions:
  - a record exactly at view_distance is visible (inclusive);
  - a record exactly on a tier threshold belongs to the farther tier;
  - equal distances are ordered by id.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Sequence

from filesphere.models import FileRecord

Tier = Literal["near", "mid", "far"]
TIERS: Sequence[Tier] = ("near", "mid", "far")
LOD_BY_TIER: Dict[str, str] = {"near": "preview", "mid": "icon", "far": "point"}


@dataclass(frozen=True)
class LodThresholds:
    mid: float = 25.0
    far: float = 60.0

    def __post_init__(self) -> None:
        if self.mid < 0 or self.far < self.mid:
            raise ValueError("need 0 <= mid <= far")


@dataclass(frozen=True)
class VisibleFile:
    record: FileRecord
    distance: float
    tier: Tier

    @property
    def lod(self) -> str:
        return LOD_BY_TIER[self.tier]


@dataclass
class VisibilityResult:
    files: List[VisibleFile] = field(default_factory=list)

    def by_tier(self) -> Dict[str, List[VisibleFile]]:
        out: Dict[str, List[VisibleFile]] = {t: [] for t in TIERS}
        for vf in self.files:
            out[vf.tier].append(vf)
        return out

    def counts(self) -> Dict[str, int]:
        return {t: len(v) for t, v in self.by_tier().items()}

    def ids(self) -> List[str]:
        return [vf.record.id for vf in self.files]


def tier_for(distance: float, thresholds: LodThresholds) -> Tier:
    if distance < thresholds.mid:
        return "near"
    if distance < thresholds.far:
        return "mid"
    return "far"


def query(
    records: Iterable[FileRecord],
    viewpoint: Sequence[float],
    view_distance: float,
    thresholds: LodThresholds = LodThresholds(),
) -> VisibilityResult:
    vx, vy, vz = (float(c) for c in viewpoint)
    hits: List[VisibleFile] = []
    for rec in records:
        if rec.position is None:
            continue
        x, y, z = rec.position
        dist = math.sqrt((x - vx) ** 2 + (y - vy) ** 2 + (z - vz) ** 2)
        if dist <= view_distance:
            hits.append(VisibleFile(rec, dist, tier_for(dist, thresholds)))
    hits.sort(key=lambda vf: (vf.distance, vf.record.id))
    return VisibilityResult(hits)
