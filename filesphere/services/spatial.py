from __future__ import annotations
"""
Deterministic 3D placement of file records.

Every coordinate is derived from the record id (seed) and size (radius)
against a fixed size range, so a client that knows the radii and the range
re-derives exactly what the server computed. Larger files sit near the inner
radius, smaller files drift out toward the outer radius; size is scaled
logarithmically (log1p) so bytes and gigabytes both spread out.
"""

import math
from typing import Callable, Dict, Iterable, Optional, Tuple

from filesphere.models import FileRecord, Position

_LCG_MUL = 9301
_LCG_INC = 49297
_LCG_MOD = 233280

DEFAULT_SIZE_RANGE: Tuple[int, int] = (0, 1 << 30)


def hash_string(value: str) -> int:
    """Java-style 32-bit string hash (h = 31*h + c), absolute value."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def seeded_random(seed: int) -> Callable[[], float]:
    state = seed

    def _next() -> float:
        nonlocal state
        state = (state * _LCG_MUL + _LCG_INC) % _LCG_MOD
        return state / _LCG_MOD

    return _next


def noise3d(x: float, y: float, z: float) -> float:
    n = math.sin(x * 12.9898 + y * 78.233 + z * 37.719) * 43758.5453
    return n - math.floor(n)


class SpatialAssigner:
    def __init__(
        self,
        inner_radius: float = 7.0,
        outer_radius: float = 70.0,
        *,
        size_range: Tuple[int, int] = DEFAULT_SIZE_RANGE,
        jitter: float = 0.3,
        noise_scale: float = 0.02,
        noise_strength: float = 0.1,
    ) -> None:
        if inner_radius <= 0 or outer_radius < inner_radius:
            raise ValueError("need 0 < inner_radius <= outer_radius")
        lo, hi = size_range
        if lo < 0 or hi < lo:
            raise ValueError("need 0 <= min size <= max size")
        self.inner_radius = float(inner_radius)
        self.outer_radius = float(outer_radius)
        self.size_range = (int(lo), int(hi))
        self.jitter = jitter
        self.noise_scale = noise_scale
        self.noise_strength = noise_strength

    def base_radius(self, size: int, size_range: Optional[Tuple[int, int]] = None) -> float:
        lo, hi = size_range or self.size_range
        if hi == lo:
            ratio = 0.5
        else:
            ratio = (math.log1p(max(size, 0)) - math.log1p(lo)) / (math.log1p(hi) - math.log1p(lo))
        ratio = min(1.0, max(0.0, ratio))
        return self.outer_radius - ratio * (self.outer_radius - self.inner_radius)

    def assign(self, file_id: str, size: int, size_range: Optional[Tuple[int, int]] = None) -> Position:
        random = seeded_random(hash_string(file_id))

        base = self.base_radius(size, size_range)
        variance = base * self.jitter * (2.0 * random() - 1.0)
        radius = max(self.inner_radius, base + variance)

        # uniform on the sphere: azimuth uniform, cos(inclination) uniform
        theta = random() * 2.0 * math.pi
        phi = math.acos(2.0 * random() - 1.0)

        x = radius * math.sin(phi) * math.cos(theta)
        y = radius * math.sin(phi) * math.sin(theta)
        z = radius * math.cos(phi)

        s = self.noise_scale
        strength = radius * self.noise_strength
        nx = (noise3d(x * s, y * s, z * s) - 0.5) * strength
        ny = (noise3d(y * s, z * s, x * s) - 0.5) * strength
        nz = (noise3d(z * s, x * s, y * s) - 0.5) * strength
        return (x + nx, y + ny, z + nz)

    def assign_batch(self, records: Iterable[FileRecord]) -> Dict[str, Position]:
        """Place every record lacking a position."""
        return {r.id: self.assign(r.id, r.size) for r in records if r.position is None}
