"""Region quadtree over vessel positions.

The tree is rebuilt from the full snapshot on every detection tick and only
answers coarse bounding-box queries: ``query`` returns every id stored in a
node whose bounds intersect the box, so results are a superset of the points
strictly inside it.  Callers that need exact membership re-filter by distance.

Subdivision has no depth limit.  Each node keeps up to ``capacity`` items
before splitting, so coincident positions add about one level per
``capacity`` points and depth grows linearly with their number.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from vtms.models.vessel import Position
from vtms.utils.geo import NM_PER_DEGREE


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def contains(self, position: Position) -> bool:
        return (
            self.south <= position.latitude <= self.north
            and self.west <= position.longitude <= self.east
        )

    def intersects(self, other: BoundingBox) -> bool:
        return not (
            other.west > self.east
            or other.east < self.west
            or other.north < self.south
            or other.south > self.north
        )

    @classmethod
    def around(cls, center: Position, radius_nm: float) -> BoundingBox:
        """Square box of ``radius_nm`` (1 NM ≈ 1/60°) around ``center``."""
        pad = radius_nm / NM_PER_DEGREE
        return cls(
            north=center.latitude + pad,
            south=center.latitude - pad,
            east=center.longitude + pad,
            west=center.longitude - pad,
        )


class QuadTree:
    def __init__(self, bounds: BoundingBox, capacity: int = 10, depth: int = 0):
        if capacity < 1:
            raise ValueError(f"QuadTree capacity must be positive, got {capacity}")
        self.bounds = bounds
        self.capacity = capacity
        self.depth = depth
        self.items: list[tuple[str, Position]] = []
        self.children: Optional[tuple[QuadTree, QuadTree, QuadTree, QuadTree]] = None

    @classmethod
    def build(
        cls,
        positions: Iterable[tuple[str, Position]],
        capacity: int = 10,
        padding_deg: float = 0.1,
    ) -> Optional[QuadTree]:
        """Build a tree whose root is the padded extent of ``positions``.

        Returns None when there is nothing to index.
        """
        entries = list(positions)
        if not entries:
            return None

        lats = [p.latitude for _, p in entries]
        lons = [p.longitude for _, p in entries]
        tree = cls(
            BoundingBox(
                north=max(lats) + padding_deg,
                south=min(lats) - padding_deg,
                east=max(lons) + padding_deg,
                west=min(lons) - padding_deg,
            ),
            capacity=capacity,
        )
        for item_id, position in entries:
            tree.insert(item_id, position)
        return tree

    @property
    def divided(self) -> bool:
        return self.children is not None

    def insert(self, item_id: str, position: Position) -> bool:
        if not self.bounds.contains(position):
            return False

        if len(self.items) < self.capacity:
            self.items.append((item_id, position))
            return True

        if self.children is None:
            self._subdivide()

        return any(child.insert(item_id, position) for child in self.children)

    def query(self, box: BoundingBox) -> set[str]:
        found: set[str] = set()
        self._query_into(box, found)
        return found

    def _query_into(self, box: BoundingBox, found: set[str]) -> None:
        if not self.bounds.intersects(box):
            return
        found.update(item_id for item_id, _ in self.items)
        if self.children is not None:
            for child in self.children:
                child._query_into(box, found)

    def _subdivide(self) -> None:
        b = self.bounds
        mid_lat = (b.north + b.south) / 2
        mid_lon = (b.east + b.west) / 2
        nxt = self.depth + 1
        self.children = (
            QuadTree(BoundingBox(b.north, mid_lat, b.east, mid_lon), self.capacity, nxt),  # NE
            QuadTree(BoundingBox(b.north, mid_lat, mid_lon, b.west), self.capacity, nxt),  # NW
            QuadTree(BoundingBox(mid_lat, b.south, b.east, mid_lon), self.capacity, nxt),  # SE
            QuadTree(BoundingBox(mid_lat, b.south, mid_lon, b.west), self.capacity, nxt),  # SW
        )

    def __len__(self) -> int:
        total = len(self.items)
        if self.children is not None:
            total += sum(len(child) for child in self.children)
        return total

    def max_depth(self) -> int:
        if self.children is None:
            return self.depth
        return max(child.max_depth() for child in self.children)
