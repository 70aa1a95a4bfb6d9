"""
Grid Model - Territory grid with ownership, troops, buildings and walls.

The grid is a fixed-size rectangle of territories stored in row-major order
(y, then x). That order is stable for the lifetime of a grid and is what the
state featurizer iterates over.

Each territory can be:
- Neutral land (no owner, a few seed troops)
- Owned land (a player's troops, optionally one building)
- Water (never owned, zero troops)
- A wall (impassable, zero troops, cosmetically owned by its builder)

Adjacency is Euclidean: a cell is in range when 0 < distance <= range.
"""

import math
import random
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from conquest.buildings import (
    Building, BuildingKind, Terrain, TERRAIN_CAPACITY,
)


DEFAULT_RANGE = 2


class Personality(Enum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    EXPANSIONIST = "expansionist"
    BUILDER = "builder"


@dataclass
class Player:
    """A human or AI participant."""
    id: str
    name: str
    color: str = "#888888"
    gold: int = 500
    troops: int = 100          # Running total, informational
    territory: int = 0         # Recomputed by every growth pass
    personality: Optional[Personality] = None
    is_human: bool = False


@dataclass
class Territory:
    """A single grid cell."""
    x: int
    y: int
    terrain: Terrain = Terrain.PLAINS
    owner: Optional[str] = None
    troops: int = 0
    capacity: int = 100         # Soft cap, never enforced
    building: Optional[Building] = None
    wall: bool = False
    gold: int = 0               # Deposit value, informational

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def is_water(self) -> bool:
        return self.terrain == Terrain.WATER

    def is_owned_by(self, player_id: str) -> bool:
        """Real ownership: walls are only cosmetically owned."""
        return self.owner == player_id and not self.wall

    def has_building(self, kind: BuildingKind) -> bool:
        return self.building is not None and self.building.kind == kind

    @property
    def fort_level(self) -> int:
        if self.has_building(BuildingKind.FORT):
            return self.building.level
        return 0

    @property
    def tower_level(self) -> int:
        if self.has_building(BuildingKind.TOWER):
            return self.building.level
        return 0

    def distance_to(self, other: 'Territory') -> float:
        """Euclidean distance to another territory."""
        return math.hypot(self.x - other.x, self.y - other.y)


class Grid:
    """Rectangular territory grid."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.cells: List[Territory] = [
            Territory(x=x, y=y) for y in range(height) for x in range(width)
        ]

    @classmethod
    def from_cells(cls, width: int, height: int,
                   cells: List[Territory]) -> 'Grid':
        """
        Build a grid from an externally generated cell list.

        Every position must appear exactly once; order does not matter.
        """
        if len(cells) != width * height:
            raise ValueError(
                f"Expected {width * height} cells, got {len(cells)}"
            )
        grid = cls.__new__(cls)
        grid.width = width
        grid.height = height
        slots: List[Optional[Territory]] = [None] * (width * height)
        for cell in cells:
            if not (0 <= cell.x < width and 0 <= cell.y < height):
                raise ValueError(f"Cell ({cell.x},{cell.y}) out of bounds")
            idx = cell.y * width + cell.x
            if slots[idx] is not None:
                raise ValueError(f"Duplicate cell ({cell.x},{cell.y})")
            slots[idx] = cell
        grid.cells = slots
        return grid

    @classmethod
    def create_random(cls, width: int = 20, height: int = 15,
                      rng: Optional[random.Random] = None) -> 'Grid':
        """
        Simple turn-key map: plains with ~10% water and ~10% mountains.
        Neutral cells start with 1-5 troops and a 0-19 gold deposit.
        """
        rng = rng or random.Random()
        grid = cls(width, height)
        for cell in grid.cells:
            cell.troops = rng.randint(1, 5)
            cell.gold = rng.randint(0, 19)
            roll = rng.random()
            if roll < 0.1:
                cell.terrain = Terrain.WATER
                cell.troops = 0
            elif roll < 0.2:
                cell.terrain = Terrain.MOUNTAINS
            cell.capacity = TERRAIN_CAPACITY[cell.terrain]
        return grid

    # ---- Lookup ---------------------------------------------------------

    def __iter__(self) -> Iterator[Territory]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index_of(self, x: int, y: int) -> int:
        return y * self.width + x

    def get(self, x: int, y: int) -> Optional[Territory]:
        """Territory at (x, y), or None when out of bounds."""
        if not self.in_bounds(x, y):
            return None
        return self.cells[self.index_of(x, y)]

    def at(self, pos: Tuple[int, int]) -> Optional[Territory]:
        return self.get(pos[0], pos[1])

    # ---- Adjacency ------------------------------------------------------

    def _within(self, territory: Territory, radius: float) -> Iterator[Territory]:
        """Cells with 0 < distance <= radius, in row-major order."""
        r = int(math.floor(radius))
        for y in range(max(0, territory.y - r), min(self.height, territory.y + r + 1)):
            for x in range(max(0, territory.x - r), min(self.width, territory.x + r + 1)):
                cell = self.cells[y * self.width + x]
                d = math.hypot(cell.x - territory.x, cell.y - territory.y)
                if 0 < d <= radius:
                    yield cell

    def find_adjacent(self, territory: Territory,
                      radius: float = DEFAULT_RANGE) -> List[Territory]:
        """All non-wall cells within Euclidean range, excluding the cell itself."""
        return [c for c in self._within(territory, radius) if not c.wall]

    def find_nearby_empty(self, territory: Territory,
                          radius: float = DEFAULT_RANGE) -> List[Territory]:
        """In-range cells with no owner and no wall (wall placement candidates)."""
        return [c for c in self._within(territory, radius)
                if c.owner is None and not c.wall]

    @staticmethod
    def attack_range(source: Territory) -> int:
        """Base range 2, extended by +1 per tower level on the source."""
        return DEFAULT_RANGE + source.tower_level

    def in_range(self, source: Territory, target: Territory) -> bool:
        d = source.distance_to(target)
        return 0 < d <= self.attack_range(source)

    # ---- Ownership queries ----------------------------------------------

    def owned_by(self, player_id: str) -> List[Territory]:
        return [c for c in self.cells if c.is_owned_by(player_id)]

    def border_territories(self, player_id: str,
                           hostile_only: bool = True) -> List[Territory]:
        """
        Owned cells next to another faction.

        hostile_only=False also counts neutral neighbours, which is what the
        building strategy uses to place forts and walls.
        """
        borders = []
        for territory in self.owned_by(player_id):
            for n in self.find_adjacent(territory):
                if hostile_only:
                    if n.owner is not None and n.owner != player_id:
                        borders.append(territory)
                        break
                elif n.owner != player_id:
                    borders.append(territory)
                    break
        return borders

    def count_buildings(self, player_id: str,
                        kind: Optional[BuildingKind] = None) -> int:
        """Buildings on a player's territories (all kinds when kind is None)."""
        return sum(
            1 for c in self.owned_by(player_id)
            if c.building is not None and (kind is None or c.building.kind == kind)
        )

    def territory_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for c in self.cells:
            if c.owner is not None and not c.wall:
                counts[c.owner] = counts.get(c.owner, 0) + 1
        return counts

    def troop_total(self, player_id: str) -> int:
        return sum(c.troops for c in self.owned_by(player_id))

    # ---- Initial claim --------------------------------------------------

    def claim_start(self, player: Player, x: int, y: int,
                    radius: float = DEFAULT_RANGE, troops: int = 10,
                    with_barracks: bool = True) -> int:
        """
        Claim the area around (x, y) for a player.

        Water and walls are skipped. The center cell receives a level-1
        barracks. Returns the number of cells claimed.
        """
        center = self.get(x, y)
        if center is None:
            return 0
        claimed = 0
        for cell in [center] + list(self._within(center, radius)):
            if cell.is_water or cell.wall:
                continue
            cell.owner = player.id
            cell.troops = troops
            claimed += 1
        if with_barracks and not center.is_water and not center.wall:
            center.building = Building(BuildingKind.BARRACKS, level=1)
        player.territory = len(self.owned_by(player.id))
        return claimed
