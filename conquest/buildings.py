"""
Building System - Terrain kinds, building kinds and the static building catalog.

Buildings sit on owned territories and each grants one structural bonus:
- Fort: Defense multiplier (1 + level) against attacks
- Farm: Troop-growth bonus, scales with owned territory count
- Tower: Attack range +1 per level
- Barracks: Base troop growth, reinforces its own cell every growth pass
- Wall: Impassable cell, built on unowned land
- Mine: Gold income
- Market: Gold income (larger)
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, List


class Terrain(Enum):
    PLAINS = "plains"
    HILLS = "hills"
    FOREST = "forest"
    MOUNTAINS = "mountains"
    WATER = "water"


# Base troop capacity per terrain kind (soft, informational)
TERRAIN_CAPACITY = {
    Terrain.PLAINS: 100,
    Terrain.HILLS: 80,
    Terrain.FOREST: 80,
    Terrain.MOUNTAINS: 50,
    Terrain.WATER: 0,
}


class BuildingKind(Enum):
    # Declaration order is the one-hot slot order used by the featurizer
    FORT = "fort"
    FARM = "farm"
    TOWER = "tower"
    BARRACKS = "barracks"
    WALL = "wall"
    MINE = "mine"
    MARKET = "market"


BUILDING_KINDS: List[BuildingKind] = list(BuildingKind)
NUM_BUILDING_KINDS = len(BUILDING_KINDS)  # 7


@dataclass(frozen=True)
class BuildingStats:
    """Immutable catalog entry for a building kind."""
    name: str
    cost: int
    defense_bonus: int = 0   # Per level, multiplies defending troops
    troop_bonus: int = 0     # Base troop growth per growth pass
    range_bonus: int = 0     # Per level, added to attack range
    gold_bonus: int = 0      # Gold per growth pass
    color: str = "#000000"


BUILDING_CATALOG: Dict[BuildingKind, BuildingStats] = {
    BuildingKind.FORT: BuildingStats(
        name="Fort", cost=100, defense_bonus=1, color="#8B4513",
    ),
    BuildingKind.FARM: BuildingStats(
        name="Farm", cost=150, color="#FFD700",
    ),
    BuildingKind.TOWER: BuildingStats(
        name="Tower", cost=200, range_bonus=1, color="#708090",
    ),
    BuildingKind.BARRACKS: BuildingStats(
        name="Barracks", cost=120, troop_bonus=3, color="#d62828",
    ),
    BuildingKind.WALL: BuildingStats(
        name="Wall", cost=80, color="#000000",
    ),
    BuildingKind.MINE: BuildingStats(
        name="Mine", cost=150, gold_bonus=5, color="#a2a2a2",
    ),
    BuildingKind.MARKET: BuildingStats(
        name="Market", cost=200, gold_bonus=10, color="#fb8500",
    ),
}

# Cheapest thing a player can ever build (a wall)
MIN_BUILDING_COST = min(stats.cost for stats in BUILDING_CATALOG.values())


def building_cost(kind: BuildingKind) -> int:
    return BUILDING_CATALOG[kind].cost


@dataclass
class Building:
    """A building instance on a territory."""
    kind: BuildingKind
    level: int = 1

    @property
    def stats(self) -> BuildingStats:
        return BUILDING_CATALOG[self.kind]
