"""
Territory Conquest - Grid-based territorial conquest game core.

A pure-Python game model for human and AI players. Features:

- Rectangular territory grid with ownership, troops, buildings and walls
- Seven building kinds (fort, farm, tower, barracks, wall, mine, market)
- Attack / defend / build / move actions resolved in place
- Periodic troop and gold growth, timed random events
- Interactive session object (conquest.session.GameSession)
"""

from conquest.buildings import (
    Terrain, BuildingKind, Building, BUILDING_CATALOG, building_cost,
)
from conquest.grid import Grid, Territory, Player, Personality
from conquest.actions import ActionType, Action, Attack, Defend, Build, Move
from conquest.config import RulesConfig, TrainingConfig
from conquest.events import EventKind, EventSchedule
from conquest.rules import Resolver, GrowthClock
from conquest.renderer import GameRenderer

__all__ = [
    "Terrain", "BuildingKind", "Building", "BUILDING_CATALOG", "building_cost",
    "Grid", "Territory", "Player", "Personality",
    "ActionType", "Action", "Attack", "Defend", "Build", "Move",
    "RulesConfig", "TrainingConfig",
    "EventKind", "EventSchedule",
    "Resolver", "GrowthClock",
    "GameRenderer",
]
