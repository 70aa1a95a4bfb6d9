"""
Action System - Tagged union of the actions a player can take in one tick.

Actions reference territories by (x, y) position and are always evaluated
against the grid as it is when they are applied. They are never queued.

- Attack: send troops from an owned cell to a foreign or neutral cell
- Defend: reinforce an owned cell with a fixed number of troops
- Build: place a building on an owned cell (or a wall on an empty one)
- Move: transfer troops between two owned cells
"""

from enum import IntEnum
from dataclasses import dataclass
from typing import Tuple, Union

from conquest.buildings import BuildingKind, BUILDING_CATALOG


Position = Tuple[int, int]


class ActionType(IntEnum):
    ATTACK = 0
    DEFEND = 1
    BUILD = 2
    MOVE = 3


@dataclass(frozen=True)
class Attack:
    source: Position
    target: Position

    @property
    def action_type(self) -> ActionType:
        return ActionType.ATTACK


@dataclass(frozen=True)
class Defend:
    target: Position

    @property
    def action_type(self) -> ActionType:
        return ActionType.DEFEND


@dataclass(frozen=True)
class Build:
    target: Position
    kind: BuildingKind

    @property
    def action_type(self) -> ActionType:
        return ActionType.BUILD


@dataclass(frozen=True)
class Move:
    source: Position
    target: Position

    @property
    def action_type(self) -> ActionType:
        return ActionType.MOVE


Action = Union[Attack, Defend, Build, Move]


def describe(action: Action) -> str:
    """Human-readable one-liner for status messages and logs."""
    if isinstance(action, Attack):
        return (f"Attack from ({action.source[0]},{action.source[1]}) "
                f"to ({action.target[0]},{action.target[1]})")
    if isinstance(action, Defend):
        return f"Defend territory at ({action.target[0]},{action.target[1]})"
    if isinstance(action, Build):
        name = BUILDING_CATALOG[action.kind].name
        return f"Build {name} at ({action.target[0]},{action.target[1]})"
    if isinstance(action, Move):
        return (f"Move from ({action.source[0]},{action.source[1]}) "
                f"to ({action.target[0]},{action.target[1]})")
    raise TypeError(f"Unknown action: {action!r}")
