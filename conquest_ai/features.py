"""
State Featurizer & Legal-Action Enumerator - Grid to network inputs and back.

Produces:
1. A fixed-length feature vector per (grid, player) for the value network
2. The ordered list of legal actions for a player
3. The mapping from an action to its slot in the network's output vector

Feature layout, per cell in row-major order:
  [ownership (1 own / -1 enemy / 0 none), troops / 100,
   7-slot building one-hot, wall flag]
followed by [gold / 1000, troops / 1000, territory count / 100].

Output layout: cell_index * 9 + slot, where slot 0 is an attack on the cell,
slot 1 defends it and slots 2..8 build each building kind on it.
"""

import numpy as np
from typing import List, Optional

from conquest.actions import Action, Attack, Build, Defend, Move
from conquest.buildings import (
    BUILDING_KINDS, NUM_BUILDING_KINDS, BuildingKind, building_cost,
)
from conquest.grid import Grid, Player


FEATURES_PER_CELL = 3 + NUM_BUILDING_KINDS     # 10
GLOBAL_FEATURES = 3
SLOTS_PER_CELL = 2 + NUM_BUILDING_KINDS        # 9
ATTACK_SLOT = 0
DEFEND_SLOT = 1
BUILD_SLOT_OFFSET = 2
MIN_SOURCE_TROOPS = 5

_KIND_INDEX = {kind: i for i, kind in enumerate(BUILDING_KINDS)}


def input_size(num_cells: int) -> int:
    return num_cells * FEATURES_PER_CELL + GLOBAL_FEATURES


def output_size(num_cells: int) -> int:
    return num_cells * SLOTS_PER_CELL


class StateFeaturizer:
    """
    Encodes a grid from one player's point of view.

    The vector length is fixed by the first grid seen (or by num_cells when
    given). Encoding a grid of another size afterwards raises ValueError.
    """

    def __init__(self, num_cells: Optional[int] = None):
        self.num_cells = num_cells

    @property
    def input_size(self) -> int:
        if self.num_cells is None:
            raise ValueError("Featurizer has not seen a grid yet")
        return input_size(self.num_cells)

    @property
    def output_size(self) -> int:
        if self.num_cells is None:
            raise ValueError("Featurizer has not seen a grid yet")
        return output_size(self.num_cells)

    def bind(self, grid: Grid):
        """Fix the vector length to this grid's cell count."""
        if self.num_cells is None:
            self.num_cells = len(grid)
        elif self.num_cells != len(grid):
            raise ValueError(
                f"Grid has {len(grid)} cells, featurizer expects {self.num_cells}"
            )

    def encode(self, grid: Grid, player: Player) -> np.ndarray:
        self.bind(grid)
        cells = np.zeros((len(grid), FEATURES_PER_CELL), dtype=np.float32)

        for i, territory in enumerate(grid):
            if territory.owner == player.id:
                cells[i, 0] = 1.0
            elif territory.owner is not None:
                cells[i, 0] = -1.0
            cells[i, 1] = territory.troops / 100.0
            if territory.building is not None:
                cells[i, 2 + _KIND_INDEX[territory.building.kind]] = 1.0
            cells[i, 2 + NUM_BUILDING_KINDS] = 1.0 if territory.wall else 0.0

        owned = grid.owned_by(player.id)
        totals = np.array([
            player.gold / 1000.0,
            sum(t.troops for t in owned) / 1000.0,
            len(owned) / 100.0,
        ], dtype=np.float32)

        return np.concatenate([cells.reshape(-1), totals])


def action_to_index(grid: Grid, action: Action) -> int:
    """Slot of an action in the network output vector."""
    if isinstance(action, Attack):
        return grid.index_of(*action.target) * SLOTS_PER_CELL + ATTACK_SLOT
    if isinstance(action, Defend):
        return grid.index_of(*action.target) * SLOTS_PER_CELL + DEFEND_SLOT
    if isinstance(action, Build):
        return (grid.index_of(*action.target) * SLOTS_PER_CELL
                + BUILD_SLOT_OFFSET + _KIND_INDEX[action.kind])
    if isinstance(action, Move):
        raise ValueError("Moves have no slot in the action encoding")
    raise TypeError(f"Unknown action: {action!r}")


def legal_actions(grid: Grid, player: Player) -> List[Action]:
    """
    Every action the player may take right now, in a stable order:
    attacks, then defends, then builds, then walls.
    """
    actions: List[Action] = []
    owned = grid.owned_by(player.id)

    # Attacks on weaker reachable cells
    for source in owned:
        if source.troops < MIN_SOURCE_TROOPS:
            continue
        reach = grid.attack_range(source)
        for target in grid.find_adjacent(source, reach):
            if (target.owner != player.id and not target.is_water
                    and target.troops < source.troops):
                actions.append(Attack(source.position, target.position))

    # Reinforce hostile borders
    hostile_borders = grid.border_territories(player.id, hostile_only=True)
    for border in hostile_borders:
        actions.append(Defend(border.position))

    # Buildings on unbuilt owned cells
    affordable = [k for k in BUILDING_KINDS
                  if k != BuildingKind.WALL and player.gold >= building_cost(k)]
    if affordable:
        for territory in owned:
            if territory.building is not None:
                continue
            for kind in affordable:
                actions.append(Build(territory.position, kind))

    # Walls on empty land near hostile borders
    if player.gold >= building_cost(BuildingKind.WALL):
        seen = set()
        for border in hostile_borders:
            for empty in grid.find_nearby_empty(border):
                if empty.position in seen or empty.is_water:
                    continue
                seen.add(empty.position)
                actions.append(Build(empty.position, BuildingKind.WALL))

    return actions
