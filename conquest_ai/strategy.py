"""
Rule-Based Strategy Selector - Scripted opponents for the conquest game.

Each tick the selector looks at the grid, picks a strategy from the
player's personality and situation, and proposes at most one action:
- Defensive: forts, walls and reinforcements on threatened borders
- Expansion: attack the weakest reachable neutral or enemy cell
- Building: keep a balanced mix of economic and military buildings
- Aggressive: go after human-held territory
- Balanced: random mix of the above, weighted by threat

The selector keeps no memory between ticks. Returning None means "pass".
"""

import random
from typing import Iterable, List, Optional, Set

from conquest.actions import Action, Attack, Build, Defend
from conquest.buildings import BuildingKind, building_cost
from conquest.grid import Grid, Personality, Player, Territory


MIN_EXPAND_TROOPS = 5
MIN_AGGRESSIVE_TROOPS = 8
ADVANTAGE_RATIO = 1.2
HIGH_THREAT = 0.7
EARLY_GAME_DAYS = 5
LARGE_EMPIRE = 15
MIN_BUILD_GOLD = 80


def select_personality(rng: Optional[random.Random] = None) -> Personality:
    """Uniform pick over the four personalities."""
    rng = rng or random.Random()
    return rng.choice(list(Personality))


def calculate_threat_level(grid: Grid, player_id: str) -> float:
    """
    Ratio of threatened border cells to all hostile border cells.

    A border cell is threatened when its strongest enemy neighbour has more
    troops than it does. 0.0 with no hostile border at all.
    """
    borders = 0
    threatened = 0
    for territory in grid.owned_by(player_id):
        enemies = [n for n in grid.find_adjacent(territory)
                   if n.owner is not None and n.owner != player_id]
        if not enemies:
            continue
        borders += 1
        if max(e.troops for e in enemies) > territory.troops:
            threatened += 1
    return 0.0 if borders == 0 else threatened / borders


def _defense_value(territory: Territory) -> int:
    return territory.troops * (1 + territory.fort_level)


class StrategySelector:
    """Chooses one action per tick for a rule-based player."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def select(self, grid: Grid, player: Player, day: int,
               human_ids: Iterable[str] = ()) -> Optional[Action]:
        owned = grid.owned_by(player.id)
        if not owned:
            return None

        if player.personality is None:
            player.personality = select_personality(self.rng)
        personality = player.personality

        threat = calculate_threat_level(grid, player.id)

        if threat > HIGH_THREAT:
            return self.defensive(grid, player)
        if day < EARLY_GAME_DAYS or personality == Personality.EXPANSIONIST:
            return self.expansion(grid, player)
        if personality == Personality.BUILDER or len(owned) > LARGE_EMPIRE:
            return self.building(grid, player)
        if personality == Personality.AGGRESSIVE:
            return self.aggressive(grid, player, set(human_ids))
        return self.balanced(grid, player, day, threat)

    # ---- Strategies -----------------------------------------------------

    def defensive(self, grid: Grid, player: Player) -> Optional[Action]:
        borders = grid.border_territories(player.id, hostile_only=True)
        if not borders:
            return None
        borders.sort(key=lambda t: t.troops)
        weakest = borders[0]

        if (player.gold >= building_cost(BuildingKind.FORT)
                and weakest.building is None and self.rng.random() > 0.5):
            return Build(weakest.position, BuildingKind.FORT)

        if player.gold >= building_cost(BuildingKind.WALL):
            for border in borders:
                empty = grid.find_nearby_empty(border)
                if empty:
                    return Build(self.rng.choice(empty).position,
                                 BuildingKind.WALL)

        return Defend(weakest.position)

    def expansion(self, grid: Grid, player: Player) -> Optional[Action]:
        owned = grid.owned_by(player.id)
        sources = [t for t in owned if t.troops >= MIN_EXPAND_TROOPS]
        if not sources:
            return None

        for source in sources:
            targets = [n for n in grid.find_adjacent(source)
                       if n.owner != player.id and not n.is_water
                       and n.troops < source.troops]
            if targets:
                targets.sort(key=lambda t: t.troops)
                return Attack(source.position, targets[0].position)

        unbuilt = [t for t in owned if t.building is None]
        if (player.gold >= building_cost(BuildingKind.BARRACKS)
                and self.rng.random() < 0.8 and unbuilt):
            return Build(unbuilt[0].position, BuildingKind.BARRACKS)
        if (player.gold >= building_cost(BuildingKind.MINE)
                and self.rng.random() < 0.5 and unbuilt):
            return Build(unbuilt[0].position, BuildingKind.MINE)

        return self.building(grid, player)

    def building(self, grid: Grid, player: Player) -> Optional[Action]:
        gold = player.gold
        if gold < MIN_BUILD_GOLD:
            return None

        owned = grid.owned_by(player.id)
        unbuilt = [t for t in owned if t.building is None]
        if not unbuilt:
            return None

        count = len(owned)
        borders = grid.border_territories(player.id, hostile_only=False)
        wallable: List[Territory] = []
        for border in borders:
            wallable.extend(grid.find_nearby_empty(border))

        def have(kind: BuildingKind) -> int:
            return grid.count_buildings(player.id, kind)

        target = self.rng.choice(unbuilt)

        if have(BuildingKind.MINE) < max(2, count * 0.15) and gold >= 150:
            kind = BuildingKind.MINE
        elif have(BuildingKind.BARRACKS) < count * 0.4 and gold >= 120:
            kind = BuildingKind.BARRACKS
        elif have(BuildingKind.MARKET) < count * 0.25 and gold >= 200:
            kind = BuildingKind.MARKET
        elif have(BuildingKind.FARM) < count * 0.3 and gold >= 150:
            kind = BuildingKind.FARM
        elif have(BuildingKind.FORT) < len(borders) * 0.4 and gold >= 100:
            kind = BuildingKind.FORT
        elif have(BuildingKind.TOWER) < count * 0.2 and gold >= 200:
            kind = BuildingKind.TOWER
        elif wallable and self.rng.random() < 0.4:
            kind = BuildingKind.WALL
            target = self.rng.choice(wallable)
        else:
            kind = self._kind_for_budget(gold)
            if kind is None:
                return None
            if kind == BuildingKind.WALL:
                if not wallable:
                    # Nowhere legal to put it
                    return None
                target = self.rng.choice(wallable)

        if kind == BuildingKind.FORT:
            empty_borders = [t for t in borders if t.building is None]
            if empty_borders:
                target = self.rng.choice(empty_borders)

        return Build(target.position, kind)

    def _kind_for_budget(self, gold: int) -> Optional[BuildingKind]:
        """Randomized pick by gold tier once the ratios are satisfied."""
        if gold >= 300:
            roll = self.rng.random()
            if roll < 0.4:
                return BuildingKind.MARKET
            if roll < 0.7:
                return BuildingKind.TOWER
            if roll < 0.85:
                return BuildingKind.BARRACKS
            return BuildingKind.FORT
        if gold >= 150:
            roll = self.rng.random()
            if roll < 0.35:
                return BuildingKind.BARRACKS
            if roll < 0.6:
                return BuildingKind.MINE
            if roll < 0.8:
                return BuildingKind.FARM
            return BuildingKind.FORT
        if gold >= 120:
            return BuildingKind.BARRACKS
        if gold >= 100:
            return BuildingKind.FORT
        if gold >= 80:
            return BuildingKind.WALL
        return None

    def aggressive(self, grid: Grid, player: Player,
                   human_ids: Set[str]) -> Optional[Action]:
        owned = grid.owned_by(player.id)
        sources = [t for t in owned if t.troops >= MIN_AGGRESSIVE_TROOPS]
        if not sources:
            return None

        human_cells = [t for t in grid
                       if t.owner in human_ids and not t.wall]
        if not human_cells:
            return self.expansion(grid, player)

        for source in sources:
            reach = grid.attack_range(source)
            in_range = [t for t in human_cells if source.distance_to(t) <= reach]
            if not in_range:
                continue
            in_range.sort(key=_defense_value)
            target = in_range[0]
            if source.troops > _defense_value(target) * ADVANTAGE_RATIO:
                return Attack(source.position, target.position)

        if player.gold >= building_cost(BuildingKind.TOWER):
            unbuilt = [t for t in owned if t.building is None]
            if unbuilt:
                return Build(unbuilt[0].position, BuildingKind.TOWER)
        return None

    def balanced(self, grid: Grid, player: Player, day: int,
                 threat: float) -> Optional[Action]:
        roll = self.rng.random()

        if roll < 0.45:
            action = self.building(grid, player)
            if action is not None:
                return action

        if roll < 0.3 + threat * 0.4:
            action = self.defensive(grid, player)
            if action is not None:
                return action

        if roll < 0.6 or day < 10:
            action = self.expansion(grid, player)
            if action is not None:
                return action

        action = self.building(grid, player)
        if action is not None:
            return action
        return self.expansion(grid, player)
