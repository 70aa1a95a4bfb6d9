"""
Combat & Economy Resolver - Applies actions and periodic growth to a grid.

Handles:
- Attack resolution (fort defense multiplier, capture, failed-attack losses)
- Defend reinforcement
- Building construction (including walls on empty land)
- Troop moves between owned territories
- Periodic troop and gold growth

Actions mutate the grid in place. Illegal actions (out of range, not owned,
unaffordable, already built, attacking a wall, unknown coordinates) are
rejected by returning False with the grid and player untouched; they come up
routinely when an agent proposes against a grid that just changed, so they
are not exceptions.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from conquest.actions import Action, Attack, Build, Defend, Move
from conquest.buildings import Building, BuildingKind, BUILDING_CATALOG
from conquest.config import RulesConfig
from conquest.events import EventKind, EventSchedule
from conquest.grid import Grid, Player, Territory

logger = logging.getLogger(__name__)


@dataclass
class GrowthReport:
    """What one growth pass gave a player."""
    player_id: str
    territories: int
    troop_growth: int
    gold_growth: int


class GrowthClock:
    """
    Gates growth to at most one pass per interval.

    However many ticks land inside an interval, due() answers True once;
    the interval restarts from the time it fired.
    """

    def __init__(self, interval: float, start: float = 0.0):
        self.interval = interval
        self.last = start

    def due(self, now: float) -> bool:
        if now - self.last >= self.interval:
            self.last = now
            return True
        return False

    def reset(self, now: float = 0.0):
        self.last = now


class Resolver:
    """Resolves actions and growth against a grid under a set of rules."""

    def __init__(self, config: Optional[RulesConfig] = None,
                 events: Optional[EventSchedule] = None,
                 human_ids: Iterable[str] = ()):
        self.config = config or RulesConfig()
        self.events = events
        self.human_ids: Set[str] = set(human_ids)

    # ---- Combat helpers -------------------------------------------------

    def attack_force(self, troops: int) -> int:
        return int(math.floor(troops * self.config.attack_fraction))

    def move_amount(self, troops: int) -> int:
        return int(math.floor(troops * self.config.move_fraction))

    def effective_defense(self, target: Territory) -> float:
        """Defending strength: troops times (1 + fort level)."""
        fort_level = target.fort_level
        defense = target.troops * (1 + fort_level)
        if (fort_level > 0 and self.events is not None
                and self.events.is_active(EventKind.MILITARY_PARADE)
                and target.owner in self.human_ids):
            defense *= self.config.parade_defense_multiplier
        return defense

    # ---- Action dispatch ------------------------------------------------

    def apply(self, grid: Grid, player: Player, action: Action) -> bool:
        """Apply one action in place. Returns False when it was rejected."""
        if isinstance(action, Attack):
            return self._attack(grid, player, action)
        if isinstance(action, Defend):
            return self._defend(grid, player, action)
        if isinstance(action, Build):
            return self._build(grid, player, action)
        if isinstance(action, Move):
            return self._move(grid, player, action)
        raise TypeError(f"Unknown action: {action!r}")

    def _reject(self, player: Player, action: Action, reason: str) -> bool:
        logger.debug(f"Rejected {action} for {player.id}: {reason}")
        return False

    def _lookup_pair(self, grid: Grid, source_pos, target_pos
                     ) -> Tuple[Optional[Territory], Optional[Territory]]:
        return grid.at(source_pos), grid.at(target_pos)

    def _attack(self, grid: Grid, player: Player, action: Attack) -> bool:
        source, target = self._lookup_pair(grid, action.source, action.target)
        if source is None or target is None:
            return self._reject(player, action, "unknown territory")
        if not source.is_owned_by(player.id):
            return self._reject(player, action, "source not owned")
        if target.wall:
            return self._reject(player, action, "target is a wall")
        if target.is_water:
            return self._reject(player, action, "target is water")
        if target.owner == player.id:
            return self._reject(player, action, "target already owned")
        if not grid.in_range(source, target):
            return self._reject(player, action, "target out of range")

        force = self.attack_force(source.troops)
        if force < 1:
            return self._reject(player, action, "no troops to send")

        fort_level = target.fort_level
        source.troops -= force

        if force > self.effective_defense(target):
            target.owner = player.id
            target.troops = force - target.troops
            target.building = None
        else:
            losses = force // (1 + fort_level)
            target.troops = max(0, target.troops - losses)
        return True

    def _defend(self, grid: Grid, player: Player, action: Defend) -> bool:
        target = grid.at(action.target)
        if target is None:
            return self._reject(player, action, "unknown territory")
        if not target.is_owned_by(player.id):
            return self._reject(player, action, "target not owned")
        target.troops += self.config.defend_bonus
        return True

    def _build(self, grid: Grid, player: Player, action: Build) -> bool:
        target = grid.at(action.target)
        if target is None:
            return self._reject(player, action, "unknown territory")
        cost = BUILDING_CATALOG[action.kind].cost
        if player.gold < cost:
            return self._reject(player, action, "insufficient gold")

        if action.kind == BuildingKind.WALL:
            if target.owner is not None or target.wall or target.is_water:
                return self._reject(player, action, "walls need empty land")
            target.wall = True
            target.troops = 0
            target.building = None
            # Ownership on a wall is cosmetic (colour only)
            target.owner = player.id
        else:
            if not target.is_owned_by(player.id):
                return self._reject(player, action, "target not owned")
            if target.building is not None:
                return self._reject(player, action, "already has a building")
            target.building = Building(action.kind, level=1)

        player.gold -= cost
        return True

    def _move(self, grid: Grid, player: Player, action: Move) -> bool:
        source, target = self._lookup_pair(grid, action.source, action.target)
        if source is None or target is None:
            return self._reject(player, action, "unknown territory")
        if not source.is_owned_by(player.id) or not target.is_owned_by(player.id):
            return self._reject(player, action, "both ends must be owned")
        if not grid.in_range(source, target):
            return self._reject(player, action, "target out of range")
        amount = self.move_amount(source.troops)
        if amount < 1:
            return self._reject(player, action, "no troops to move")
        source.troops -= amount
        target.troops += amount
        return True

    # ---- Economy --------------------------------------------------------

    def troop_multiplier(self, player: Player) -> float:
        mult = 1.0
        if self.events is None:
            return mult
        if self.events.is_active(EventKind.RESOURCE_BOOM):
            mult *= self.config.boom_multiplier
        if (self.events.is_active(EventKind.SUPPLY_SHORTAGE)
                and not player.is_human):
            mult *= self.config.shortage_multiplier
        return mult

    def compute_growth(self, grid: Grid, player: Player) -> GrowthReport:
        """Troop and gold growth a player would receive right now."""
        owned = grid.owned_by(player.id)
        count = len(owned)

        base_growth = 0
        farms = 0
        gold_bonus = 0
        for territory in owned:
            if territory.building is None:
                continue
            stats = territory.building.stats
            base_growth += stats.troop_bonus
            gold_bonus += stats.gold_bonus
            if territory.building.kind == BuildingKind.FARM:
                farms += 1

        farm_bonus = farms * self.config.farm_bonus_rate * count
        troop_growth = int(math.floor(
            base_growth * (1 + farm_bonus) * self.troop_multiplier(player)
        ))
        gold_growth = int(math.floor(
            self.config.base_gold
            + self.config.gold_per_territory * count
            + gold_bonus
        ))
        return GrowthReport(player.id, count, troop_growth, gold_growth)

    def apply_growth(self, grid: Grid,
                     players: Iterable[Player]) -> List[GrowthReport]:
        """
        One growth pass for every player. Callers gate this with a
        GrowthClock so it never runs more than once per interval.
        """
        reports = []
        for player in players:
            report = self.compute_growth(grid, player)
            player.territory = report.territories
            player.troops += report.troop_growth
            player.gold += report.gold_growth

            # Barracks put fresh troops on the map
            for territory in grid.owned_by(player.id):
                if territory.has_building(BuildingKind.BARRACKS):
                    territory.troops += 1 + territory.building.level
            reports.append(report)
        return reports
