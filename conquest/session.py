"""
Game Session - The interactive game as one explicitly constructed object.

A session owns the grid, the players, the event schedule and the clocks.
The host drives it by calling advance() with elapsed simulated seconds and
forwards tile clicks to click(). It keeps no hidden globals; two sessions
never share state.

Flow:
- AI players are settled at construction time
- The human's first click claims a start area with a free barracks
- Later clicks select an own cell, then attack or move from it
- In build mode a click places the chosen building
- Every growth interval: growth pass, one AI decision each, game-over check
- An optional NeuralPlayer plays the first AI seat
"""

import logging
import math
import random
from typing import Dict, List, Optional

from conquest.actions import Action, Attack, Build, Move, Position, describe
from conquest.buildings import BuildingKind, BUILDING_CATALOG
from conquest.config import RulesConfig
from conquest.events import EventSchedule
from conquest.grid import Grid, Player
from conquest.renderer import snapshot_cells
from conquest.rules import GrowthClock, Resolver
from conquest_ai.player import NeuralPlayer
from conquest_ai.strategy import StrategySelector, select_personality

logger = logging.getLogger(__name__)


HUMAN_ID = "player1"
HUMAN_COLOR = "#e63946"

AI_SEATS = [
    ("ai1", "AI Blue", "#457b9d", (0.2, 0.2)),
    ("ai2", "AI Green", "#2a9d8f", (0.8, 0.2)),
    ("ai3", "AI Orange", "#f4a261", (0.5, 0.8)),
]


class GameSession:
    """
    One interactive game: a human against AI players.

    AI seats are rule-based. When a NeuralPlayer is given it takes the
    first seat and decides with the trained network instead.
    """

    def __init__(self, player_name: str = "Player",
                 grid: Optional[Grid] = None,
                 rules: Optional[RulesConfig] = None,
                 num_ai: int = 3,
                 rng: Optional[random.Random] = None,
                 neural_player: Optional[NeuralPlayer] = None):
        self.rules = rules or RulesConfig()
        self.rng = rng or random.Random()
        self.grid = grid or Grid.create_random(rng=self.rng)

        self.human = Player(
            id=HUMAN_ID, name=player_name, color=HUMAN_COLOR,
            gold=self.rules.starting_gold, troops=self.rules.starting_troops,
            is_human=True,
        )
        self.players: Dict[str, Player] = {self.human.id: self.human}

        self.events = EventSchedule(rng=self.rng)
        self.resolver = Resolver(self.rules, self.events, human_ids=[HUMAN_ID])
        self.selector = StrategySelector(self.rng)
        self.clock = GrowthClock(self.rules.growth_interval)
        self.neural_player = neural_player
        self.neural_id: Optional[str] = None

        self.game_time = 0.0
        self.day = 1
        self.has_claimed = False
        self.selected: Optional[Position] = None
        self.build_mode: Optional[BuildingKind] = None
        self.game_over = False
        self.winner: Optional[str] = None
        self.status = ""

        self._settle_ai(num_ai)
        self._set_status("Click on a territory to claim your starting point! "
                         "AI players have already settled.")

    # ---- Setup ----------------------------------------------------------

    def _settle_ai(self, num_ai: int):
        """Seat the AI players. A neural player takes the first seat."""
        w, h = self.grid.width, self.grid.height
        for i, (pid, name, color, (fx, fy)) in enumerate(AI_SEATS[:num_ai]):
            neural = i == 0 and self.neural_player is not None
            player = Player(
                id=pid, name="Neural AI" if neural else name, color=color,
                gold=self.rules.starting_gold,
                troops=self.rules.starting_troops,
                personality=None if neural else select_personality(self.rng),
            )
            self.players[pid] = player
            self.grid.claim_start(
                player, int(w * fx), int(h * fy),
                radius=self.rules.start_radius,
                troops=5 + self.rng.randint(0, 4),
            )
            if neural:
                self.neural_id = pid
                self.neural_player.initialize()
                logger.info(f"{player.name} settled")
            else:
                logger.info(f"{name} settled as {player.personality.value}")

    @property
    def ai_players(self) -> List[Player]:
        return [p for p in self.players.values() if not p.is_human]

    def _set_status(self, message: str):
        self.status = message
        logger.info(message)

    # ---- Clock ----------------------------------------------------------

    def advance(self, seconds: float):
        """Move simulated time forward; runs days, events and growth."""
        if self.game_over:
            return
        before = self.game_time
        self.game_time += seconds

        day_length = self.rules.day_length
        for _ in range(int(math.floor(self.game_time / day_length))
                       - int(math.floor(before / day_length))):
            self.day += 1
            message = self.events.on_new_day(self.day)
            if message:
                self._set_status(message)

        if self.has_claimed and self.clock.due(self.game_time):
            self.resolver.apply_growth(self.grid, self.players.values())
            self.run_ai_turns()
            self.check_game_over()

    def run_ai_turns(self):
        """One decision per AI player, applied immediately."""
        for player in self.ai_players:
            if player.id == self.neural_id:
                action = self.neural_player.decide(self.grid, player, self.day)
            else:
                action = self.selector.select(self.grid, player, self.day,
                                              human_ids=[HUMAN_ID])
            if action is None:
                continue
            target = self.grid.at(action.target)
            was_human = target is not None and target.owner == HUMAN_ID
            if (self.resolver.apply(self.grid, player, action)
                    and isinstance(action, Attack) and was_human
                    and target.owner == player.id):
                self._set_status(
                    f"{player.name} has captured your territory at "
                    f"({target.x}, {target.y})!"
                )

    # ---- Human input ----------------------------------------------------

    def claim_start(self, x: int, y: int) -> int:
        """Claim the human start area. Returns the number of cells claimed."""
        claimed = self.grid.claim_start(
            self.human, x, y,
            radius=self.rules.start_radius,
            troops=self.rules.start_cell_troops,
        )
        if claimed:
            self.has_claimed = True
            self.clock.reset(self.game_time)
            self._set_status(
                f"You've claimed {claimed} territories! Your starting "
                f"territory has a barracks to produce troops."
            )
        return claimed

    def enter_build_mode(self, kind: BuildingKind):
        self.build_mode = kind
        self.selected = None
        self._set_status(f"Building mode: {BUILDING_CATALOG[kind].name}")

    def cancel_build_mode(self):
        self.build_mode = None

    def click(self, x: int, y: int) -> bool:
        """
        Handle a click on tile (x, y). Returns True when the click changed
        the grid (claim, build, attack or move).
        """
        territory = self.grid.get(x, y)
        if territory is None or self.game_over:
            return False

        if not self.has_claimed:
            if territory.is_water or territory.wall:
                self._set_status("Pick a land territory to start on")
                return False
            return self.claim_start(x, y) > 0

        if self.build_mode is not None:
            return self._click_build(x, y)

        if self.selected is None:
            if territory.is_owned_by(HUMAN_ID):
                self.selected = (x, y)
                if territory.building is None:
                    self._set_status(f"Selected territory at ({x},{y}) "
                                     f"with {territory.troops} troops")
                else:
                    self._set_status(
                        f"Selected territory with "
                        f"{territory.building.stats.name} "
                        f"(Level {territory.building.level})"
                    )
            return False

        source = self.selected
        self.selected = None
        if source == (x, y):
            return False
        if territory.is_owned_by(HUMAN_ID):
            action: Action = Move(source, (x, y))
        else:
            action = Attack(source, (x, y))
        return self.apply_action(action)

    def _click_build(self, x: int, y: int) -> bool:
        kind = self.build_mode
        cost = BUILDING_CATALOG[kind].cost
        if self.human.gold < cost:
            self._set_status(f"Not enough gold to build. Need {cost} gold.")
            return False
        if self.apply_action(Build((x, y), kind)):
            self.build_mode = None
            return True
        return False

    def apply_action(self, action: Action) -> bool:
        """Apply an action for the human player and report the outcome."""
        target = self.grid.at(action.target)
        owner_before = target.owner if target is not None else None
        ok = self.resolver.apply(self.grid, self.human, action)
        if not ok:
            self._set_status(f"Cannot do that: {describe(action)}")
        elif isinstance(action, Attack):
            if target.owner == HUMAN_ID and owner_before != HUMAN_ID:
                self._set_status(f"Captured territory at ({target.x},{target.y})")
            else:
                self._set_status("Attack failed! Enemy has a strong defense.")
        else:
            self._set_status(describe(action))
        if ok:
            self.check_game_over()
        return ok

    # ---- End of game ----------------------------------------------------

    def check_game_over(self) -> bool:
        """Over once at most one player still holds real territory."""
        if self.game_over or not self.has_claimed:
            return self.game_over
        alive = [pid for pid, n in self.grid.territory_counts().items()
                 if n > 0 and pid in self.players]
        if len(alive) <= 1:
            self.game_over = True
            self.winner = alive[0] if alive else None
            name = self.players[self.winner].name if self.winner else "Nobody"
            self._set_status(f"Game over! {name} wins on day {self.day}.")
        return self.game_over

    def determine_winner(self) -> Optional[str]:
        """Player holding the most territories right now."""
        counts = self.grid.territory_counts()
        ranked = [(counts.get(pid, 0), pid) for pid in self.players]
        best = max(ranked, default=(0, None))
        return best[1] if best[0] > 0 else None

    # ---- Rendering ------------------------------------------------------

    def snapshot(self) -> List[dict]:
        """Read-only per-cell view for an external renderer."""
        return snapshot_cells(self.grid, self.players, self.selected)
