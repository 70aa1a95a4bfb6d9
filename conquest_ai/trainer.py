"""
Self-Play Trainer - Runs training episodes of the DQN agent against scripted AIs.

Each episode:
1. Fresh random map, the learning agent plus rule-based opponents
2. Per day: agent acts, opponents act, growth pass, game-over check
3. Reward from before/after snapshots, transition stored in replay memory
4. Episode metrics recorded (bounded history)

A batch update runs every `train_every_episodes` episodes. Between episodes
the loop yields with asyncio.sleep(episode_delay / speed), which is also
where a host can interleave other work. stop() is honoured at the top of
every episode and every day.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

import numpy as np

from conquest.config import RulesConfig, TrainingConfig
from conquest.grid import Grid, Personality, Player
from conquest.rules import GrowthClock, Resolver
from conquest_ai.agent import DQNAgent, PlayerSnapshot, WIN_BONUS, compute_reward
from conquest_ai.approximator import ApproximatorError, WeightStore
from conquest_ai.features import StateFeaturizer, legal_actions
from conquest_ai.strategy import StrategySelector

logger = logging.getLogger(__name__)


AGENT_ID = "neural"
PLAYER_COLORS = ["#e63946", "#457b9d", "#2a9d8f", "#f4a261"]
START_SEATS = [(0.2, 0.2), (0.8, 0.2), (0.2, 0.8), (0.8, 0.8)]
MIN_SPEED = 0.1
MAX_SPEED = 10.0


@dataclass
class EpisodeMetrics:
    episode: int
    reward: float
    territories: int
    gold: int
    troops: int
    buildings: int
    won: bool
    days: int

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Episode:
    """Everything one training game needs."""
    grid: Grid
    agent_player: Player
    opponents: List[Player]
    resolver: Resolver
    clock: GrowthClock

    @property
    def players(self) -> List[Player]:
        return [self.agent_player] + self.opponents


def determine_winner(grid: Grid, players: List[Player]) -> Optional[str]:
    """Most territories wins; the earlier seat wins ties. None if nobody holds land."""
    counts = grid.territory_counts()
    winner, best = None, 0
    for player in players:
        n = counts.get(player.id, 0)
        if n > best:
            winner, best = player.id, n
    return winner


class SelfPlayTrainer:
    """Owns the agent, the episode loop and the training metrics."""

    def __init__(self, config: Optional[TrainingConfig] = None,
                 rules: Optional[RulesConfig] = None,
                 agent: Optional[DQNAgent] = None,
                 store: Optional[WeightStore] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or TrainingConfig()
        self.rules = rules or RulesConfig()
        # Opponents draw from their own stream, apart from the agent's
        opponent_seed = None if self.config.seed is None else self.config.seed + 1
        self.rng = rng or random.Random(opponent_seed)

        num_cells = self.config.map_width * self.config.map_height
        self.featurizer = StateFeaturizer(num_cells)
        self.agent = agent or DQNAgent(
            self.featurizer.input_size, self.featurizer.output_size,
            config=self.config,
        )
        self.store = store
        self.selector = StrategySelector(self.rng)

        self.metrics: deque = deque(maxlen=self.config.metrics_window)
        self.episode = 0
        self.running = False
        self._stop_requested = False
        self.speed = 1.0
        self.set_speed(self.config.simulation_speed)

    # ---- Control --------------------------------------------------------

    def set_speed(self, speed: float):
        self.speed = max(MIN_SPEED, min(MAX_SPEED, speed))

    def stop(self):
        """Request a stop; takes effect at the next episode or day boundary."""
        self._stop_requested = True

    # ---- Episodes -------------------------------------------------------

    def new_episode(self) -> Episode:
        cfg = self.config
        grid = Grid.create_random(cfg.map_width, cfg.map_height, rng=self.rng)

        agent_player = Player(
            id=AGENT_ID, name="Neural AI", color=PLAYER_COLORS[0],
            gold=self.rules.starting_gold, troops=self.rules.starting_troops,
        )
        opponents = []
        for i in range(1, cfg.num_players):
            personality = (Personality.AGGRESSIVE if i % 2 == 0
                           else Personality.DEFENSIVE)
            opponents.append(Player(
                id=f"ai{i}", name=f"AI Player {i}",
                color=PLAYER_COLORS[i % len(PLAYER_COLORS)],
                gold=self.rules.starting_gold,
                troops=self.rules.starting_troops,
                personality=personality,
            ))

        for i, player in enumerate([agent_player] + opponents):
            fx, fy = START_SEATS[i % len(START_SEATS)]
            grid.claim_start(
                player, int(cfg.map_width * fx), int(cfg.map_height * fy),
                radius=self.rules.start_radius,
                troops=self.rules.start_cell_troops,
            )

        return Episode(
            grid=grid,
            agent_player=agent_player,
            opponents=opponents,
            resolver=Resolver(self.rules),
            clock=GrowthClock(1.0),
        )

    def run_episode(self) -> Optional[EpisodeMetrics]:
        """
        Play one full game. Returns its metrics, or None when a stop was
        requested before the game ended.
        """
        if self._stop_requested:
            return None

        ep = self.new_episode()
        grid, me = ep.grid, ep.agent_player
        total_reward = 0.0
        day = 0
        game_over = False

        while not game_over and day < self.config.max_days:
            if self._stop_requested:
                return None
            day += 1

            before = PlayerSnapshot.capture(grid, me)
            state = self.featurizer.encode(grid, me)
            choice = self.agent.choose_action(state, grid,
                                              legal_actions(grid, me))
            if choice is not None:
                ep.resolver.apply(grid, me, choice[0])

            # The learning agent sits in the seat aggressive AIs hunt
            for opponent in ep.opponents:
                action = self.selector.select(grid, opponent, day,
                                              human_ids=[AGENT_ID])
                if action is not None:
                    ep.resolver.apply(grid, opponent, action)

            if ep.clock.due(float(day)):
                ep.resolver.apply_growth(grid, ep.players)

            alive = [pid for pid, n in grid.territory_counts().items() if n > 0]
            game_over = len(alive) <= 1 or day >= self.config.max_days

            reward = compute_reward(before, PlayerSnapshot.capture(grid, me))
            if game_over and determine_winner(grid, ep.players) == me.id:
                reward += WIN_BONUS
            total_reward += reward

            if choice is not None:
                next_state = self.featurizer.encode(grid, me)
                self.agent.add_experience(state, choice[1], reward,
                                          next_state, game_over)

        self.episode += 1
        final = PlayerSnapshot.capture(grid, me)
        metrics = EpisodeMetrics(
            episode=self.episode,
            reward=total_reward,
            territories=final.territories,
            gold=final.gold,
            troops=final.troops,
            buildings=final.buildings,
            won=determine_winner(grid, ep.players) == me.id,
            days=day,
        )
        self.metrics.append(metrics)
        return metrics

    async def run(self, max_episodes: Optional[int] = None) -> List[EpisodeMetrics]:
        """
        Main training loop. Returns the metrics of the episodes it ran.

        An ApproximatorError stops training and propagates to the caller
        without saving, so the store keeps its last good checkpoint.
        """
        limit = max_episodes or self.config.max_episodes
        self.running = True
        self._stop_requested = False
        completed: List[EpisodeMetrics] = []
        failed = False

        print(f"Starting self-play training: up to {limit} episodes, "
              f"{self.config.map_width}x{self.config.map_height} map, "
              f"{self.config.num_players} players")

        try:
            while not self._stop_requested and len(completed) < limit:
                metrics = self.run_episode()
                if metrics is None:
                    break
                completed.append(metrics)

                if self.episode % self.config.train_every_episodes == 0:
                    loss = self.agent.train_on_batch()
                    if loss is not None:
                        self._log_progress(loss)

                await asyncio.sleep(self.config.episode_delay / self.speed)
        except ApproximatorError as e:
            logger.error(f"Training stopped at episode {self.episode}: {e}")
            failed = True
            raise
        finally:
            self.running = False
            if self.store is not None and not failed:
                self.agent.save(self.store)

        logger.info(f"Simulation complete after {self.episode} episodes")
        return completed

    # ---- Reporting ------------------------------------------------------

    def _log_progress(self, loss: float):
        recent = list(self.metrics)[-100:]
        avg_reward = np.mean([m.reward for m in recent]) if recent else 0
        win_rate = np.mean([m.won for m in recent]) if recent else 0
        print(f"Episode {self.episode} | "
              f"Avg Reward: {avg_reward:.2f} | "
              f"Win Rate: {win_rate:.1%} | "
              f"Epsilon: {self.agent.epsilon:.3f} | "
              f"Loss: {loss:.4f}")

    def get_status(self) -> Dict:
        recent = list(self.metrics)[-100:]
        return {
            "running": self.running,
            "episode": self.episode,
            "speed": self.speed,
            "epsilon": self.agent.epsilon,
            "memory": len(self.agent.memory),
            "win_rate": float(np.mean([m.won for m in recent])) if recent else 0.0,
            "avg_reward": float(np.mean([m.reward for m in recent])) if recent else 0.0,
        }
