"""
Neural Player - Seats a trained DQN agent in a live game.

Loads the saved model by key when one exists, otherwise plays with a fresh
network. Decisions are greedy (no exploration) and never touch the replay
memory or the epsilon schedule.
"""

import logging
from typing import Optional

from conquest.actions import Action
from conquest.config import TrainingConfig
from conquest.grid import Grid, Player
from conquest_ai.agent import DQNAgent
from conquest_ai.approximator import ApproximatorError, WeightStore
from conquest_ai.features import StateFeaturizer, legal_actions

logger = logging.getLogger(__name__)


class NeuralPlayer:
    """Decision maker for a game seat, backed by a DQNAgent."""

    def __init__(self, config: Optional[TrainingConfig] = None,
                 store: Optional[WeightStore] = None,
                 agent: Optional[DQNAgent] = None):
        self.config = config or TrainingConfig()
        self.store = store
        self.featurizer = StateFeaturizer(
            self.config.map_width * self.config.map_height
        )
        self.agent = agent or DQNAgent(
            self.featurizer.input_size, self.featurizer.output_size,
            config=self.config,
        )
        self.loaded = False

    def initialize(self) -> bool:
        """
        Load the saved model under config.model_key.

        Returns True when weights were loaded. A missing or incompatible
        checkpoint leaves the fresh network in place.
        """
        key = self.config.model_key
        if self.store is None or not self.store.exists(key):
            logger.info(f"No saved model '{key}', playing with a new network")
            return False
        try:
            self.agent.load(self.store, key)
        except ApproximatorError as e:
            logger.warning(f"Saved model '{key}' is unusable ({e}), "
                           f"playing with a new network")
            return False
        self.loaded = True
        return True

    def decide(self, grid: Grid, player: Player, day: int) -> Optional[Action]:
        """Best legal action for the player, or None to pass."""
        legal = legal_actions(grid, player)
        if not legal:
            return None
        state = self.featurizer.encode(grid, player)
        choice = self.agent.greedy_action(state, grid, legal)
        logger.debug(f"{player.id} day {day}: {len(legal)} legal actions")
        return None if choice is None else choice[0]
