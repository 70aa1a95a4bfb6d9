"""
DQN Agent - Epsilon-greedy Q-learning with experience replay and a target net.

Implements:
- Epsilon-greedy selection over the legal actions only
- Shaped reward from before/after player snapshots
- Bellman batch updates against a lagging target network
- Weight persistence through a WeightStore
"""

import copy
import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from conquest.actions import Action
from conquest.config import TrainingConfig
from conquest.grid import Grid, Player
from conquest_ai.approximator import (
    ApproximatorError, MLPApproximator, ValueApproximator, WeightStore,
)
from conquest_ai.features import action_to_index
from conquest_ai.replay import ReplayBuffer, Transition

logger = logging.getLogger(__name__)

# Reward weights
TERRITORY_WEIGHT = 10.0
GOLD_WEIGHT = 0.1
TROOP_WEIGHT = 0.5
BUILDING_WEIGHT = 5.0
WIN_BONUS = 100.0


@dataclass(frozen=True)
class PlayerSnapshot:
    """What the reward looks at, captured before and after a step."""
    territories: int
    gold: int
    troops: int
    buildings: int

    @classmethod
    def capture(cls, grid: Grid, player: Player) -> 'PlayerSnapshot':
        owned = grid.owned_by(player.id)
        return cls(
            territories=len(owned),
            gold=player.gold,
            troops=sum(t.troops for t in owned),
            buildings=sum(1 for t in owned if t.building is not None),
        )


def compute_reward(before: PlayerSnapshot, after: PlayerSnapshot) -> float:
    return (TERRITORY_WEIGHT * (after.territories - before.territories)
            + GOLD_WEIGHT * (after.gold - before.gold)
            + TROOP_WEIGHT * (after.troops - before.troops)
            + BUILDING_WEIGHT * (after.buildings - before.buildings))


class DQNAgent:
    """
    Q-learning agent over the fixed action encoding.

    The live network picks actions and is fitted every batch; the target
    network supplies the bootstrap values and is synced from the live one
    every `target_update_every` batches.
    """

    def __init__(self, input_size: int, output_size: int,
                 config: Optional[TrainingConfig] = None,
                 approximator: Optional[ValueApproximator] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or TrainingConfig()
        self.input_size = input_size
        self.output_size = output_size
        self.rng = rng or random.Random(self.config.seed)

        self.model = approximator or MLPApproximator(
            input_size, output_size,
            hidden_sizes=self.config.hidden_sizes,
            lr=self.config.learning_rate,
            seed=self.config.seed,
        )
        if (self.model.input_size != input_size
                or self.model.output_size != output_size):
            raise ApproximatorError(
                f"Approximator is {self.model.input_size}->{self.model.output_size}, "
                f"agent needs {input_size}->{output_size}"
            )
        self.target_model = copy.deepcopy(self.model)

        self.memory = ReplayBuffer(
            self.config.replay_capacity,
            rng=np.random.default_rng(self.config.seed),
        )
        self.epsilon = self.config.epsilon_start
        self.train_steps = 0
        self.last_loss: Optional[float] = None

    # ---- Acting ---------------------------------------------------------

    def choose_action(self, state: np.ndarray, grid: Grid,
                      legal: List[Action]) -> Optional[Tuple[Action, int]]:
        """
        Epsilon-greedy pick among legal actions.

        Returns (action, output index), or None when there is nothing legal.
        Ties in the greedy branch go to the earliest legal action.
        """
        if not legal:
            return None

        if self.rng.random() < self.epsilon:
            action = self.rng.choice(legal)
            return action, action_to_index(grid, action)

        scores = self.model.predict(state)[0]
        indices = [action_to_index(grid, a) for a in legal]
        best = max(range(len(legal)), key=lambda i: scores[indices[i]])
        return legal[best], indices[best]

    def greedy_action(self, state: np.ndarray, grid: Grid,
                      legal: List[Action]) -> Optional[Tuple[Action, int]]:
        """Exploitation only, for evaluation games."""
        saved, self.epsilon = self.epsilon, 0.0
        try:
            return self.choose_action(state, grid, legal)
        finally:
            self.epsilon = saved

    # ---- Learning -------------------------------------------------------

    def add_experience(self, state: np.ndarray, action: int, reward: float,
                       next_state: np.ndarray, done: bool):
        self.memory.add(Transition(state, action, reward, next_state, done))

    def train_on_batch(self) -> Optional[float]:
        """
        One Bellman update on a sampled batch.

        Does nothing (returns None) while the buffer holds fewer than one
        batch. Decays epsilon and periodically syncs the target network.
        """
        batch_size = self.config.batch_size
        if len(self.memory) < batch_size:
            return None

        batch = self.memory.sample(batch_size)
        states = np.stack([t.state for t in batch])
        next_states = np.stack([t.next_state for t in batch])

        next_q = self.target_model.predict(next_states)
        targets = self.model.predict(states).copy()

        for i, t in enumerate(batch):
            if t.done:
                value = t.reward
            else:
                value = t.reward + self.config.gamma * float(np.max(next_q[i]))
            targets[i, t.action] = value

        loss = self.model.fit(states, targets)
        self.last_loss = loss

        self.epsilon = max(self.config.epsilon_min,
                           self.epsilon * self.config.epsilon_decay)
        self.train_steps += 1
        if self.train_steps % self.config.target_update_every == 0:
            self.update_target()
        return loss

    def update_target(self):
        self.target_model.set_weights(self.model.get_weights())
        logger.debug(f"Target network synced at step {self.train_steps}")

    # ---- Persistence ----------------------------------------------------

    def save(self, store: WeightStore, key: Optional[str] = None):
        key = key or self.config.model_key
        self.model.save(key, store)
        store.save(f"{key}.meta", {
            "epsilon": np.array(self.epsilon),
            "train_steps": np.array(self.train_steps),
        })

    def load(self, store: WeightStore, key: Optional[str] = None):
        key = key or self.config.model_key
        self.model.load(key, store)
        self.update_target()
        if store.exists(f"{key}.meta"):
            meta = store.load(f"{key}.meta")
            self.epsilon = float(meta["epsilon"])
            self.train_steps = int(meta["train_steps"])
        logger.info(f"Loaded '{key}' (epsilon={self.epsilon:.3f})")

    def get_stats(self) -> dict:
        return {
            "epsilon": self.epsilon,
            "train_steps": self.train_steps,
            "memory": len(self.memory),
            "last_loss": self.last_loss,
        }
