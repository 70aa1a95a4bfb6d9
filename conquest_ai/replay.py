"""
Experience Replay - Bounded FIFO store of transitions for Q-learning.
"""

from collections import deque
from dataclasses import dataclass
from typing import List, Optional

import numpy as np


@dataclass
class Transition:
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    done: bool


class ReplayBuffer:
    """
    Holds the most recent `capacity` transitions.

    Inserting into a full buffer evicts the oldest transition. Sampling is
    uniform with replacement.
    """

    def __init__(self, capacity: int = 10000,
                 rng: Optional[np.random.Generator] = None):
        self.capacity = capacity
        self.buffer = deque(maxlen=capacity)
        self.rng = rng or np.random.default_rng()

    def add(self, transition: Transition):
        self.buffer.append(transition)

    def sample(self, batch_size: int) -> List[Transition]:
        idx = self.rng.integers(0, len(self.buffer), size=batch_size)
        return [self.buffer[i] for i in idx]

    def clear(self):
        self.buffer.clear()

    def __len__(self) -> int:
        return len(self.buffer)

    def __getitem__(self, i: int) -> Transition:
        return self.buffer[i]
