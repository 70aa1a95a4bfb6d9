"""
Configuration - Game rule constants and self-play training settings.

Both configs are plain dataclasses with sensible defaults. They can be
overridden from environment variables (CONQUEST_* prefix) or round-tripped
through a JSON file.
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional, Tuple
import os
import json


@dataclass
class RulesConfig:
    """Tunable game rules."""
    # Combat. Attack paths have used 0.5, 0.7 and 0.8 of the source
    # troops; 0.5 is canonical.
    attack_fraction: float = 0.5
    move_fraction: float = 0.8
    defend_bonus: int = 5

    # Economy
    growth_interval: float = 3.0      # Simulated seconds between growth passes
    day_length: float = 30.0          # Simulated seconds per game day
    base_gold: int = 10
    gold_per_territory: float = 0.5
    farm_bonus_rate: float = 0.01     # Per farm, per owned territory

    # Events
    boom_multiplier: float = 2.0
    shortage_multiplier: float = 0.5
    parade_defense_multiplier: float = 1.5

    # Setup
    starting_gold: int = 500
    starting_troops: int = 100
    start_radius: float = 2.0
    start_cell_troops: int = 10

    # Legal-action threshold for attack sources
    min_attack_troops: int = 5

    @classmethod
    def from_env(cls) -> 'RulesConfig':
        """Load from environment variables"""
        return cls(
            attack_fraction=float(os.getenv('CONQUEST_ATTACK_FRACTION', 0.5)),
            move_fraction=float(os.getenv('CONQUEST_MOVE_FRACTION', 0.8)),
            growth_interval=float(os.getenv('CONQUEST_GROWTH_INTERVAL', 3.0)),
            starting_gold=int(os.getenv('CONQUEST_STARTING_GOLD', 500)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RulesConfig':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class TrainingConfig:
    """Self-play training settings."""
    map_width: int = 20
    map_height: int = 15
    num_players: int = 3
    max_days: int = 200
    max_episodes: int = 10000

    # Q-learning
    batch_size: int = 32
    gamma: float = 0.95
    epsilon_start: float = 1.0
    epsilon_min: float = 0.1
    epsilon_decay: float = 0.995
    learning_rate: float = 0.001
    replay_capacity: int = 10000
    target_update_every: int = 10      # Batches between target syncs
    train_every_episodes: int = 5
    hidden_sizes: Tuple[int, ...] = (128, 128, 64)

    # Pacing
    simulation_speed: float = 1.0
    episode_delay: float = 1.0         # Seconds, divided by simulation_speed

    # Bookkeeping
    metrics_window: int = 1000
    model_key: str = "conquest-neural-model"
    weights_dir: str = "checkpoints"
    seed: Optional[int] = None

    @classmethod
    def from_env(cls) -> 'TrainingConfig':
        """Load from environment variables"""
        seed = os.getenv('CONQUEST_SEED')
        return cls(
            map_width=int(os.getenv('CONQUEST_MAP_WIDTH', 20)),
            map_height=int(os.getenv('CONQUEST_MAP_HEIGHT', 15)),
            max_days=int(os.getenv('CONQUEST_MAX_DAYS', 200)),
            max_episodes=int(os.getenv('CONQUEST_MAX_EPISODES', 10000)),
            simulation_speed=float(os.getenv('CONQUEST_SPEED', 1.0)),
            weights_dir=os.getenv('CONQUEST_WEIGHTS_DIR', 'checkpoints'),
            seed=int(seed) if seed else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['hidden_sizes'] = list(self.hidden_sizes)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingConfig':
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if 'hidden_sizes' in kwargs:
            kwargs['hidden_sizes'] = tuple(kwargs['hidden_sizes'])
        return cls(**kwargs)

    def save(self, filepath: str):
        """Save configuration to file"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'TrainingConfig':
        """Load configuration from file"""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
