"""
Conquest AI - Scripted and learning players for the conquest game.

Architecture:
- Rule-based strategy selector keyed by personality
- State featurizer and legal-action enumerator
- Pure-NumPy value network behind a narrow approximator interface
- DQN agent with experience replay and a target network
- Self-play trainer with cooperative pause and cancellation
- Neural player that seats a trained model in a live game
"""

from conquest_ai.strategy import StrategySelector, calculate_threat_level
from conquest_ai.features import StateFeaturizer, legal_actions, action_to_index
from conquest_ai.approximator import (
    ValueApproximator, MLPApproximator, WeightStore, ApproximatorError,
)
from conquest_ai.replay import ReplayBuffer, Transition
from conquest_ai.agent import DQNAgent, PlayerSnapshot, compute_reward
from conquest_ai.trainer import SelfPlayTrainer, EpisodeMetrics
from conquest_ai.player import NeuralPlayer

__all__ = [
    "StrategySelector", "calculate_threat_level",
    "StateFeaturizer", "legal_actions", "action_to_index",
    "ValueApproximator", "MLPApproximator", "WeightStore", "ApproximatorError",
    "ReplayBuffer", "Transition",
    "DQNAgent", "PlayerSnapshot", "compute_reward",
    "SelfPlayTrainer", "EpisodeMetrics",
    "NeuralPlayer",
]
