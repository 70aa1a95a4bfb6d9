"""
Value Approximator - Maps state vectors to per-action scores.

The learning loop only depends on the narrow ValueApproximator interface:
  predict(states) -> scores
  fit(states, targets) -> loss
  get_weights() / set_weights()
  save(key, store) / load(key, store)

MLPApproximator is the default implementation: a fully connected ReLU
network in pure NumPy, trained with Adam on mean squared error. Weights are
persisted through a WeightStore, which maps string keys to .npz files.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class ApproximatorError(RuntimeError):
    """Shape mismatch, non-finite loss or unusable weights. Fatal for training."""


class WeightStore:
    """Opaque key-value storage for weight dicts, one .npz per key."""

    def __init__(self, root: str = "checkpoints"):
        self.root = root
        os.makedirs(root, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.root, f"{safe}.npz")

    def save(self, key: str, arrays: Dict[str, np.ndarray]):
        np.savez(self._path(key), **arrays)
        logger.info(f"Saved weights '{key}' to {self._path(key)}")

    def load(self, key: str) -> Dict[str, np.ndarray]:
        path = self._path(key)
        if not os.path.exists(path):
            raise KeyError(key)
        with np.load(path) as data:
            return {name: data[name] for name in data.files}

    def exists(self, key: str) -> bool:
        return os.path.exists(self._path(key))

    def keys(self) -> List[str]:
        return sorted(f[:-4] for f in os.listdir(self.root) if f.endswith(".npz"))


class ValueApproximator(ABC):
    """Interface the Q-learning agent trains against."""

    input_size: int
    output_size: int

    @abstractmethod
    def predict(self, states: np.ndarray) -> np.ndarray:
        """(batch, input_size) -> (batch, output_size)"""

    @abstractmethod
    def fit(self, states: np.ndarray, targets: np.ndarray) -> float:
        """One gradient step towards targets. Returns the loss."""

    @abstractmethod
    def get_weights(self) -> Dict[str, np.ndarray]:
        pass

    @abstractmethod
    def set_weights(self, weights: Dict[str, np.ndarray]):
        pass

    def save(self, key: str, store: WeightStore):
        store.save(key, self.get_weights())

    def load(self, key: str, store: WeightStore):
        self.set_weights(store.load(key))


class MLPApproximator(ValueApproximator):
    """
    Fully connected ReLU network in pure NumPy.

    Hidden layers use ReLU, the output layer is linear. Trained with Adam
    on mean squared error over the whole output vector.
    """

    def __init__(self, input_size: int, output_size: int,
                 hidden_sizes: Sequence[int] = (128, 128, 64),
                 lr: float = 0.001, seed: Optional[int] = None):
        self.input_size = input_size
        self.output_size = output_size
        self.hidden_sizes = tuple(hidden_sizes)
        self.lr = lr
        self.beta1 = 0.9
        self.beta2 = 0.999
        self.eps = 1e-8
        self.rng = np.random.default_rng(seed)
        self._init_weights()

    def _init_weights(self):
        """He initialization for every layer."""
        sizes = [self.input_size, *self.hidden_sizes, self.output_size]
        self.layers = len(sizes) - 1
        self.params: Dict[str, np.ndarray] = {}
        for i in range(self.layers):
            fan_in, fan_out = sizes[i], sizes[i + 1]
            scale = np.sqrt(2.0 / fan_in)
            self.params[f"w{i}"] = (
                self.rng.standard_normal((fan_in, fan_out)) * scale
            ).astype(np.float32)
            self.params[f"b{i}"] = np.zeros(fan_out, dtype=np.float32)

        # Adam moments
        self._m = {k: np.zeros_like(v) for k, v in self.params.items()}
        self._v = {k: np.zeros_like(v) for k, v in self.params.items()}
        self._t = 0

    def _check_states(self, states: np.ndarray) -> np.ndarray:
        states = np.asarray(states, dtype=np.float32)
        if states.ndim == 1:
            states = states.reshape(1, -1)
        if states.ndim != 2 or states.shape[1] != self.input_size:
            raise ApproximatorError(
                f"Expected states of shape (batch, {self.input_size}), "
                f"got {states.shape}"
            )
        return states

    def _forward(self, x: np.ndarray):
        """Returns the output and the per-layer activations for backprop."""
        activations = [x]
        for i in range(self.layers):
            x = x @ self.params[f"w{i}"] + self.params[f"b{i}"]
            if i < self.layers - 1:
                x = np.maximum(x, 0)  # ReLU
            activations.append(x)
        return x, activations

    def predict(self, states: np.ndarray) -> np.ndarray:
        out, _ = self._forward(self._check_states(states))
        return out

    def fit(self, states: np.ndarray, targets: np.ndarray) -> float:
        states = self._check_states(states)
        targets = np.asarray(targets, dtype=np.float32)
        if targets.shape != (states.shape[0], self.output_size):
            raise ApproximatorError(
                f"Expected targets of shape ({states.shape[0]}, "
                f"{self.output_size}), got {targets.shape}"
            )

        out, activations = self._forward(states)
        diff = out - targets
        loss = float(np.mean(diff ** 2))
        if not np.isfinite(loss):
            raise ApproximatorError(f"Non-finite loss: {loss}")

        # Backprop of mean squared error
        grad = 2.0 * diff / diff.size
        grads: Dict[str, np.ndarray] = {}
        for i in reversed(range(self.layers)):
            grads[f"w{i}"] = activations[i].T @ grad
            grads[f"b{i}"] = grad.sum(axis=0)
            if i > 0:
                grad = (grad @ self.params[f"w{i}"].T) * (activations[i] > 0)

        self._adam_step(grads)
        return loss

    def _adam_step(self, grads: Dict[str, np.ndarray]):
        self._t += 1
        lr_t = self.lr * np.sqrt(1 - self.beta2 ** self._t) / (1 - self.beta1 ** self._t)
        for name, g in grads.items():
            self._m[name] = self.beta1 * self._m[name] + (1 - self.beta1) * g
            self._v[name] = self.beta2 * self._v[name] + (1 - self.beta2) * g * g
            step = lr_t * self._m[name] / (np.sqrt(self._v[name]) + self.eps)
            self.params[name] = (self.params[name] - step).astype(np.float32)

    def get_weights(self) -> Dict[str, np.ndarray]:
        return {name: value.copy() for name, value in self.params.items()}

    def set_weights(self, weights: Dict[str, np.ndarray]):
        for name, current in self.params.items():
            if name not in weights:
                raise ApproximatorError(f"Missing weight '{name}'")
            if weights[name].shape != current.shape:
                raise ApproximatorError(
                    f"Weight '{name}' has shape {weights[name].shape}, "
                    f"expected {current.shape}"
                )
        self.params = {name: np.asarray(weights[name], dtype=np.float32).copy()
                       for name in self.params}
