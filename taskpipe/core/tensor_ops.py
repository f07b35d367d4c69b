"""
Numeric helpers shared by pipeline post-processing.

All functions take and return numpy arrays. NaN inputs are not intercepted.
"""

from typing import List, Optional, Tuple

import numpy as np


def softmax(x: np.ndarray, axis: int = -1) -> np.ndarray:
    """Numerically stable softmax along `axis`"""
    x = np.asarray(x, dtype=np.float64)
    shifted = x - np.max(x, axis=axis, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=axis, keepdims=True)


def masked_softmax(x: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Softmax over positions where `mask` is True; masked positions get 0"""
    x = np.asarray(x, dtype=np.float64)
    mask = np.asarray(mask, dtype=bool)
    if not mask.any():
        return np.zeros_like(x)
    out = np.zeros_like(x)
    out[mask] = softmax(x[mask])
    return out


def sigmoid(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    return 1.0 / (1.0 + np.exp(-x))


def top_k(scores: np.ndarray, k: Optional[int] = None) -> List[Tuple[int, float]]:
    """
    Indices and values of the k largest scores, descending.

    Equal scores keep ascending index order.
    """
    scores = np.asarray(scores).reshape(-1)
    order = np.argsort(-scores, kind="stable")
    if k is not None:
        order = order[:max(k, 0)]
    return [(int(i), float(scores[i])) for i in order]


def mean_pool(hidden_states: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
    """
    Average token vectors over positions where attention_mask is 1.

    Args:
        hidden_states: (batch, seq, dim)
        attention_mask: (batch, seq)

    Returns:
        (batch, dim)
    """
    mask = np.asarray(attention_mask, dtype=np.float64)[..., None]
    summed = np.sum(np.asarray(hidden_states, dtype=np.float64) * mask, axis=1)
    counts = np.clip(np.sum(mask, axis=1), 1e-9, None)
    return summed / counts


def l2_normalize(x: np.ndarray, axis: int = -1, eps: float = 1e-12) -> np.ndarray:
    """Divide by the Euclidean norm; zero vectors stay zero"""
    x = np.asarray(x, dtype=np.float64)
    norm = np.linalg.norm(x, axis=axis, keepdims=True)
    return x / np.maximum(norm, eps)
