"""Matérn 5/2 covariance kernel."""

import math
from typing import NamedTuple

import numpy as np
import torch

SQRT5 = math.sqrt(5)


class KernelParams(NamedTuple):
    """Kernel hyperparameters: signal std, length scale, noise std."""

    sigma_f: float
    length_scale: float
    noise_std: float

    def as_array(self):
        """
        Parameters as a float64 array, the layout the optimizer works on.

        Returns:
            Array [sigma_f, length_scale, noise_std]
        """
        return np.array(self, dtype=np.float64)

    @classmethod
    def from_array(cls, values):
        """
        Build KernelParams from any 3-sequence.

        Args:
            values: (sigma_f, length_scale, noise_std)

        Returns:
            KernelParams
        """
        sigma_f, length_scale, noise_std = (float(v) for v in values)
        return cls(sigma_f, length_scale, noise_std)


def squared_distances(X1, X2):
    """
    Pairwise squared Euclidean distances between rows.

    Computed by broadcasting so that identical rows give exactly zero.

    Args:
        X1: Points (N x D)
        X2: Points (M x D)

    Returns:
        Squared distances (N x M)
    """
    return torch.sum((X1.unsqueeze(1) - X2.unsqueeze(0)) ** 2, dim=-1)


def matern52_kernel(X1, X2, sigma_f, length_scale):
    """
    Matérn 5/2 kernel.

    d = r² * ℓ
    K(x1, x2) = σ_f² * (1 + √5*√d + 5*d/3) * exp(-√5*√d)

    The squared distance is multiplied by the length scale, not divided.

    Args:
        X1: Points (N x D)
        X2: Points (M x D)
        sigma_f: Signal standard deviation
        length_scale: Length-scale factor

    Returns:
        Kernel matrix (N x M)
    """
    X1 = torch.as_tensor(X1, dtype=torch.float64)
    X2 = torch.as_tensor(X2, dtype=torch.float64)
    if X1.shape[-1] != X2.shape[-1]:
        raise ValueError(
            f"Dimension mismatch: {X1.shape[-1]} vs {X2.shape[-1]}"
        )

    d = squared_distances(X1, X2) * float(length_scale)
    sqrt_d = torch.sqrt(d)
    sigma_f = float(sigma_f)
    return sigma_f * sigma_f * (1 + SQRT5 * sqrt_d + 5 * d / 3) * torch.exp(-SQRT5 * sqrt_d)
