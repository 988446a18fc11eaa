"""Gaussian Process posterior prediction."""

from typing import NamedTuple

import torch

from ..errors import DegeneratePosteriorError, SingularCovarianceError
from .kernels import KernelParams, matern52_kernel
from .likelihood import fit_hyperparameters, training_covariance
from .linalg import stable_inverse
from .utils import as_matrix, as_vector

PREDICT_JITTER = 1e-8


class Posterior(NamedTuple):
    """Posterior mean and std at the query points."""

    mean: torch.Tensor
    std: torch.Tensor


def predict(X_query, X_train, Y_train, params, max_attempts=10,
            predict_jitter=PREDICT_JITTER):
    """
    Posterior predictive mean and standard deviation.

    μ* = K_sᵀ K⁻¹ y
    Σ* = K_ss - K_sᵀ K⁻¹ K_s

    Args:
        X_query: Query points (M x D)
        X_train: Training inputs (N x D)
        Y_train: Training targets (N,)
        params: KernelParams or (sigma_f, length_scale, noise_std)
        max_attempts: Jitter attempts for inverting K
        predict_jitter: Fixed term added to the diagonal of K_ss

    Returns:
        Posterior with mean (M,) and std (M,)

    Raises:
        DegeneratePosteriorError: if K cannot be inverted
    """
    params = KernelParams.from_array(params)
    X_query = as_matrix(X_query)
    X_train = as_matrix(X_train)
    Y_train = as_vector(Y_train)
    if X_train.shape[0] != Y_train.shape[0]:
        raise ValueError(
            f"X_train has {X_train.shape[0]} rows but Y_train has {Y_train.shape[0]}"
        )

    K = training_covariance(X_train, params)
    K_s = matern52_kernel(X_train, X_query, params.sigma_f, params.length_scale)
    K_ss = matern52_kernel(X_query, X_query, params.sigma_f, params.length_scale)
    K_ss = K_ss + predict_jitter * torch.eye(K_ss.shape[0], dtype=K_ss.dtype)

    try:
        K_inv = stable_inverse(K, max_attempts=max_attempts).inverse
    except SingularCovarianceError as e:
        raise DegeneratePosteriorError(
            f"Cannot compute posterior: {e}", attempts=e.attempts, jitter=e.jitter
        ) from e

    mean = K_s.T @ K_inv @ Y_train
    cov = K_ss - K_s.T @ K_inv @ K_s
    std = torch.sqrt(torch.abs(torch.diagonal(cov)))
    return Posterior(mean, std)


class GaussianProcess:
    """
    GP surrogate bound to a snapshot of training data.

    Args:
        train_x: Training inputs (N x D)
        train_y: Training targets (N,)
        params: Kernel hyperparameters
        max_attempts: Jitter attempts for covariance inversion
    """

    def __init__(self, train_x, train_y, params, max_attempts=10):
        self.train_x = as_matrix(train_x).clone()
        self.train_y = as_vector(train_y).clone()
        self.params = KernelParams.from_array(params)
        self.max_attempts = max_attempts

    def fit(self, max_iter=200):
        """Return a new GaussianProcess with hyperparameters fitted from the current ones."""
        params = fit_hyperparameters(
            self.params, self.train_x, self.train_y,
            max_iter=max_iter, max_attempts=self.max_attempts,
        )
        return GaussianProcess(self.train_x, self.train_y, params, self.max_attempts)

    def predict(self, x):
        return predict(x, self.train_x, self.train_y, self.params, self.max_attempts)

    def incumbent(self):
        """Largest posterior mean over the training inputs."""
        return self.predict(self.train_x).mean.max().item()
