"""Marginal likelihood of the GP and its hyperparameter fit."""

import logging
import math
import warnings

import numpy as np
import torch
from scipy.optimize import minimize

from ..errors import OptimizerNonconvergenceWarning, SingularCovarianceError
from .kernels import KernelParams, matern52_kernel
from .linalg import stable_inverse
from .utils import as_matrix, as_vector

logger = logging.getLogger(__name__)

# Returned in place of the objective when K cannot be inverted
WORST_NLML = 1e10

# sigma_f, length_scale, noise_std
PARAM_BOUNDS = ((0.0, None), (1e-15, None), (0.0, None))


def training_covariance(X_train, params):
    """K(X, X) + σ_y² I."""
    sigma_f, length_scale, noise_std = params
    K = matern52_kernel(X_train, X_train, sigma_f, length_scale)
    return K + noise_std * noise_std * torch.eye(K.shape[0], dtype=K.dtype)


def negative_log_marginal_likelihood(params, X_train, Y_train, max_attempts=10):
    """
    Negative log marginal likelihood under a zero-mean GP prior.

    -log p(y | X, θ) = ½ yᵀK⁻¹y + ½ log|K| + n/2 log 2π

    Args:
        params: KernelParams or (sigma_f, length_scale, noise_std)
        X_train: Training inputs (N x D)
        Y_train: Training targets (N,)
        max_attempts: Jitter attempts for the inversion

    Returns:
        Objective value, or WORST_NLML if K stays singular
    """
    params = KernelParams.from_array(params)
    X_train = as_matrix(X_train)
    Y_train = as_vector(Y_train)
    n = Y_train.shape[0]

    K = training_covariance(X_train, params)
    try:
        inv = stable_inverse(K, max_attempts=max_attempts)
    except SingularCovarianceError:
        logger.debug("Singular covariance at %s", params)
        return WORST_NLML

    nll = 0.5 * Y_train @ inv.inverse @ Y_train + 0.5 * inv.logdet + 0.5 * n * math.log(2 * math.pi)
    nll = nll.item()
    if not math.isfinite(nll):
        logger.debug("Non-finite likelihood at %s", params)
        return WORST_NLML
    return nll


def fit_hyperparameters(initial_params, X_train, Y_train, bounds=PARAM_BOUNDS,
                        max_iter=200, max_attempts=10):
    """
    Fit kernel hyperparameters by minimizing the negative log marginal likelihood.

    Uses L-BFGS-B with box constraints. The terminal iterate is returned even
    if the optimizer does not report convergence; in that case an
    OptimizerNonconvergenceWarning is issued.

    Args:
        initial_params: Starting point (KernelParams or 3-sequence)
        X_train: Training inputs (N x D)
        Y_train: Training targets (N,)
        bounds: (lower, upper) per parameter, None for unbounded
        max_iter: Optimizer iteration cap
        max_attempts: Jitter attempts per likelihood evaluation

    Returns:
        Fitted KernelParams
    """
    X_train = as_matrix(X_train).clone()
    Y_train = as_vector(Y_train).clone()
    if X_train.shape[0] != Y_train.shape[0]:
        raise ValueError(
            f"X_train has {X_train.shape[0]} rows but Y_train has {Y_train.shape[0]}"
        )
    if X_train.shape[0] == 0:
        raise ValueError("Need at least one observation to fit hyperparameters")

    lower = np.array([-np.inf if lo is None else lo for lo, _ in bounds])
    upper = np.array([np.inf if hi is None else hi for _, hi in bounds])
    x0 = np.clip(KernelParams.from_array(initial_params).as_array(), lower, upper)

    def objective(theta):
        return negative_log_marginal_likelihood(theta, X_train, Y_train, max_attempts)

    result = minimize(
        objective, x0, method="L-BFGS-B", bounds=bounds,
        options={"maxiter": max_iter},
    )

    params = KernelParams.from_array(result.x)
    if not result.success:
        message = f"Hyperparameter fit did not converge: {result.message}"
        logger.warning(message)
        warnings.warn(message, OptimizerNonconvergenceWarning, stacklevel=2)
    logger.debug("Fitted %s (nll=%.4f, nit=%d)", params, result.fun, result.nit)
    return params
