"""Core components for GP-based optimization."""

from .linalg import StableInverse, is_singular, stable_inverse
from .kernels import KernelParams, matern52_kernel
from .likelihood import fit_hyperparameters, negative_log_marginal_likelihood
from .gp_model import GaussianProcess, Posterior, predict
from .acquisition import (
    AcquisitionResult, NoImprovement, Proposal,
    compute_expected_improvement, expected_improvement, propose,
)
from .utils import check_bounds, grid_candidates, sample_candidates

__all__ = [
    'StableInverse',
    'is_singular',
    'stable_inverse',
    'KernelParams',
    'matern52_kernel',
    'fit_hyperparameters',
    'negative_log_marginal_likelihood',
    'GaussianProcess',
    'Posterior',
    'predict',
    'AcquisitionResult',
    'NoImprovement',
    'Proposal',
    'compute_expected_improvement',
    'expected_improvement',
    'propose',
    'check_bounds',
    'grid_candidates',
    'sample_candidates',
]
