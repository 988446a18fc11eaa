"""Expected Improvement acquisition and next-point selection."""

from dataclasses import dataclass
from typing import NamedTuple

import torch
from torch.distributions.normal import Normal

from .gp_model import PREDICT_JITTER, Posterior, predict
from .utils import as_matrix


def expected_improvement(mu, sigma, f_best, xi=0.01):
    """
    Expected Improvement acquisition function.

    Args:
        mu: Predictive mean (N,)
        sigma: Predictive std (N,)
        f_best: Current best value
        xi: Exploration parameter

    Returns:
        EI values (N,), exactly 0 where sigma == 0
    """
    mu = torch.as_tensor(mu, dtype=torch.float64)
    sigma = torch.as_tensor(sigma, dtype=torch.float64)
    normal = Normal(torch.tensor(0.0, dtype=torch.float64), torch.tensor(1.0, dtype=torch.float64))

    positive = sigma > 0
    safe_sigma = torch.where(positive, sigma, torch.ones_like(sigma))
    improvement = mu - f_best - xi
    z = improvement / safe_sigma
    ei = improvement * normal.cdf(z) + safe_sigma * torch.exp(normal.log_prob(z))
    return torch.where(positive, ei, torch.zeros_like(ei))


class AcquisitionResult(NamedTuple):
    """EI over the candidates with the posterior and incumbent it came from."""

    ei: torch.Tensor
    posterior: Posterior
    incumbent: float


def compute_expected_improvement(X_candidates, X_train, Y_train, params, xi=0.01,
                                 max_attempts=10, predict_jitter=PREDICT_JITTER):
    """
    EI of each candidate under the GP posterior.

    The incumbent is the largest posterior mean at the training inputs,
    not the largest raw observation.

    Raises:
        DegeneratePosteriorError: if the training covariance is singular
    """
    posterior = predict(X_candidates, X_train, Y_train, params, max_attempts, predict_jitter)
    in_sample = predict(X_train, X_train, Y_train, params, max_attempts, predict_jitter)
    incumbent = in_sample.mean.max().item()

    ei = expected_improvement(posterior.mean, posterior.std, incumbent, xi)
    ei = torch.nan_to_num(ei, nan=0.0).clamp_min(0.0)
    return AcquisitionResult(ei, posterior, incumbent)


@dataclass(frozen=True)
class Proposal:
    """Next point to evaluate."""

    index: int
    location: torch.Tensor
    value: float
    acquisition: AcquisitionResult


@dataclass(frozen=True)
class NoImprovement:
    """No candidate has positive expected improvement."""

    acquisition: AcquisitionResult


def propose(X_candidates, X_train, Y_train, params, xi=0.01,
            max_attempts=10, predict_jitter=PREDICT_JITTER):
    """
    Select the candidate maximizing EI.

    Ties go to the first candidate in order.

    Args:
        X_candidates: Candidate points (M x D)
        X_train: Training inputs (N x D)
        Y_train: Training targets (N,)
        params: Kernel hyperparameters
        xi: Exploration parameter

    Returns:
        Proposal, or NoImprovement if the best EI is not positive
    """
    X_candidates = as_matrix(X_candidates)
    if X_candidates.shape[0] == 0:
        raise ValueError("Candidate set is empty")

    acq = compute_expected_improvement(
        X_candidates, X_train, Y_train, params, xi, max_attempts, predict_jitter
    )
    best = int(torch.argmax(acq.ei).item())
    value = acq.ei[best].item()
    if value <= 0:
        return NoImprovement(acq)
    return Proposal(best, X_candidates[best], value, acq)
