"""Configuration objects."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class GPConfig:
    """
    Numerical settings for the GP surrogate.

    Args:
        max_attempts: Jitter retries before a covariance is declared singular
        predict_jitter: Fixed diagonal term added to the predictive covariance
        fit_max_iter: Iteration cap for the L-BFGS-B hyperparameter fit
    """

    max_attempts: int = 10
    predict_jitter: float = 1e-8
    fit_max_iter: int = 200


@dataclass(frozen=True)
class BOConfig:
    """
    Settings for the sequential optimization loop.

    Args:
        n_iterations: Iteration budget
        xi: Exploration parameter of expected improvement
        noise: Noise level forwarded to the objective, None to call it bare
        seed: Seed for the run's random generator
        track_true_best: Also query the objective noise-free at every
            observed point to report the best noise-free value
        gp: Surrogate settings
    """

    n_iterations: int = 15
    xi: float = 0.01
    noise: Optional[float] = None
    seed: int = 0
    track_true_best: bool = False
    gp: GPConfig = field(default_factory=GPConfig)

    def __post_init__(self):
        if self.n_iterations < 0:
            raise ValueError(f"n_iterations must be non-negative, got {self.n_iterations}")
