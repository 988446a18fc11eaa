"""Exceptions and warnings raised by the GP / BO engine."""


class GPBOError(Exception):
    """Base class for numerical failures in the engine."""


class SingularCovarianceError(GPBOError):
    """
    Covariance matrix could not be made positive definite.

    Args:
        message: Error description
        attempts: Number of jitter attempts made
        jitter: Last jitter value tried
    """

    def __init__(self, message, attempts=0, jitter=0.0):
        super().__init__(message)
        self.attempts = attempts
        self.jitter = jitter


class DegeneratePosteriorError(SingularCovarianceError):
    """Posterior requested from a training covariance that stayed singular."""


class OptimizerNonconvergenceWarning(RuntimeWarning):
    """Hyperparameter optimizer stopped without reporting convergence."""


class EmptyCandidateSetError(GPBOError):
    """Candidate domain produced no points to score."""
