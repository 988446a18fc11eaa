"""gpbo: Bayesian Optimization with a Gaussian Process and Expected Improvement"""

__version__ = '1.0.0'

from .config import BOConfig, GPConfig
from .core import KernelParams, NoImprovement, Proposal
from .errors import (
    DegeneratePosteriorError, EmptyCandidateSetError, GPBOError,
    OptimizerNonconvergenceWarning, SingularCovarianceError,
)
from .optimizers import IterationRecord, OptimizationResult, RunStatus, SequentialBO

__all__ = [
    'BOConfig',
    'GPConfig',
    'KernelParams',
    'NoImprovement',
    'Proposal',
    'GPBOError',
    'SingularCovarianceError',
    'DegeneratePosteriorError',
    'EmptyCandidateSetError',
    'OptimizerNonconvergenceWarning',
    'SequentialBO',
    'IterationRecord',
    'OptimizationResult',
    'RunStatus',
]
