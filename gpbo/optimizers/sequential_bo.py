"""Sequential Bayesian Optimization with a GP surrogate and Expected Improvement."""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import torch

from ..config import BOConfig
from ..core import KernelParams, NoImprovement, fit_hyperparameters, propose
from ..core.utils import as_matrix, as_vector
from ..errors import EmptyCandidateSetError, GPBOError

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    INIT = "init"
    FITTING = "fitting"
    PROPOSING = "proposing"
    EVALUATING = "evaluating"
    RECORDING = "recording"
    TERMINATED = "terminated"


class RunStatus(enum.Enum):
    COMPLETED = "completed"
    NO_IMPROVEMENT = "no_improvement"
    FAILED = "failed"


@dataclass(frozen=True)
class IterationRecord:
    """
    Snapshot of one finished iteration.

    Attributes:
        iteration: Iteration index (starting at 0)
        location: Evaluated point (D,)
        acquisition_value: EI at the evaluated point
        value: Observed objective value
        params: Hyperparameters used for the proposal
        mean: Posterior mean over the candidates
        std: Posterior std over the candidates
        acquisition: EI over the candidates
        candidates: Candidate points scored this iteration
        y_best: Best observed value so far
        y_best_true: Best noise-free value so far, when config.track_true_best is set
    """

    iteration: int
    location: torch.Tensor
    acquisition_value: float
    value: float
    params: KernelParams
    mean: torch.Tensor
    std: torch.Tensor
    acquisition: torch.Tensor
    candidates: torch.Tensor
    y_best: float
    y_best_true: Optional[float] = None


@dataclass
class OptimizationResult:
    """Outcome of a run."""

    status: RunStatus
    X: torch.Tensor
    Y: torch.Tensor
    params: KernelParams
    records: List[IterationRecord]
    error: Optional[GPBOError] = None

    @property
    def best_index(self):
        return int(torch.argmax(self.Y).item())

    @property
    def best_x(self):
        return self.X[self.best_index]

    @property
    def best_y(self):
        return self.Y[self.best_index].item()


class SequentialBO:
    """
    Sequential Bayesian Optimization.

    Each iteration refits the kernel hyperparameters (warm-started from the
    previous fit), proposes the candidate with maximal expected improvement,
    evaluates the objective there and records the observation.

    The run ends when the iteration budget is spent (COMPLETED), when no
    candidate has positive EI (NO_IMPROVEMENT), or when the posterior cannot
    be computed or the candidate domain is empty (FAILED; the failing
    iteration records nothing).

    Args:
        config: Loop settings
        generator: Random generator for sampled candidate sets; created from
            config.seed when omitted
    """

    def __init__(self, config: Optional[BOConfig] = None,
                 generator: Optional[torch.Generator] = None):
        self.config = config if config is not None else BOConfig()
        if generator is None:
            generator = torch.Generator().manual_seed(self.config.seed)
        self.generator = generator
        self.state = LoopState.INIT

        self.X = None
        self.Y = None
        self.params = None
        self.records: List[IterationRecord] = []

    def run(
        self,
        objective: Callable,
        X_init,
        Y_init,
        candidates,
        initial_params,
        callback: Optional[Callable[[IterationRecord], None]] = None,
    ) -> OptimizationResult:
        """
        Run optimization.

        Args:
            objective: Function mapping a location (D,) to a scalar; called
                with noise=config.noise when that is set. Called once per
                iteration, plus once per initial and proposed point with
                noise=0.0 when config.track_true_best is set
            X_init: Initial locations (N x D)
            Y_init: Initial values (N,)
            candidates: Candidate points (M x D), or a callable taking the
                generator and returning them, called once per iteration
            initial_params: Starting kernel hyperparameters
            callback: Called with each IterationRecord

        Returns:
            OptimizationResult
        """
        self._initialize(X_init, Y_init, initial_params)
        cfg = self.config
        gp_cfg = cfg.gp
        y_best_true = self._initial_best_true(objective)

        for it in range(cfg.n_iterations):
            self.state = LoopState.FITTING
            self.params = fit_hyperparameters(
                self.params, self.X, self.Y,
                max_iter=gp_cfg.fit_max_iter, max_attempts=gp_cfg.max_attempts,
            )

            self.state = LoopState.PROPOSING
            X_cand = as_matrix(candidates(self.generator) if callable(candidates) else candidates)
            if X_cand.shape[0] == 0:
                error = EmptyCandidateSetError(f"Iteration {it}: candidate domain is empty")
                logger.error("Iteration %d aborted: %s", it, error)
                return self._finish(RunStatus.FAILED, error=error)
            try:
                proposal = propose(
                    X_cand, self.X, self.Y, self.params, cfg.xi,
                    gp_cfg.max_attempts, gp_cfg.predict_jitter,
                )
            except GPBOError as e:
                logger.error("Iteration %d aborted: %s", it, e)
                return self._finish(RunStatus.FAILED, error=e)

            if isinstance(proposal, NoImprovement):
                logger.info("Iteration %d: no candidate improves on the incumbent", it)
                return self._finish(RunStatus.NO_IMPROVEMENT)

            self.state = LoopState.EVALUATING
            x_next = proposal.location
            y_next = float(self._evaluate(objective, x_next))

            self.state = LoopState.RECORDING
            self.X = torch.cat([self.X, x_next.unsqueeze(0)])
            self.Y = torch.cat([self.Y, torch.tensor([y_next], dtype=torch.float64)])
            if y_best_true is not None:
                y_best_true = max(y_best_true, self._evaluate_true(objective, x_next))

            acq = proposal.acquisition
            record = IterationRecord(
                iteration=it,
                location=x_next,
                acquisition_value=proposal.value,
                value=y_next,
                params=self.params,
                mean=acq.posterior.mean,
                std=acq.posterior.std,
                acquisition=acq.ei,
                candidates=X_cand,
                y_best=self.Y.max().item(),
                y_best_true=y_best_true,
            )
            self.records.append(record)
            logger.info(
                "Iteration %d: x=%s ei=%.4g y=%.4g best=%.4g",
                it, x_next.tolist(), proposal.value, y_next, record.y_best,
            )
            if callback is not None:
                callback(record)

        return self._finish(RunStatus.COMPLETED)

    def _initialize(self, X_init, Y_init, initial_params):
        X = as_matrix(X_init).clone()
        Y = as_vector(Y_init).clone()
        if X.shape[0] != Y.shape[0]:
            raise ValueError(f"X_init has {X.shape[0]} rows but Y_init has {Y.shape[0]}")
        if X.shape[0] == 0:
            raise ValueError("At least one initial observation is required")

        self.state = LoopState.INIT
        self.X = X
        self.Y = Y
        self.params = KernelParams.from_array(initial_params)
        self.records = []

    def _evaluate(self, objective, x):
        if self.config.noise is None:
            return objective(x)
        return objective(x, noise=self.config.noise)

    def _evaluate_true(self, objective, x):
        if self.config.noise is None:
            return float(objective(x))
        return float(objective(x, noise=0.0))

    def _initial_best_true(self, objective):
        if not self.config.track_true_best:
            return None
        return max(self._evaluate_true(objective, x) for x in self.X)

    def _finish(self, status, error=None):
        self.state = LoopState.TERMINATED
        logger.info("Run finished: %s after %d iteration(s)", status.value, len(self.records))
        return OptimizationResult(
            status=status,
            X=self.X,
            Y=self.Y,
            params=self.params,
            records=list(self.records),
            error=error,
        )
