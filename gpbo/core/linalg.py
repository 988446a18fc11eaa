"""Cholesky-based inversion of symmetric matrices with jitter retries."""

import logging
from typing import NamedTuple

import torch

from ..errors import SingularCovarianceError

logger = logging.getLogger(__name__)

EIG_TOL = 1e-8
JITTER_SCALE = 1e-6
JITTER_GROWTH = 10.0


class StableInverse(NamedTuple):
    """
    Result of a stabilized inversion.

    Attributes:
        inverse: Inverse of the (possibly jittered) matrix (N x N)
        cholesky: Lower Cholesky factor of the same matrix (N x N)
        jitter: Diagonal term that was added (0 when none was needed)
        attempts: Number of jitter attempts made
    """

    inverse: torch.Tensor
    cholesky: torch.Tensor
    jitter: float
    attempts: int

    @property
    def logdet(self):
        """Log-determinant of the factored matrix."""
        return 2.0 * torch.sum(torch.log(torch.diagonal(self.cholesky)))


def is_singular(A, eig_tol=EIG_TOL):
    """
    Check whether A is numerically singular.

    A counts as singular when its Cholesky factorization fails or its
    smallest eigenvalue is at most `eig_tol`.
    """
    _, info = torch.linalg.cholesky_ex(A)
    if info.item() != 0:
        return True
    return torch.linalg.eigvalsh(A).min().item() <= eig_tol


def cholesky_inverse(L):
    """Invert L Lᵀ given its lower factor: (L⁻¹)ᵀ (L⁻¹)."""
    eye = torch.eye(L.shape[0], dtype=L.dtype, device=L.device)
    L_inv = torch.linalg.solve_triangular(L, eye, upper=False)
    return L_inv.T @ L_inv


def stable_inverse(A, max_attempts=10, eig_tol=EIG_TOL):
    """
    Invert a symmetric matrix, adding jitter to the diagonal if needed.

    Jitter starts at |mean(diag(A))| * 1e-6 and grows tenfold after every
    failed attempt. Each attempt adds the current jitter to the original A.

    Args:
        A: Symmetric matrix (N x N)
        max_attempts: Maximum number of jitter attempts
        eig_tol: Singularity threshold on the smallest eigenvalue

    Returns:
        StableInverse

    Raises:
        SingularCovarianceError: if A is still singular after all attempts
    """
    A = torch.as_tensor(A, dtype=torch.float64)
    if A.dim() != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {tuple(A.shape)}")
    if not torch.isfinite(A).all():
        raise SingularCovarianceError("Matrix has non-finite entries")

    jitter = 0.0
    attempts = 0
    target = A
    if is_singular(A, eig_tol):
        eye = torch.eye(A.shape[0], dtype=A.dtype, device=A.device)
        jitter = abs(torch.diagonal(A).mean().item()) * JITTER_SCALE
        for attempts in range(1, max_attempts + 1):
            target = A + jitter * eye
            if not is_singular(target, eig_tol):
                break
            logger.debug("Jitter %.3e insufficient (attempt %d)", jitter, attempts)
            jitter *= JITTER_GROWTH
        else:
            raise SingularCovarianceError(
                f"Matrix still singular after {max_attempts} jitter attempts",
                attempts=max_attempts,
                jitter=jitter,
            )
        logger.debug("Added jitter %.3e after %d attempt(s)", jitter, attempts)

    L = torch.linalg.cholesky(target)
    return StableInverse(cholesky_inverse(L), L, jitter, attempts)
