"""Utility functions."""

import torch


def as_matrix(points):
    """
    Coerce points to a float64 (N x D) tensor.

    A 1-D input is read as N one-dimensional points.
    """
    points = torch.as_tensor(points, dtype=torch.float64)
    if points.dim() == 0:
        return points.reshape(1, 1)
    if points.dim() == 1:
        return points.unsqueeze(-1)
    if points.dim() != 2:
        raise ValueError(f"Expected points of shape (N, D), got {tuple(points.shape)}")
    return points


def as_vector(values):
    """Coerce values to a float64 (N,) tensor."""
    return torch.as_tensor(values, dtype=torch.float64).reshape(-1)


def _bounds_tensors(bounds):
    lower = torch.tensor([float(b[0]) for b in bounds], dtype=torch.float64)
    upper = torch.tensor([float(b[1]) for b in bounds], dtype=torch.float64)
    if torch.any(upper < lower):
        raise ValueError(f"Invalid bounds {bounds}")
    return lower, upper


def check_bounds(points, bounds):
    """
    Filter points within bounds.

    Args:
        points: List of tensors or tensor (N x D)
        bounds: List of (lower, upper) tuples

    Returns:
        Valid points
    """
    if isinstance(points, list):
        points = torch.stack([torch.as_tensor(p, dtype=torch.float64) for p in points])
    points = as_matrix(points)

    lower, upper = _bounds_tensors(bounds)
    valid = torch.all((points >= lower) & (points <= upper), dim=-1)
    return points[valid]


def grid_candidates(bounds, num=100):
    """
    Regular grid over a box.

    Args:
        bounds: List of (lower, upper) tuples
        num: Points per dimension (int or one int per dimension)

    Returns:
        Grid points (prod(num) x D), last dimension varying fastest
    """
    if isinstance(num, int):
        num = [num] * len(bounds)
    axes = [
        torch.linspace(float(lo), float(hi), n, dtype=torch.float64)
        for (lo, hi), n in zip(bounds, num)
    ]
    mesh = torch.meshgrid(*axes, indexing="ij")
    return torch.stack([m.reshape(-1) for m in mesh], dim=-1)


def sample_candidates(bounds, n, generator, predicate=None, max_draws=100):
    """
    Draw uniform points in a box, keeping those accepted by a predicate.

    Args:
        bounds: List of (lower, upper) tuples
        n: Number of points wanted
        generator: torch.Generator driving the draws
        predicate: Callable mapping (M x D) points to a boolean mask (M,)
        max_draws: Maximum number of batches to draw

    Returns:
        Accepted points (at most n x D; fewer if the predicate is too strict)
    """
    lower, upper = _bounds_tensors(bounds)
    accepted = []
    count = 0
    for _ in range(max_draws):
        u = torch.rand((n, len(bounds)), generator=generator, dtype=torch.float64)
        batch = lower + u * (upper - lower)
        if predicate is not None:
            mask = torch.as_tensor(predicate(batch), dtype=torch.bool).reshape(-1)
            batch = batch[mask]
        accepted.append(batch)
        count += batch.shape[0]
        if count >= n:
            break
    return torch.cat(accepted)[:n]
