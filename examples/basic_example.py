"""Basic example of Sequential BO on a noisy 1-D function."""

import logging
import math

import torch
from gpbo import BOConfig, SequentialBO
from gpbo.core import grid_candidates


def make_objective(seed=0):
    """
    f(x) = -sin(3x) - x^2 + 0.7x, plus Gaussian noise.
    Global optimum near x = -0.36 on [-1, 2].
    """
    generator = torch.Generator().manual_seed(seed)

    def objective(x, noise=0.0):
        x = float(torch.as_tensor(x).reshape(-1)[0])
        value = -math.sin(3 * x) - x ** 2 + 0.7 * x
        if noise:
            value += noise * torch.randn(1, generator=generator, dtype=torch.float64).item()
        return value

    return objective


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("="*60)
    print("Sequential Bayesian Optimization Example")
    print("="*60)

    objective = make_objective(seed=1)
    noise = 0.2
    X_init = torch.tensor([[-0.9], [1.1]], dtype=torch.float64)
    Y_init = torch.tensor([objective(x, noise=noise) for x in X_init], dtype=torch.float64)

    optimizer = SequentialBO(BOConfig(n_iterations=15, xi=0.01, noise=noise, seed=1, track_true_best=True))
    result = optimizer.run(
        objective,
        X_init,
        Y_init,
        candidates=grid_candidates([(-1.0, 2.0)], num=301),
        initial_params=(1.0, 1.0, noise),
    )

    print("\n" + "="*60)
    print("RESULTS")
    print("="*60)
    print(f"Status: {result.status.value}")
    print(f"Best point found: {result.best_x.item():.4f} (observed {result.best_y:.4f})")
    print(f"Final hyperparameters: {result.params}")

    print("\nIteration history:")
    for rec in result.records:
        print(f"  Iteration {rec.iteration + 1:2d}: x={rec.location.item():+.4f} "
              f"EI={rec.acquisition_value:.4g} y={rec.value:+.4f} best={rec.y_best_true:+.4f}")


if __name__ == "__main__":
    main()
