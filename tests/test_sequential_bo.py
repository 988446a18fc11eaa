import math
import unittest
from unittest import mock

import torch

from gpbo import (
    BOConfig, DegeneratePosteriorError, EmptyCandidateSetError, KernelParams, RunStatus, SequentialBO,
)
from gpbo.core import grid_candidates, sample_candidates
from gpbo.optimizers.sequential_bo import LoopState

FIT_TARGET = "gpbo.optimizers.sequential_bo.fit_hyperparameters"


def make_objective(seed=0):
    generator = torch.Generator().manual_seed(seed)

    def objective(x, noise=0.0):
        x = float(torch.as_tensor(x).reshape(-1)[0])
        value = -math.sin(3 * x) - x ** 2 + 0.7 * x
        if noise:
            value += noise * torch.randn(1, generator=generator, dtype=torch.float64).item()
        return value

    return objective


class TestSequentialBOScenario(unittest.TestCase):

    def test_noisy_one_dimensional_run(self):
        noise = 0.2
        objective = make_objective(seed=1)
        X_init = torch.tensor([[-0.9], [1.1]], dtype=torch.float64)
        Y_init = torch.tensor([objective(x, noise=noise) for x in X_init], dtype=torch.float64)

        bo = SequentialBO(BOConfig(n_iterations=15, noise=noise, seed=1, track_true_best=True))
        result = bo.run(
            objective, X_init, Y_init,
            candidates=grid_candidates([(-1.0, 2.0)], num=301),
            initial_params=(1.0, 1.0, noise),
        )

        self.assertIn(result.status, (RunStatus.COMPLETED, RunStatus.NO_IMPROVEMENT))
        self.assertIsNone(result.error)
        self.assertEqual(bo.state, LoopState.TERMINATED)
        if result.status == RunStatus.COMPLETED:
            self.assertEqual(len(result.records), 15)
        else:
            self.assertLess(len(result.records), 15)

        self.assertEqual(result.X.shape[0], 2 + len(result.records))
        self.assertEqual([r.iteration for r in result.records], list(range(len(result.records))))

        best_true = [r.y_best_true for r in result.records]
        self.assertTrue(all(b >= a for a, b in zip(best_true, best_true[1:])))
        for rec in result.records:
            self.assertEqual(tuple(rec.mean.shape), (301,))
            self.assertEqual(tuple(rec.acquisition.shape), (301,))
            self.assertGreater(rec.acquisition_value, 0.0)
            self.assertGreaterEqual(rec.params.length_scale, 1e-15)


class TestSequentialBOTermination(unittest.TestCase):

    def setUp(self):
        self.X = torch.tensor([[0.0], [3.0]], dtype=torch.float64)
        self.Y = torch.tensor([1.0, 0.0], dtype=torch.float64)

    def test_zero_budget(self):
        objective = mock.Mock(return_value=0.0)
        result = SequentialBO(BOConfig(n_iterations=0)).run(
            objective, self.X, self.Y, self.X, (1.0, 1.0, 0.1)
        )
        self.assertEqual(result.status, RunStatus.COMPLETED)
        self.assertEqual(result.records, [])
        objective.assert_not_called()

    def test_no_improvement_stops_early(self):
        objective = mock.Mock(return_value=0.0)
        with mock.patch(FIT_TARGET, return_value=KernelParams(1.0, 1.0, 0.0)):
            result = SequentialBO(BOConfig(n_iterations=5)).run(
                objective, self.X, self.Y, candidates=self.X, initial_params=(1.0, 1.0, 0.0)
            )
        self.assertEqual(result.status, RunStatus.NO_IMPROVEMENT)
        self.assertEqual(result.records, [])
        self.assertEqual(result.X.shape[0], 2)
        objective.assert_not_called()

    def test_singular_posterior_aborts_without_recording(self):
        objective = mock.Mock(return_value=0.0)
        with mock.patch(FIT_TARGET, return_value=KernelParams(0.0, 1.0, 0.0)):
            result = SequentialBO(BOConfig(n_iterations=5)).run(
                objective, self.X, self.Y, candidates=[[1.0]], initial_params=(1.0, 1.0, 0.1)
            )
        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertIsInstance(result.error, DegeneratePosteriorError)
        self.assertEqual(result.records, [])
        self.assertTrue(torch.equal(result.X, self.X))
        objective.assert_not_called()

    def test_empty_sampled_domain_fails_without_raising(self):
        objective = mock.Mock(return_value=0.0)

        def candidates(g):
            return sample_candidates([(0.0, 1.0)], 5, g, predicate=lambda p: p[:, 0] > 2.0, max_draws=3)

        with mock.patch(FIT_TARGET, return_value=KernelParams(1.0, 1.0, 0.1)):
            bo = SequentialBO(BOConfig(n_iterations=3))
            result = bo.run(objective, self.X, self.Y, candidates, (1.0, 1.0, 0.1))
        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertIsInstance(result.error, EmptyCandidateSetError)
        self.assertEqual(result.records, [])
        self.assertTrue(torch.equal(result.X, self.X))
        self.assertEqual(bo.state, LoopState.TERMINATED)
        objective.assert_not_called()


class TestSequentialBOInterfaces(unittest.TestCase):

    def setUp(self):
        self.X = torch.tensor([[0.0], [3.0]], dtype=torch.float64)
        self.Y = torch.tensor([1.0, 0.0], dtype=torch.float64)
        self.fixed = KernelParams(1.0, 1.0, 0.1)

    def test_warm_start_from_previous_params(self):
        fitted = [KernelParams(1.0, 1.0, 0.1), KernelParams(1.1, 0.9, 0.1), KernelParams(1.2, 0.8, 0.1)]
        objective = mock.Mock(return_value=0.5)
        with mock.patch(FIT_TARGET, side_effect=fitted) as fit:
            SequentialBO(BOConfig(n_iterations=3)).run(
                objective, self.X, self.Y, [[10.0], [20.0]], initial_params=(2.0, 2.0, 0.2)
            )
        starts = [call.args[0] for call in fit.call_args_list]
        self.assertEqual(starts, [KernelParams(2.0, 2.0, 0.2)] + fitted[:2])

    def test_callback_and_noise_forwarding(self):
        objective = mock.Mock(return_value=0.5)
        callback = mock.Mock()
        with mock.patch(FIT_TARGET, return_value=self.fixed):
            result = SequentialBO(BOConfig(n_iterations=2, noise=0.3)).run(
                objective, self.X, self.Y, [[10.0], [20.0]], (1.0, 1.0, 0.1), callback=callback
            )
        self.assertEqual(callback.call_count, len(result.records))
        self.assertIs(callback.call_args_list[0].args[0], result.records[0])
        self.assertEqual(objective.call_count, len(result.records))
        self.assertTrue(all(c.kwargs == {"noise": 0.3} for c in objective.call_args_list))
        self.assertIsNone(result.records[-1].y_best_true)

    def test_true_best_tracking_queries_noise_free(self):
        objective = mock.Mock(return_value=0.5)
        with mock.patch(FIT_TARGET, return_value=self.fixed):
            result = SequentialBO(BOConfig(n_iterations=2, noise=0.3, track_true_best=True)).run(
                objective, self.X, self.Y, [[10.0], [20.0]], (1.0, 1.0, 0.1)
            )
        noise_free = [c for c in objective.call_args_list if c.kwargs == {"noise": 0.0}]
        self.assertEqual(len(noise_free), self.X.shape[0] + len(result.records))
        self.assertEqual(result.records[-1].y_best_true, 0.5)

    def test_bare_objective_without_noise(self):
        objective = mock.Mock(return_value=0.5)
        with mock.patch(FIT_TARGET, return_value=self.fixed):
            result = SequentialBO(BOConfig(n_iterations=1)).run(
                objective, self.X, self.Y, [[10.0]], (1.0, 1.0, 0.1)
            )
        self.assertEqual(result.status, RunStatus.COMPLETED)
        objective.assert_called_once()
        self.assertEqual(objective.call_args.kwargs, {})
        self.assertIsNone(result.records[0].y_best_true)
        self.assertEqual(result.records[0].y_best, 1.0)

    def test_sampled_candidates_use_loop_generator(self):
        generator = torch.Generator().manual_seed(7)
        seen = []

        def candidates(g):
            seen.append(g)
            return sample_candidates([(4.0, 8.0)], 16, g)

        with mock.patch(FIT_TARGET, return_value=self.fixed):
            result = SequentialBO(BOConfig(n_iterations=2), generator=generator).run(
                mock.Mock(return_value=0.0), self.X, self.Y, candidates, (1.0, 1.0, 0.1)
            )
        self.assertEqual(len(seen), len(result.records))
        self.assertTrue(all(g is generator for g in seen))
        self.assertTrue(torch.all(result.X[2:] >= 4.0))

    def test_mismatched_initial_data(self):
        with self.assertRaises(ValueError):
            SequentialBO().run(mock.Mock(), self.X, self.Y[:1], self.X, (1.0, 1.0, 0.1))


class TestBOConfig(unittest.TestCase):

    def test_negative_budget_rejected(self):
        with self.assertRaises(ValueError):
            BOConfig(n_iterations=-1)


if __name__ == "__main__":
    unittest.main()
