"""Optimization loops."""

from .sequential_bo import (
    IterationRecord, LoopState, OptimizationResult, RunStatus, SequentialBO,
)

__all__ = ['SequentialBO', 'IterationRecord', 'LoopState', 'OptimizationResult', 'RunStatus']
