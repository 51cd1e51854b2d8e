# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""Continuous-only hybrid factor wrapping a Gaussian factor graph."""

from __future__ import annotations

from ..core.config import DEFAULT_TOL
from ..core.types import HybridValues
from ..linear.gaussian_factor_graph import GaussianFactorGraph, JacobianFactor
from .hybrid_factor import HybridFactor


class HybridGaussianFactor(HybridFactor):
    """
    Puts a purely Gaussian term into a hybrid graph.

    The continuous keys are the graph's keys in first-seen order; there are
    no discrete keys, so ``is_continuous`` is true and ``is_hybrid`` false.
    """

    def __init__(self, graph) -> None:
        if isinstance(graph, JacobianFactor):
            graph = GaussianFactorGraph((graph,))
        super().__init__(continuous_keys=graph.keys)
        self.graph: GaussianFactorGraph = graph

    def error(self, values: HybridValues) -> float:
        self.check_values(values)
        return self.graph.error(values)

    def equals(self, other: HybridFactor, tol: float = DEFAULT_TOL) -> bool:
        return (
            isinstance(other, HybridGaussianFactor)
            and super().equals(other, tol)
            and self.graph.equals(other.graph, tol)
        )
