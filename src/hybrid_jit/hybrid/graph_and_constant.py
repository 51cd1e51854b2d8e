# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
GraphAndConstant: one discrete hypothesis' continuous cost.

A leaf of the hybrid value tree. It pairs a Gaussian factor graph with a
scalar constant, so the cost for that hypothesis is

    E(x) = ½ Σ_k ‖A_k x − b_k‖² + constant

The constant carries normalization terms (e.g. the log-normalizer picked
up when a Gaussian is renormalized after elimination) that the graph
alone cannot represent. Dropping it would make discrete marginals wrong.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..core.config import DEFAULT_TOL
from ..core.types import HybridValues
from ..linear.gaussian_factor_graph import GaussianFactorGraph


@dataclass(frozen=True, eq=False)
class GraphAndConstant:
    """Gaussian factor graph and log of normalizing constant."""
    graph: GaussianFactorGraph
    constant: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "constant", float(self.constant))

    def equals(self, other: "GraphAndConstant", tol: float = DEFAULT_TOL) -> bool:
        if not isinstance(other, GraphAndConstant):
            return False
        return (
            self.graph.equals(other.graph, tol)
            and abs(self.constant - other.constant) <= tol
        )

    def error(self, values: HybridValues) -> float:
        return self.graph.error(values) + self.constant
