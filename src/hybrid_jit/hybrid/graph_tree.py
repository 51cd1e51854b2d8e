# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Decision trees of Gaussian factor graphs.

``GaussianFactorGraphTree`` is the hybrid value tree: for every assignment
of its discrete keys it holds the :class:`GraphAndConstant` that discrete
hypothesis implies.
"""

from __future__ import annotations
from typing import Optional, Sequence

from ..core.config import DEFAULT_CONFIG, HybridConfig
from ..core.types import DiscreteKey, HybridValues
from ..linear.gaussian_factor_graph import GaussianFactorGraph
from .decision_tree import DecisionTree
from .graph_and_constant import GraphAndConstant

GaussianFactorGraphTree = DecisionTree[GraphAndConstant]


def graph_tree(
    keys: Sequence[DiscreteKey],
    graphs: Sequence[GaussianFactorGraph],
    constants: Optional[Sequence[float]] = None,
    cfg: HybridConfig = DEFAULT_CONFIG,
) -> GaussianFactorGraphTree:
    """
    Build a tree from one graph (and optionally one constant) per
    assignment, first key varying slowest.
    """
    if constants is None:
        constants = [0.0] * len(graphs)
    if len(constants) != len(graphs):
        raise ValueError(f"got {len(graphs)} graphs but {len(constants)} constants")
    leaves = [GraphAndConstant(g, c) for g, c in zip(graphs, constants)]
    return DecisionTree.from_leaves(keys, leaves, cfg)


def add_graph_and_constant(a: GraphAndConstant, b: GraphAndConstant) -> GraphAndConstant:
    """Product of two hypotheses' costs: concatenated graphs, summed constants."""
    return GraphAndConstant(a.graph + b.graph, a.constant + b.constant)


def sum_graph_trees(
    tree1: GaussianFactorGraphTree,
    tree2: GaussianFactorGraphTree,
    cfg: HybridConfig = DEFAULT_CONFIG,
) -> GaussianFactorGraphTree:
    """Combine two graph trees over the union of their discrete keys."""
    return tree1.combine(tree2, add_graph_and_constant, cfg)


def tree_error(tree: GaussianFactorGraphTree, values: HybridValues) -> float:
    """Cost of the hypothesis selected by ``values.discrete`` at ``values.continuous``."""
    return tree(values).error(values)
