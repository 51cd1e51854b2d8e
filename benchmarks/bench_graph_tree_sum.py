# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.

import time
import jax.numpy as jnp

from hybrid_jit.core.types import Key, DiscreteKey
from hybrid_jit.core.config import HybridConfig
from hybrid_jit.linear.gaussian_factor_graph import JacobianFactor, GaussianFactorGraph
from hybrid_jit.hybrid.graph_tree import graph_tree, sum_graph_trees


def build_mode_chain(num_modes: int, cfg: HybridConfig):
    """
    One graph tree per discrete mode variable M_i (cardinality 2):

        M_i = 0 -> prior x_i ~ 0
        M_i = 1 -> prior x_i ~ 1

    Summing all of them gives a tree with 2^num_modes leaves.
    """
    trees = []
    for i in range(num_modes):
        mode = DiscreteKey(Key(1000 + i), 2)
        graphs = [
            GaussianFactorGraph((JacobianFactor((Key(i),), (jnp.eye(1),), jnp.array([t])),))
            for t in (0.0, 1.0)
        ]
        trees.append(graph_tree((mode,), graphs, [0.0, 0.1], cfg))
    return trees


def run_benchmark(num_modes: int = 10, share_subtrees: bool = True):
    print("=== Graph tree sum benchmark ===")
    print(f"num_modes = {num_modes}, share_subtrees = {share_subtrees}")

    cfg = HybridConfig(share_subtrees=share_subtrees)
    trees = build_mode_chain(num_modes, cfg)

    t0 = time.time()
    total = trees[0]
    for t in trees[1:]:
        total = sum_graph_trees(total, t, cfg)
    t1 = time.time()

    elapsed = (t1 - t0) * 1000.0
    print(f"Elapsed time: {elapsed:.3f} ms")
    print(f"logical leaves: {total.nr_leaves()}, stored leaves: {total.nr_unique_leaves()}")


if __name__ == "__main__":
    # Example:
    #   python3 benchmarks/bench_graph_tree_sum.py
    run_benchmark(num_modes=10, share_subtrees=True)
    run_benchmark(num_modes=10, share_subtrees=False)
