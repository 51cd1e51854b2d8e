from __future__ import annotations

import jax.numpy as jnp

from hybrid_jit.core.types import Key, DiscreteKey, HybridValues
from hybrid_jit.core.keys import collect_keys
from hybrid_jit.linear.gaussian_factor_graph import JacobianFactor, GaussianFactorGraph
from hybrid_jit.hybrid.graph_tree import graph_tree, sum_graph_trees, tree_error
from hybrid_jit.hybrid.hybrid_gaussian_factor import HybridGaussianFactor


def setup_switching_world():
    """
    Build a tiny hybrid problem on one 1D position x1:

      - odometry-like prior x1 ~ 1.0            (continuous only)
      - sensor mode M (2 hypotheses):
          M = 0 (nominal): x1 ~ 1.1, sigma 0.1
          M = 1 (outlier): x1 ~ 4.0, sigma 10.0, with a log-normalizer

      - second mode N (2 hypotheses) on a landmark offset:
          N = 0: x1 ~ 0.9
          N = 1: x1 ~ 1.5
    """
    X1 = Key(1)
    M = DiscreteKey(Key(100), 2)
    N = DiscreteKey(Key(101), 2)

    def prior(target, sigma):
        return GaussianFactorGraph(
            (JacobianFactor((X1,), (jnp.eye(1) / sigma,), jnp.array([target / sigma])),)
        )

    odom = HybridGaussianFactor(prior(1.0, 1.0))
    sensor = graph_tree((M,), [prior(1.1, 0.1), prior(4.0, 10.0)], [0.0, 4.6])
    landmark = graph_tree((N,), [prior(0.9, 0.5), prior(1.5, 0.5)])

    return X1, M, N, odom, sum_graph_trees(sensor, landmark)


def main():
    X1, M, N, odom, joint = setup_switching_world()

    print("keys:", collect_keys(odom.continuous_keys, joint.keys))
    print(f"joint tree: {joint.nr_leaves()} hypotheses")

    x = jnp.array([1.05])
    for assignment in joint.assignments():
        values = HybridValues(continuous={X1: x}, discrete=assignment)
        cost = odom.error(values) + tree_error(joint, values)
        print(f"  M={assignment[M.key]} N={assignment[N.key]}  cost={cost:.4f}")


if __name__ == "__main__":
    main()
