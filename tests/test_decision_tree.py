from __future__ import annotations

import pytest

from hybrid_jit.core.config import HybridConfig
from hybrid_jit.core.types import Key, DiscreteKey, HybridValues
from hybrid_jit.core.errors import MissingKeyError, OutOfDomainError, IncompatibleKeySetError
from hybrid_jit.hybrid.decision_tree import DecisionTree


A = DiscreteKey(Key(0), 2)
B = DiscreteKey(Key(1), 3)
C = DiscreteKey(Key(2), 2)


def test_lookup_every_assignment():
    """
    Tree over A(2) x B(3) with 6 distinct leaves, first key slowest:
        (a, b) -> 10 * a + b
    """
    tree = DecisionTree.from_leaves((A, B), [0, 1, 2, 10, 11, 12])

    for a in range(2):
        for b in range(3):
            assert tree({A.key: a, B.key: b}) == 10 * a + b

    assert tree.nr_leaves() == 6
    assert tree.nr_unique_leaves() == 6
    assert tree.leaves() == [0, 1, 2, 10, 11, 12]


def test_lookup_errors():
    tree = DecisionTree.from_leaves((A, B), list(range(6)))

    with pytest.raises(MissingKeyError):
        tree({A.key: 0})
    with pytest.raises(OutOfDomainError):
        tree({A.key: 0, B.key: 3})
    with pytest.raises(OutOfDomainError):
        tree({A.key: 2, B.key: 0})


def test_lookup_accepts_hybrid_values_and_extra_keys():
    tree = DecisionTree.from_leaves((A,), ["left", "right"])
    values = HybridValues(discrete={A.key: 1, C.key: 0})
    assert tree(values) == "right"


def test_wrong_number_of_leaves():
    with pytest.raises(ValueError):
        DecisionTree.from_leaves((A, B), [1, 2, 3])
    with pytest.raises(ValueError):
        DecisionTree.from_leaves((A, A), [1, 2, 3, 4])


def test_identical_leaves_are_shared():
    """
    When every branch of B holds the same object, the subtrees under A
    collapse to one node each, and the single value is stored once.
    """
    shared = object()
    tree = DecisionTree.from_leaves((A, B), [shared] * 6)

    assert tree.nr_leaves() == 6
    assert tree.nr_unique_leaves() == 1
    assert tree.root.children[0] is tree.root.children[1]

    unshared = DecisionTree.from_leaves(
        (A, B), [shared] * 6, HybridConfig(share_subtrees=False)
    )
    assert unshared.nr_unique_leaves() == 6
    assert tree.equals(unshared)


def test_choose_and_restrict():
    """
    Fixing B = 2 leaves a tree over A only; fixing both leaves a constant.
    """
    tree = DecisionTree.from_leaves((A, B), [0, 1, 2, 10, 11, 12])

    sub = tree.choose(B, 2)
    assert sub.keys == (A,)
    assert sub({A.key: 0}) == 2
    assert sub({A.key: 1}) == 12

    by_id = tree.choose(A.key, 1)
    assert by_id.keys == (B,)
    assert by_id.leaves() == [10, 11, 12]

    full = tree.restrict({A.key: 1, B.key: 0, C.key: 1})
    assert full.keys == ()
    assert full({}) == 10

    with pytest.raises(MissingKeyError):
        tree.choose(C, 0)
    with pytest.raises(OutOfDomainError):
        tree.choose(B, 5)


def test_apply_keeps_sharing():
    calls = []

    def double(x):
        calls.append(x)
        return 2 * x

    tree = DecisionTree.from_leaves((A, B), [7] * 6)
    doubled = tree.apply(double)

    assert doubled.leaves() == [14] * 6
    # small ints are cached, so every branch holds the same leaf object
    assert len(calls) == 1


def test_apply_with_assignment():
    tree = DecisionTree.from_leaves((A,), [1, 1])
    tagged = tree.apply_with_assignment(lambda a, v: v + a[A.key])
    assert tagged.leaves() == [1, 2]


def test_from_function_and_fold():
    tree = DecisionTree.from_function((A, C), lambda a: a[A.key] + 2 * a[C.key])
    assert tree.leaves() == [0, 2, 1, 3]
    assert tree.fold(lambda acc, leaf: acc + leaf, 0) == 6


def test_combine_same_key():
    """
    Combining two single-key trees over the same key pairs up the leaves
    branch by branch.
    """
    t1 = DecisionTree.from_leaves((A,), [1, 2])
    t2 = DecisionTree.from_leaves((A,), [10, 20])

    combined = t1.combine(t2, lambda x, y: x + y)

    assert combined.keys == (A,)
    assert combined({A.key: 0}) == 11
    assert combined({A.key: 1}) == 22


def test_combine_takes_union_of_keys():
    """
    Disjoint keys produce the product tree, in first-seen key order.
    """
    t1 = DecisionTree.from_leaves((A,), ["a0", "a1"])
    t2 = DecisionTree.from_leaves((B,), ["b0", "b1", "b2"])

    combined = t1.combine(t2, lambda x, y: x + y)

    assert combined.keys == (A, B)
    assert combined.nr_leaves() == 6
    assert combined({A.key: 1, B.key: 2}) == "a1b2"


def test_combine_with_different_branching_orders():
    """
    t1 branches A then B, t2 branches B then A; the combination still
    pairs leaves by assignment.
    """
    t1 = DecisionTree.from_function((A, B), lambda a: (a[A.key], a[B.key]))
    t2 = DecisionTree.from_function((B, A), lambda a: (a[A.key], a[B.key]))

    combined = t1.combine(t2, lambda x, y: x == y)

    assert combined.keys == (A, B)
    assert all(combined.leaves())


def test_combine_with_constant_tree():
    t = DecisionTree.from_leaves((A,), [1, 2])
    c = DecisionTree.leaf(100)
    assert t.combine(c, lambda x, y: x + y).leaves() == [101, 102]
    assert c.combine(t, lambda x, y: x + y).keys == (A,)


def test_combine_cardinality_mismatch():
    t1 = DecisionTree.from_leaves((A,), [1, 2])
    t2 = DecisionTree.from_leaves((DiscreteKey(A.key, 3),), [1, 2, 3])
    with pytest.raises(IncompatibleKeySetError):
        t1.combine(t2, lambda x, y: x + y)


def test_equals_ignores_branching_order_and_sharing():
    t1 = DecisionTree.from_function((A, C), lambda a: a[A.key] * 2 + a[C.key])
    t2 = DecisionTree.from_function((C, A), lambda a: a[A.key] * 2 + a[C.key])
    t3 = DecisionTree.from_leaves((A, C), [0, 1, 2, 4])

    assert t1.equals(t2)
    assert t2.equals(t1)
    assert not t1.equals(t3)
    # different key sets are never equal
    assert not t1.equals(t1.choose(A, 0))


def test_equals_numeric_tolerance():
    t1 = DecisionTree.from_leaves((A,), [1.0, 2.0])
    t2 = DecisionTree.from_leaves((A,), [1.0, 2.0 + 1e-6])

    assert t1.equals(t2, tol=1e-5)
    assert not t1.equals(t2, tol=1e-8)


@pytest.mark.parametrize("value", [-0.5, 0.5, 1.7, 1.0])
def test_lookup_rejects_fractional_values(value):
    """
    A fractional discrete value never selects a branch.
    """
    tree = DecisionTree.from_leaves((A,), ["a0", "a1"])

    with pytest.raises(OutOfDomainError):
        tree({A.key: value})
    with pytest.raises(OutOfDomainError):
        tree.choose(A, value)
    with pytest.raises(OutOfDomainError):
        tree.restrict({A.key: value})
