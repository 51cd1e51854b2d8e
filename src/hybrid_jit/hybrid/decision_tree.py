# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Decision trees over discrete keys.

A :class:`DecisionTree` maps every assignment of its discrete keys to a
leaf value. Internal nodes (:class:`Choice`) branch on one
:class:`DiscreteKey` into ``cardinality`` children; leaves (:class:`Leaf`)
hold the value. In the hybrid layer the leaves are
:class:`GraphAndConstant`, one continuous cost per discrete hypothesis.

Structure
---------
• Each declared key is branched on exactly once along every root-to-leaf
  path, so a full assignment always reaches a leaf.

• Nodes are immutable and may be shared. Two branches that lead to the
  same value can point at the same node object, so in memory a tree is a
  DAG. Python reference counting gives shared subtrees the right
  lifetime; nothing here frees nodes explicitly.

• Everything observable (lookup, ``equals``, ``leaves``) is defined over
  the logical assignment -> leaf mapping. Sharing topology and branching
  order never change the result.

Primary Methods
---------------
from_leaves(keys, leaves)
    Build from a flat list of leaves, first key varying slowest.

__call__(assignment)
    Leaf for a full assignment.

choose(key, value) / restrict(assignment)
    Sub-tree for a partial assignment.

apply(fn)
    Map leaves, keeping sharing.

combine(other, fn)
    Key-union traversal: the result is defined over
    ``collect_discrete_keys(self.keys, other.keys)`` and its leaf at each
    joint assignment is ``fn(self_leaf, other_leaf)``.
"""

from __future__ import annotations
import itertools
import logging
import math
import numbers
from dataclasses import dataclass
from typing import (
    Any, Callable, Dict, Generic, Iterator, List, Mapping, Optional,
    Sequence, Tuple, TypeVar, Union,
)

from ..core.config import DEFAULT_CONFIG, DEFAULT_TOL, HybridConfig
from ..core.errors import MissingKeyError
from ..core.keys import collect_discrete_keys
from ..core.types import DiscreteKey, DiscreteKeys, DiscreteValues, HybridValues, Key

logger = logging.getLogger(__name__)

Y = TypeVar("Y")
Z = TypeVar("Z")

Assignment = Union[Mapping[Key, int], HybridValues]


@dataclass(frozen=True, eq=False)
class Leaf(Generic[Y]):
    value: Y


@dataclass(frozen=True, eq=False)
class Choice:
    key: DiscreteKey
    children: Tuple[Any, ...]


Node = Union[Leaf, Choice]


def _discrete_part(assignment: Assignment) -> Mapping[Key, int]:
    if isinstance(assignment, HybridValues):
        return assignment.discrete
    return assignment


class _NodeFactory:
    """
    Creates nodes, reusing an existing one when an identical node was
    already built. Leaves are identical when they hold the same object;
    choices when they branch on the same key into the same child objects.
    """

    def __init__(self, share: bool) -> None:
        self.share = share
        self._cache: Dict[tuple, Node] = {}

    def leaf(self, value) -> Leaf:
        if not self.share:
            return Leaf(value)
        sig = ("leaf", id(value))
        node = self._cache.get(sig)
        if node is None:
            node = Leaf(value)
            self._cache[sig] = node
        return node

    def choice(self, key: DiscreteKey, children: Sequence[Node]) -> Choice:
        children = tuple(children)
        if not self.share:
            return Choice(key, children)
        sig = ("choice", key, tuple(id(c) for c in children))
        node = self._cache.get(sig)
        if node is None:
            node = Choice(key, children)
            self._cache[sig] = node
        return node


class _Restrictor:
    """Memoized restriction of nodes to ``key = value``."""

    def __init__(self) -> None:
        # values hold the source node too, so ids stay valid
        self._memo: Dict[tuple, Tuple[Node, Node]] = {}

    def __call__(self, node: Node, dkey: DiscreteKey, value: int) -> Node:
        if isinstance(node, Leaf):
            return node
        sig = (id(node), dkey.key, value)
        hit = self._memo.get(sig)
        if hit is not None:
            return hit[1]

        if node.key.key == dkey.key:
            out = node.children[value]
        else:
            children = tuple(self(c, dkey, value) for c in node.children)
            if all(c is o for c, o in zip(children, node.children)):
                out = node
            else:
                out = Choice(node.key, children)
        self._memo[sig] = (node, out)
        return out


class DecisionTree(Generic[Y]):
    """
    Immutable decision tree from assignments of ``keys`` to values of type Y.

    Use the classmethod constructors; ``__init__`` takes an already built
    root node and the keys it branches on.
    """

    __slots__ = ("root", "keys")

    def __init__(self, root: Node, keys: DiscreteKeys) -> None:
        self.root = root
        self.keys: DiscreteKeys = tuple(keys)

    # --- Construction ---

    @classmethod
    def leaf(cls, value: Y) -> "DecisionTree[Y]":
        """A tree with no discrete keys holding a single value."""
        return cls(Leaf(value), ())

    @classmethod
    def from_leaves(
        cls,
        keys: Sequence[DiscreteKey],
        leaves: Sequence[Y],
        cfg: HybridConfig = DEFAULT_CONFIG,
    ) -> "DecisionTree[Y]":
        """
        Build a tree over ``keys`` from ``prod(cardinalities)`` leaves.

        Leaves are listed with the first key varying slowest, i.e. in the
        order of ``itertools.product(range(c0), range(c1), ...)``.
        """
        keys = tuple(keys)
        ids = [dk.key for dk in keys]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate discrete keys in {keys}")

        leaves = list(leaves)
        expected = math.prod(dk.cardinality for dk in keys)
        if len(leaves) != expected:
            raise ValueError(
                f"decision tree over {keys} needs {expected} leaves, got {len(leaves)}"
            )

        factory = _NodeFactory(cfg.share_subtrees)

        def build(level: int, offset: int, stride: int) -> Node:
            if level == len(keys):
                return factory.leaf(leaves[offset])
            dk = keys[level]
            sub = stride // dk.cardinality
            children = [build(level + 1, offset + v * sub, sub) for v in range(dk.cardinality)]
            return factory.choice(dk, children)

        root = build(0, 0, expected)
        logger.debug("built decision tree over %s with %d leaves", keys, expected)
        return cls(root, keys)

    @classmethod
    def from_function(
        cls,
        keys: Sequence[DiscreteKey],
        fn: Callable[[DiscreteValues], Y],
        cfg: HybridConfig = DEFAULT_CONFIG,
    ) -> "DecisionTree[Y]":
        """Build a tree whose leaf at each assignment is ``fn(assignment)``."""
        keys = tuple(keys)
        leaves = [fn(a) for a in _enumerate(keys)]
        return cls.from_leaves(keys, leaves, cfg)

    # --- Lookup ---

    def __call__(self, assignment: Assignment) -> Y:
        """
        Return the leaf for a full assignment of this tree's keys.

        Extra entries in ``assignment`` are ignored.
        """
        values = _discrete_part(assignment)
        node = self.root
        while isinstance(node, Choice):
            dk = node.key
            if dk.key not in values:
                raise MissingKeyError(dk.key, "decision tree lookup")
            node = node.children[dk.check(values[dk.key])]
        return node.value

    def _declared(self, key: Union[Key, DiscreteKey]) -> DiscreteKey:
        kid = key.key if isinstance(key, DiscreteKey) else key
        for dk in self.keys:
            if dk.key == kid:
                return dk
        raise MissingKeyError(kid, "decision tree keys")

    def choose(self, key: Union[Key, DiscreteKey], value: int) -> "DecisionTree[Y]":
        """Sub-tree with ``key`` fixed to ``value``; ``key`` must be declared."""
        dk = self._declared(key)
        v = dk.check(value)
        root = _Restrictor()(self.root, dk, v)
        return DecisionTree(root, tuple(k for k in self.keys if k.key != dk.key))

    def restrict(self, assignment: Assignment) -> "DecisionTree[Y]":
        """Sub-tree with every declared key present in ``assignment`` fixed."""
        values = _discrete_part(assignment)
        restrictor = _Restrictor()
        root = self.root
        remaining = []
        for dk in self.keys:
            if dk.key in values:
                root = restrictor(root, dk, dk.check(values[dk.key]))
            else:
                remaining.append(dk)
        return DecisionTree(root, tuple(remaining))

    # --- Traversal ---

    def apply(self, fn: Callable[[Y], Z]) -> "DecisionTree[Z]":
        """Map every leaf through ``fn``; a shared leaf is mapped once."""
        memo: Dict[int, Tuple[Node, Node]] = {}

        def go(node: Node) -> Node:
            hit = memo.get(id(node))
            if hit is not None:
                return hit[1]
            if isinstance(node, Leaf):
                out = Leaf(fn(node.value))
            else:
                out = Choice(node.key, tuple(go(c) for c in node.children))
            memo[id(node)] = (node, out)
            return out

        return DecisionTree(go(self.root), self.keys)

    def apply_with_assignment(
        self, fn: Callable[[DiscreteValues, Y], Z]
    ) -> "DecisionTree[Z]":
        """Map every leaf through ``fn(assignment, leaf)``."""
        return DecisionTree.from_function(self.keys, lambda a: fn(a, self(a)))

    def combine(
        self,
        other: "DecisionTree[Z]",
        fn: Callable[[Y, Z], Any],
        cfg: HybridConfig = DEFAULT_CONFIG,
    ) -> "DecisionTree":
        """
        Combine two trees leaf-wise over the union of their keys.

        The result branches on ``collect_discrete_keys(self.keys,
        other.keys)`` in that order. Its leaf at each joint assignment is
        ``fn(self(assignment), other(assignment))``.

        Raises:
            IncompatibleKeySetError: if a shared key has different
                cardinalities in the two trees.
        """
        keys = collect_discrete_keys(self.keys, other.keys)
        restrict = _Restrictor()
        factory = _NodeFactory(cfg.share_subtrees)
        memo: Dict[tuple, Node] = {}

        def build(level: int, a: Node, b: Node) -> Node:
            sig = (level, id(a), id(b))
            if cfg.share_subtrees and sig in memo:
                return memo[sig]
            if level == len(keys):
                # all keys fixed, both sides are leaves
                out = factory.leaf(fn(a.value, b.value))
            else:
                dk = keys[level]
                out = factory.choice(
                    dk,
                    [build(level + 1, restrict(a, dk, v), restrict(b, dk, v))
                     for v in range(dk.cardinality)],
                )
            memo[sig] = out
            return out

        root = build(0, self.root, other.root)
        logger.debug("combined trees over %s and %s into %s", self.keys, other.keys, keys)
        return DecisionTree(root, keys)

    def assignments(self) -> Iterator[DiscreteValues]:
        """All assignments of this tree's keys, first key varying slowest."""
        return _enumerate(self.keys)

    def leaves(self) -> List[Y]:
        """Leaf values in :meth:`assignments` order (shared leaves repeat)."""
        return [self(a) for a in self.assignments()]

    def nr_leaves(self) -> int:
        return math.prod(dk.cardinality for dk in self.keys)

    def nr_unique_leaves(self) -> int:
        """Number of distinct leaf nodes actually stored."""
        seen = set()
        stack = [self.root]
        leaves = set()
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if isinstance(node, Leaf):
                leaves.add(id(node))
            else:
                stack.extend(node.children)
        return len(leaves)

    def fold(self, fn: Callable[[Z, Y], Z], init: Z) -> Z:
        """Reduce the leaves in assignment order: ``acc = fn(acc, leaf)``."""
        acc = init
        for leaf in self.leaves():
            acc = fn(acc, leaf)
        return acc

    # --- Testable ---

    def equals(
        self,
        other: "DecisionTree",
        tol: float = DEFAULT_TOL,
        leaf_equals: Optional[Callable[[Any, Any, float], bool]] = None,
    ) -> bool:
        """
        True if both trees declare the same keys and agree on every
        assignment. Branching order and sharing are irrelevant.
        """
        if not isinstance(other, DecisionTree):
            return False
        if set(self.keys) != set(other.keys):
            return False
        compare = leaf_equals or _leaf_equals
        return all(compare(self(a), other(a), tol) for a in self.assignments())


def _enumerate(keys: DiscreteKeys) -> Iterator[DiscreteValues]:
    ranges = [range(dk.cardinality) for dk in keys]
    for values in itertools.product(*ranges):
        yield {dk.key: v for dk, v in zip(keys, values)}


def _leaf_equals(a, b, tol: float) -> bool:
    if hasattr(a, "equals"):
        return a.equals(b, tol)
    if isinstance(a, numbers.Number) and isinstance(b, numbers.Number):
        return abs(a - b) <= tol
    return a == b
