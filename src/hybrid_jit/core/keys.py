# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Key-merge utilities.

Pure functions that combine the key sets of two factors when they are
composed into a larger graph or product:

collect_keys(continuous_keys, discrete_keys)
    Continuous identifiers followed by discrete identifiers. This is the
    full key list of a hybrid factor.

collect_keys(keys1, keys2)
    Concatenation of two continuous key sequences. Duplicates are kept:
    a key shared by two factors is a shared variable, and deduplication is
    left to the graph that owns the factors.

collect_discrete_keys(keys1, keys2)
    Union by identifier in first-seen order. A shared identifier must have
    the same cardinality on both sides.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, Sequence, Union

from .errors import IncompatibleKeySetError
from .types import DiscreteKey, DiscreteKeys, Key, KeyVector

logger = logging.getLogger(__name__)


def collect_keys(
    keys1: Sequence[Key],
    keys2: Union[Sequence[Key], Sequence[DiscreteKey]],
) -> KeyVector:
    """
    Concatenate two key sequences.

    If ``keys2`` holds :class:`DiscreteKey` entries, their identifiers are
    appended after ``keys1`` (continuous-first, discrete-second). Otherwise
    both are continuous key sequences and are concatenated as-is.
    """
    out = [Key(k) for k in keys1]
    for k in keys2:
        out.append(k.key if isinstance(k, DiscreteKey) else Key(k))
    return tuple(out)


def collect_discrete_keys(
    keys1: Iterable[DiscreteKey],
    keys2: Iterable[DiscreteKey],
) -> DiscreteKeys:
    """
    Union two discrete key sequences by identifier.

    The result holds every key of ``keys1`` in order, followed by the keys
    of ``keys2`` whose identifier has not been seen yet.

    Raises:
        IncompatibleKeySetError: if an identifier occurs with two different
            cardinalities.
    """
    seen: Dict[Key, DiscreteKey] = {}
    for dk in list(keys1) + list(keys2):
        prev = seen.get(dk.key)
        if prev is None:
            seen[dk.key] = dk
        elif prev.cardinality != dk.cardinality:
            logger.debug("cardinality clash on key %s: %s vs %s", dk.key, prev, dk)
            raise IncompatibleKeySetError(dk.key, prev.cardinality, dk.cardinality)
    return tuple(seen.values())
