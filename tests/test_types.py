from __future__ import annotations

import pytest
import jax.numpy as jnp

from hybrid_jit.core.types import Key, DiscreteKey, HybridValues
from hybrid_jit.core.errors import MissingKeyError, OutOfDomainError


def test_discrete_key_requires_two_values():
    DiscreteKey(Key(0), 2)
    with pytest.raises(ValueError):
        DiscreteKey(Key(0), 1)


def test_discrete_key_equality_includes_cardinality():
    assert DiscreteKey(Key(3), 2) == DiscreteKey(Key(3), 2)
    assert DiscreteKey(Key(3), 2) != DiscreteKey(Key(3), 4)
    assert len({DiscreteKey(Key(3), 2), DiscreteKey(Key(3), 2)}) == 1


def test_discrete_key_check_domain():
    m = DiscreteKey(Key(7), 3)
    assert m.check(0) == 0
    assert m.check(2) == 2
    with pytest.raises(OutOfDomainError):
        m.check(3)
    with pytest.raises(OutOfDomainError):
        m.check(-1)


def test_hybrid_values_lookup():
    """
    Continuous and discrete parts are looked up independently; missing
    entries and out-of-range values raise the hybrid errors.
    """
    m = DiscreteKey(Key(100), 2)
    values = HybridValues(
        continuous={Key(1): jnp.array([1.0, 2.0])},
        discrete={Key(100): 1},
    )

    assert jnp.allclose(values.at(Key(1)), jnp.array([1.0, 2.0]))
    assert values.discrete_value(m) == 1

    with pytest.raises(MissingKeyError):
        values.at(Key(2))
    with pytest.raises(KeyError):
        values.discrete_value(DiscreteKey(Key(101), 2))

    bad = HybridValues(discrete={Key(100): 2})
    with pytest.raises(OutOfDomainError):
        bad.discrete_value(m)


def test_hybrid_values_insert_overrides():
    base = HybridValues(continuous={Key(1): jnp.zeros(1)}, discrete={Key(100): 0})
    extra = HybridValues(continuous={Key(2): jnp.ones(1)}, discrete={Key(100): 1})

    merged = base.insert(extra)

    assert set(merged.continuous) == {1, 2}
    assert merged.discrete[Key(100)] == 1
    # originals untouched
    assert base.discrete[Key(100)] == 0


@pytest.mark.parametrize("value", [-0.5, 0.5, 1.7, 1.0, "1", None])
def test_discrete_key_check_rejects_non_integers(value):
    """
    Fractional or non-numeric values are out of the domain, not truncated.
    """
    m = DiscreteKey(Key(7), 3)
    with pytest.raises(OutOfDomainError):
        m.check(value)


def test_discrete_key_check_accepts_integer_like_values():
    m = DiscreteKey(Key(7), 3)
    assert m.check(jnp.array(2, dtype=jnp.int32)) == 2
    assert isinstance(m.check(jnp.array(1, dtype=jnp.int32)), int)


@pytest.mark.parametrize("cardinality", [2.5, "3", None])
def test_discrete_key_cardinality_must_be_integer(cardinality):
    with pytest.raises(TypeError):
        DiscreteKey(Key(0), cardinality)


def test_discrete_key_stores_int_cardinality():
    m = DiscreteKey(Key(0), jnp.array(3, dtype=jnp.int32))
    assert type(m.cardinality) is int
    assert m == DiscreteKey(Key(0), 3)


def test_hybrid_values_hashable_by_identity():
    values = HybridValues(continuous={Key(1): jnp.zeros(1)}, discrete={Key(100): 0})
    same_content = HybridValues(continuous=values.continuous, discrete=values.discrete)

    cache = {values: "hit"}
    assert cache[values] == "hit"
    assert values == values
    assert values != same_content
