# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""Configuration objects shared by the hybrid layer."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class HybridConfig:
    tol: float = 1e-9             # default tolerance for equals()
    share_subtrees: bool = True   # hash-cons identical subtrees on construction


DEFAULT_CONFIG = HybridConfig()
DEFAULT_TOL = DEFAULT_CONFIG.tol
