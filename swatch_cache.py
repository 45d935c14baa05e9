# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Computation cache
=================
Bounded LRU cache for spectral -> Lab results.

  1.  ``ComputationCache`` is an ordinary object.  Callers construct one and
      inject it wherever results should be shared; nothing is cached at
      module level.
  2.  Keys are structural: ``CacheKey(formula_version, curve_fingerprint,
      context_fingerprint)``.  The curve fingerprint hashes the raw
      wavelength / reflectance buffers, the context fingerprint hashes the
      weighting table and the result-affecting settings.  Bumping
      ``FORMULA_VERSION`` makes every older key a miss.
  3.  Every access, including a promoting ``get``, runs under one
      ``threading.RLock``.
  4.  ``CachedSpectralConverter.batch_spectral_to_lab`` checks and populates
      the cache item by item, so a batch where only some curves changed
      recomputes only those.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Dict, Final, Generic, Hashable, Iterable, List, NamedTuple, Optional, TypeVar

from swatch_colorengine import SpectralPipeline
from swatch_config import DEFAULT_SETTINGS, EngineSettings
from swatch_samples import LabColor, SpectralCurve
from swatch_tables import WeightingTable, WeightingTableStore

logger = logging.getLogger(__name__)

__all__ = [
    "FORMULA_VERSION",
    "CacheKey",
    "CacheStats",
    "ComputationCache",
    "CachedSpectralConverter",
    "make_cache_key",
]

# Bump on any change to the conversion math or its inputs.
FORMULA_VERSION: Final[str] = "1.0.0"

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class CacheKey(NamedTuple):
    formula_version:     str
    curve_fingerprint:   str
    context_fingerprint: str


class CacheStats(NamedTuple):
    size:     int
    max_size: int
    hits:     int
    misses:   int

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "size": self.size,
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": self.hit_ratio,
        }


class ComputationCache(Generic[K, V]):
    """Thread-safe LRU map with hit / miss accounting."""

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Membership test; does not promote and does not count."""
        with self._lock:
            return key in self._entries

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            try:
                value = self._entries[key]
            except KeyError:
                self._misses += 1
                return None
            # hit: promote to MRU
            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._capacity:
                evicted, _ = self._entries.popitem(last=False)  # evict LRU
                logger.debug("Cache full (%d), evicted %s", self._capacity, evicted)
            self._entries[key] = value

    def clear(self) -> None:
        """Drops all entries and resets the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(len(self._entries), self._capacity, self._hits, self._misses)

    def __repr__(self) -> str:
        s = self.stats()
        return f"ComputationCache(size={s.size}/{s.max_size}, hit_ratio={s.hit_ratio:.2f})"


def make_cache_key(curve: SpectralCurve, table: WeightingTable, settings: EngineSettings,
                   formula_version: str = FORMULA_VERSION) -> CacheKey:
    context = hashlib.blake2b(digest_size=16)
    context.update(table.fingerprint.encode("ascii"))
    context.update(settings.fingerprint.encode("ascii"))
    return CacheKey(formula_version, curve.fingerprint, context.hexdigest())


class CachedSpectralConverter:
    """
    Spectral -> Lab conversion through a weighting-table store and a cache.

    Falls back to the D50 / 2 / 5 table when the configured table is not in
    the store; if neither exists the fallback Lab is returned and nothing is
    cached.
    """

    def __init__(self, store: WeightingTableStore,
                 settings: EngineSettings = DEFAULT_SETTINGS,
                 cache: Optional[ComputationCache[CacheKey, LabColor]] = None,
                 formula_version: str = FORMULA_VERSION) -> None:
        self.store = store
        self.settings = settings
        self.cache: ComputationCache[CacheKey, LabColor] = (
            cache if cache is not None else ComputationCache(settings.cache_capacity)
        )
        self.formula_version = formula_version

    def resolve_table(self, table: Optional[WeightingTable] = None) -> Optional[WeightingTable]:
        if table is not None:
            return table
        return self.store.resolve(self.settings.table_key)

    def spectral_to_lab(self, curve: Optional[SpectralCurve],
                        table: Optional[WeightingTable] = None,
                        fallback: Optional[LabColor] = None) -> LabColor:
        fallback = fallback if fallback is not None else LabColor(0.0, 0.0, 0.0)
        table = self.resolve_table(table)
        if curve is None or table is None:
            return SpectralPipeline.spectral_to_lab(curve, table, fallback=fallback)

        key = make_cache_key(curve, table, self.settings, self.formula_version)
        lab = self.cache.get(key)
        if lab is not None:
            logger.debug("Cache hit %s", key.curve_fingerprint)
            return lab
        logger.debug("Cache miss %s", key.curve_fingerprint)

        lab = SpectralPipeline.spectral_to_lab(
            curve, table,
            tails=self.settings.tails,
            normalize=self.settings.normalize_reflectance,
            fallback=fallback,
        )
        if lab is not fallback:
            self.cache.set(key, lab)
        return lab

    def batch_spectral_to_lab(self, curves: Iterable[Optional[SpectralCurve]],
                              table: Optional[WeightingTable] = None,
                              fallback: Optional[LabColor] = None) -> List[LabColor]:
        """Per-item cached conversion; items are looked up and stored in order."""
        table = self.resolve_table(table)
        return [self.spectral_to_lab(curve, table, fallback) for curve in curves]
