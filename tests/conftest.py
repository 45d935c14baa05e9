"""Shared fixtures for the Swatch test suite."""

from __future__ import annotations

import pytest

from swatch_cache import ComputationCache
from swatch_samples import SpectralCurve
from swatch_tables import DEFAULT_TABLE_KEY, WeightingTable, WeightingTableStore

SCENARIO_POINTS = {400: 0.10, 450: 0.20, 500: 0.30, 550: 0.40, 600: 0.50, 650: 0.60, 700: 0.70}


@pytest.fixture(scope="session")
def bundled_store() -> WeightingTableStore:
    return WeightingTableStore.load_bundled()


@pytest.fixture(scope="session")
def d50_table(bundled_store: WeightingTableStore) -> WeightingTable:
    return bundled_store[DEFAULT_TABLE_KEY]


@pytest.fixture(scope="session")
def d65_table(bundled_store: WeightingTableStore) -> WeightingTable:
    return bundled_store[("D65", "2", 5)]


@pytest.fixture
def scenario_curve() -> SpectralCurve:
    return SpectralCurve.from_mapping(SCENARIO_POINTS)


@pytest.fixture
def cache() -> ComputationCache:
    return ComputationCache(capacity=1000)
