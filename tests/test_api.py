"""Tests for the library surface: free functions and ``ColorimetryEngine``."""

from __future__ import annotations

import pytest

import swatch_api
from swatch_api import ColorimetryEngine, compare_substrates
from swatch_cache import ComputationCache
from swatch_config import EngineSettings
from swatch_metrics import DeltaEMethod
from swatch_samples import (
    DataQuality,
    DisplayHex,
    DisplayOnlySample,
    LabColor,
    MeasuredSample,
    SpectralCurve,
    SpectralSample,
)
from swatch_substrate import Verdict
from swatch_tables import WeightingTable, WeightingTableStore

SCENARIO_LAB = (34.7338894405, 6.6615239844, 16.0429740839)


@pytest.fixture
def engine(bundled_store: WeightingTableStore) -> ColorimetryEngine:
    return ColorimetryEngine(bundled_store)


def test_free_functions(scenario_curve: SpectralCurve, d50_table: WeightingTable) -> None:
    """The free functions take every input explicitly."""
    lab = swatch_api.spectral_to_lab(scenario_curve, d50_table)
    assert (lab.L, lab.a, lab.b) == pytest.approx(SCENARIO_LAB, abs=1e-8)
    assert swatch_api.delta_e(lab, lab, "dE00") == 0.0

    decision = compare_substrates(LabColor(50.0, 20.0, -10.0), LabColor(52.0, 22.0, -9.0), "dE00")
    assert decision.verdict is Verdict.MISMATCH_DETECTED


def test_engine_spectral_conversion(engine: ColorimetryEngine, scenario_curve: SpectralCurve) -> None:
    """The engine uses the configured D50/2/5 table."""
    xyz = engine.spectral_to_xyz(scenario_curve)
    assert xyz is not None
    assert (xyz.X, xyz.Y, xyz.Z) == pytest.approx((8.8265, 8.3658, 3.7594), abs=1e-9)
    lab = engine.spectral_to_lab(scenario_curve)
    assert (lab.L, lab.a, lab.b) == pytest.approx(SCENARIO_LAB, abs=1e-8)


def test_engine_without_store_loads_bundled_tables(scenario_curve: SpectralCurve) -> None:
    engine = ColorimetryEngine()
    assert engine.table is not None
    assert str(engine.table.key) == "D50/2/5"
    assert engine.spectral_to_lab(scenario_curve).L == pytest.approx(SCENARIO_LAB[0], abs=1e-8)


def test_engine_method_defaults_to_settings(bundled_store: WeightingTableStore) -> None:
    """Methods omitted per call come from the settings."""
    a, b = LabColor(50.0, 20.0, -10.0), LabColor(52.0, 22.0, -9.0)
    engine = ColorimetryEngine(bundled_store, EngineSettings(delta_e_method="dE76"))
    assert engine.delta_e(a, b) == pytest.approx(3.0)
    assert engine.delta_e(a, b, DeltaEMethod.DE00) == pytest.approx(2.4471686707, abs=1e-9)
    decision = engine.compare_substrates(a, b)
    assert decision.method is DeltaEMethod.DE76


def test_engine_threshold_from_settings(bundled_store: WeightingTableStore) -> None:
    engine = ColorimetryEngine(bundled_store, EngineSettings(mismatch_threshold=2.5))
    assert engine.compare_substrates(LabColor(50.0, 20.0, -10.0), LabColor(52.0, 22.0, -9.0)).is_match


def test_engine_compare_spectra(engine: ColorimetryEngine, scenario_curve: SpectralCurve) -> None:
    decision = engine.compare_substrate_spectra(scenario_curve, scenario_curve)
    assert decision is not None and decision.is_match
    assert engine.compare_samples(SpectralSample(scenario_curve),
                                  MeasuredSample(LabColor(*SCENARIO_LAB))).delta_e == pytest.approx(0.0, abs=1e-6)


def test_resolve_display_hex_priority(engine: ColorimetryEngine, scenario_curve: SpectralCurve) -> None:
    """Spectral, then measured Lab, then stored hex, then the default grey."""
    assert engine.resolve_display_hex(SpectralSample(scenario_curve)) == DisplayHex("#684C2E")
    assert engine.resolve_display_hex(MeasuredSample(LabColor(*SCENARIO_LAB))) == DisplayHex("#684C2E")
    assert engine.resolve_display_hex(DisplayOnlySample(DisplayHex("#123abc"))) == DisplayHex("#123ABC")
    assert engine.resolve_display_hex(None) == DisplayHex("#E5E7EB")


def test_resolve_display_hex_unusable_data(engine: ColorimetryEngine) -> None:
    """Spectra with no usable samples and non-finite Lab fall back to the default grey."""
    assert engine.resolve_display_hex(SpectralSample(SpectralCurve.empty())) == DisplayHex("#E5E7EB")
    nan_lab = MeasuredSample(LabColor(float("nan"), 0.0, 0.0))
    assert engine.resolve_display_hex(nan_lab) == DisplayHex("#E5E7EB")


def test_data_quality(engine: ColorimetryEngine, scenario_curve: SpectralCurve) -> None:
    assert engine.data_quality(SpectralSample(scenario_curve)) is DataQuality.EXCELLENT
    assert engine.data_quality(MeasuredSample(LabColor(50.0, 0.0, 0.0))) is DataQuality.GOOD
    assert engine.data_quality(DisplayOnlySample(DisplayHex("#FFFFFF"))) is DataQuality.LIMITED
    assert engine.data_quality(None) is DataQuality.POOR


def test_cache_stats_and_clear(engine: ColorimetryEngine, scenario_curve: SpectralCurve) -> None:
    """Stats report size, capacity, hits, misses and ratio; clear resets them."""
    engine.spectral_to_lab(scenario_curve)
    engine.spectral_to_lab(scenario_curve)
    stats = engine.get_cache_stats()
    assert stats == {"size": 1, "max_size": 1000, "hits": 1, "misses": 1, "hit_ratio": 0.5}
    engine.clear_cache()
    assert engine.get_cache_stats()["size"] == 0
    assert engine.get_cache_stats()["hits"] == 0


def test_engines_share_only_an_injected_cache(bundled_store: WeightingTableStore,
                                              scenario_curve: SpectralCurve) -> None:
    """Private caches stay separate; a shared cache serves both engines."""
    a, b = ColorimetryEngine(bundled_store), ColorimetryEngine(bundled_store)
    a.spectral_to_lab(scenario_curve)
    assert len(b.cache) == 0

    shared: ComputationCache = ComputationCache(capacity=8)
    c = ColorimetryEngine(bundled_store, cache=shared)
    d = ColorimetryEngine(bundled_store, cache=shared)
    c.spectral_to_lab(scenario_curve)
    d.spectral_to_lab(scenario_curve)
    assert shared.stats().hits == 1
    assert d.get_cache_stats()["max_size"] == 8


def test_cache_capacity_from_settings(bundled_store: WeightingTableStore) -> None:
    engine = ColorimetryEngine(bundled_store, EngineSettings(cache_capacity=2))
    for level in (0.2, 0.4, 0.6):
        engine.spectral_to_lab(SpectralCurve.from_mapping({500: level, 550: level}))
    assert engine.get_cache_stats()["size"] == 2


def test_state_round_trip(bundled_store: WeightingTableStore) -> None:
    settings = EngineSettings(illuminant="D65", delta_e_method="dECMC1:1", mismatch_threshold=1.5)
    engine = ColorimetryEngine(bundled_store, settings)
    restored = ColorimetryEngine.from_state(engine.get_state(), store=bundled_store)
    assert restored.settings == settings
    assert restored.white_point == engine.white_point
    assert "dECMC1:1" in repr(restored)


def test_metadata_summary() -> None:
    """Project metadata matches the packaged version."""
    import __about__

    summary = __about__.metadata_summary()
    assert summary["title"] == "Swatch"
    assert summary["version"] == "0.1.0"
    assert summary["license"] == "LGPL-3.0-or-later"
