# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Library surface
===============
Two equivalent entry points:

  * Free functions with every input explicit (table, white point, method).
  * ``ColorimetryEngine``, which owns a weighting-table store, one
    ``EngineSettings`` value and an injected ``ComputationCache``, and fills
    the table / method / white point from its settings.

The engine holds no hidden global state; two engines never share a cache
unless the same cache object is passed to both.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from swatch_cache import CacheKey, CachedSpectralConverter, ComputationCache
from swatch_colorengine import (
    FALLBACK_LAB,
    SpectralPipeline,
    TailMode,
    chroma_hue_to_lab,
    lab_to_chroma_hue,
    lab_to_hex,
    lab_to_xyz,
    xyz_to_lab,
)
from swatch_config import DEFAULT_SETTINGS, EngineSettings
from swatch_metrics import DeltaEMethod, delta_e
from swatch_samples import (
    WHITE_D50,
    WHITE_POINTS,
    ChromaHue,
    ColorSample,
    DataQuality,
    DisplayHex,
    DisplayOnlySample,
    LabColor,
    MatchableSample,
    MeasuredSample,
    SpectralCurve,
    SpectralSample,
    TristimulusXYZ,
    WhitePoint,
    assess_quality,
)
from swatch_substrate import AdaptationDecision, SubstrateAdaptationEngine
from swatch_tables import WeightingTable, WeightingTableStore

logger = logging.getLogger(__name__)

__all__ = [
    "spectral_to_lab",
    "lab_to_chroma_hue",
    "chroma_hue_to_lab",
    "lab_to_hex",
    "lab_to_xyz",
    "xyz_to_lab",
    "delta_e",
    "compare_substrates",
    "ColorimetryEngine",
]


def spectral_to_lab(curve: Optional[SpectralCurve], table: Optional[WeightingTable],
                    tails: TailMode = "skip", normalize: bool = True,
                    fallback: LabColor = FALLBACK_LAB) -> LabColor:
    """
    Spectral reflectance -> CIE Lab relative to the table's white point.

    Uncached; missing data returns *fallback*.
    """
    return SpectralPipeline.spectral_to_lab(curve, table, tails, normalize, fallback)


def compare_substrates(imported: LabColor, target: LabColor,
                       method: Union[DeltaEMethod, str],
                       threshold: float = 1.0) -> AdaptationDecision:
    return SubstrateAdaptationEngine(threshold).compare_substrates(imported, target, method)


class ColorimetryEngine:
    """
    Settings-driven facade over the conversion, metric and matching layers.

    Args:
        store: Weighting tables; defaults to the bundled D50 / D65 Table 5.
        settings: Engine configuration.
        cache: Shared result cache; a private one of
            ``settings.cache_capacity`` entries is created when omitted.
    """

    def __init__(self, store: Optional[WeightingTableStore] = None,
                 settings: EngineSettings = DEFAULT_SETTINGS,
                 cache: Optional[ComputationCache[CacheKey, LabColor]] = None) -> None:
        self.store = store if store is not None else WeightingTableStore.load_bundled()
        self.settings = settings
        self.converter = CachedSpectralConverter(self.store, settings, cache)
        self.matcher = SubstrateAdaptationEngine(settings.mismatch_threshold)

    @property
    def cache(self) -> ComputationCache[CacheKey, LabColor]:
        return self.converter.cache

    @property
    def table(self) -> Optional[WeightingTable]:
        """Configured table, or the D50 / 2 / 5 fallback."""
        return self.converter.resolve_table()

    @property
    def white_point(self) -> WhitePoint:
        table = self.table
        if table is not None:
            return table.white_point
        return WHITE_POINTS.get(self.settings.illuminant, WHITE_D50)

    def _method(self, method: Optional[Union[DeltaEMethod, str]]) -> DeltaEMethod:
        return DeltaEMethod.parse(self.settings.delta_e_method if method is None else method)

    # -- conversions --------------------------------------------------------
    def spectral_to_xyz(self, curve: SpectralCurve,
                        table: Optional[WeightingTable] = None) -> Optional[TristimulusXYZ]:
        table = self.converter.resolve_table(table)
        if table is None:
            return None
        if self.settings.normalize_reflectance:
            curve = curve.normalized()
        return SpectralPipeline.spectral_to_xyz(curve, table, self.settings.tails)

    def spectral_to_lab(self, curve: Optional[SpectralCurve],
                        table: Optional[WeightingTable] = None,
                        fallback: Optional[LabColor] = None) -> LabColor:
        return self.converter.spectral_to_lab(curve, table, fallback)

    def batch_spectral_to_lab(self, curves: Iterable[Optional[SpectralCurve]],
                              table: Optional[WeightingTable] = None,
                              fallback: Optional[LabColor] = None) -> List[LabColor]:
        return self.converter.batch_spectral_to_lab(curves, table, fallback)

    def lab_to_chroma_hue(self, lab: LabColor) -> ChromaHue:
        return lab_to_chroma_hue(lab)

    def lab_to_hex(self, lab: LabColor, white_point: Optional[WhitePoint] = None,
                   adapt_to_d65: bool = False) -> DisplayHex:
        white = white_point if white_point is not None else self.white_point
        return lab_to_hex(lab, white, adapt_to_d65)

    # -- metrics / matching -------------------------------------------------
    def delta_e(self, a: LabColor, b: LabColor,
                method: Optional[Union[DeltaEMethod, str]] = None) -> float:
        return delta_e(a, b, self._method(method))

    def compare_substrates(self, imported: LabColor, target: LabColor,
                           method: Optional[Union[DeltaEMethod, str]] = None) -> AdaptationDecision:
        return self.matcher.compare_substrates(imported, target, self._method(method))

    def compare_samples(self, imported: MatchableSample, target: MatchableSample,
                        method: Optional[Union[DeltaEMethod, str]] = None) -> Optional[AdaptationDecision]:
        return self.matcher.compare_samples(imported, target, self._method(method), self.converter)

    def compare_substrate_spectra(self, imported: Optional[SpectralCurve],
                                  target: Optional[SpectralCurve],
                                  method: Optional[Union[DeltaEMethod, str]] = None) -> Optional[AdaptationDecision]:
        return self.matcher.compare_substrate_spectra(imported, target, self.converter,
                                                      self._method(method))

    # -- display ------------------------------------------------------------
    def data_quality(self, sample: Optional[ColorSample]) -> DataQuality:
        return assess_quality(sample)

    def resolve_display_hex(self, sample: Optional[ColorSample]) -> DisplayHex:
        """
        Best available display colour for *sample*.

        Spectral data is converted through the cache, measured Lab is encoded
        directly, a display-only sample returns its stored hex.  Anything that
        cannot produce a colour yields ``settings.fallback_hex``.
        """
        fallback = DisplayHex(self.settings.fallback_hex)
        if isinstance(sample, SpectralSample):
            lab = self.converter.spectral_to_lab(sample.curve, fallback=LabColor(float("nan"), 0.0, 0.0))
            return lab_to_hex(lab, self.white_point, fallback=fallback)
        if isinstance(sample, MeasuredSample):
            return lab_to_hex(sample.lab, self.white_point, fallback=fallback)
        if isinstance(sample, DisplayOnlySample):
            return sample.hex
        logger.debug("resolve_display_hex: no colour data, using %s", fallback)
        return fallback

    # -- cache control ------------------------------------------------------
    def clear_cache(self) -> None:
        self.converter.cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.converter.cache.stats().as_dict()

    # -- serialisation ------------------------------------------------------
    def get_state(self) -> Dict[str, Any]:
        return {"settings": self.settings.get_state()}

    @classmethod
    def from_state(cls, state: Dict[str, Any],
                   store: Optional[WeightingTableStore] = None) -> ColorimetryEngine:
        return cls(store=store, settings=EngineSettings.from_state(state.get("settings", {})))

    def __repr__(self) -> str:
        return (
            f"ColorimetryEngine(table={self.settings.table_key}, "
            f"method={self._method(None).value}, cache={self.cache!r})"
        )
