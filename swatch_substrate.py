# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Substrate adaptation
====================
Decides whether an imported measurement's substrate matches a target
substrate condition, and provides the spectral math applied once the caller
decides to adapt.

Comparison flow (stateless, one request -> one ``AdaptationDecision``):

    compare   Delta E between imported and target substrate, with the
              explicitly selected method.
    classify  Delta E <= threshold (1.0)  -> ``match``
              otherwise                   -> ``mismatch-detected`` with the
              options ``adapt`` and ``create-new-condition``.

The engine never picks an option.  The caller acts and reports its choice
through ``resolve``, which maps it to one of the terminal states ``match``,
``adapted`` or ``new-condition-created``.

The threshold is flat across methods.  Delta E scales differ between
formulas, so 1.0 under dE76 is stricter in practice than 1.0 under dE00.

Adaptation math (two-step model):
  1.  ``substrate_change_scalars`` - per-wavelength ratio target / imported
      substrate reflectance.
  2.  ``adapt_tint_spectrum`` - scales a tint by those ratios, then mixes it
      with the target substrate by an area-coverage weight
      ``c + (1 - c) * optical_gain`` with ``c = min(tint %, max_coverage)``.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Dict, Final, Optional, Tuple, Union

import numpy as np

from swatch_cache import CachedSpectralConverter
from swatch_metrics import DeltaEMethod, delta_e
from swatch_samples import (
    LabColor,
    MatchableSample,
    MeasuredSample,
    SpectralCurve,
    SpectralSample,
    require_matchable,
)

logger = logging.getLogger(__name__)

__all__ = [
    "MISMATCH_THRESHOLD",
    "Verdict",
    "Resolution",
    "TerminalState",
    "DataMode",
    "AdaptationDecision",
    "SubstrateAdaptationEngine",
    "detect_scale",
    "substrate_change_scalars",
    "adapt_tint_spectrum",
    "ink_layer_ratio",
    "apply_ink_layer",
]

MISMATCH_THRESHOLD: Final[float] = 1.0

# Reflectance above this is taken to be on the 0-100 scale.
_PERCENT_SCALE_MAX: Final[float] = 1.5
_MIN_REFLECTANCE: Final[float] = 1e-6

# Sentinel fallback: a spectral sample the converter could not evaluate.
_UNCONVERTIBLE: Final[LabColor] = LabColor(float("nan"), float("nan"), float("nan"))


class Verdict(str, enum.Enum):
    MATCH = "match"
    MISMATCH_DETECTED = "mismatch-detected"


class Resolution(str, enum.Enum):
    ADAPT = "adapt"
    CREATE_NEW_CONDITION = "create-new-condition"


class TerminalState(str, enum.Enum):
    MATCH = "match"
    ADAPTED = "adapted"
    NEW_CONDITION_CREATED = "new-condition-created"


class DataMode(str, enum.Enum):
    IMPORTED = "imported"
    ADAPTED = "adapted"


_RESOLUTION_OUTCOME: Final[Dict[Resolution, TerminalState]] = {
    Resolution.ADAPT: TerminalState.ADAPTED,
    Resolution.CREATE_NEW_CONDITION: TerminalState.NEW_CONDITION_CREATED,
}


@dataclass(slots=True, frozen=True)
class AdaptationDecision:
    delta_e:   float
    method:    DeltaEMethod
    verdict:   Verdict
    options:   Tuple[Resolution, ...]
    threshold: float = MISMATCH_THRESHOLD

    @property
    def is_match(self) -> bool:
        return self.verdict is Verdict.MATCH

    def as_dict(self) -> Dict[str, object]:
        return {
            "delta_e": self.delta_e,
            "method": self.method.value,
            "verdict": self.verdict.value,
            "options": [o.value for o in self.options],
            "threshold": self.threshold,
        }


# ---------------------------------------------------------------------------
# 1.  Decision engine
# ---------------------------------------------------------------------------
class SubstrateAdaptationEngine:
    """
    Stateless substrate comparison.

    Args:
        threshold: Largest Delta E still classified as ``match``.
    """

    def __init__(self, threshold: float = MISMATCH_THRESHOLD) -> None:
        if not math.isfinite(threshold) or threshold < 0.0:
            raise ValueError(f"threshold must be finite and >= 0, got {threshold!r}")
        self.threshold = float(threshold)

    def classify(self, delta: float, method: Union[DeltaEMethod, str]) -> AdaptationDecision:
        method = DeltaEMethod.parse(method)
        if not math.isfinite(delta):
            raise ValueError(f"Cannot classify non-finite Delta E {delta!r}")
        if delta <= self.threshold:
            return AdaptationDecision(delta, method, Verdict.MATCH, (), self.threshold)
        return AdaptationDecision(
            delta, method, Verdict.MISMATCH_DETECTED,
            (Resolution.ADAPT, Resolution.CREATE_NEW_CONDITION),
            self.threshold,
        )

    def compare_substrates(self, imported: LabColor, target: LabColor,
                           method: Union[DeltaEMethod, str]) -> AdaptationDecision:
        """
        Compares the imported substrate Lab with the target condition's Lab.

        Both colours must be finite; a non-finite Lab raises ``ValueError``
        rather than producing a verdict.  The imported substrate is the
        reference for asymmetric (CMC) methods.
        """
        for label, lab in (("imported", imported), ("target", target)):
            if not lab.is_finite:
                raise ValueError(f"{label} substrate Lab is not finite: {lab}")
        method = DeltaEMethod.parse(method)
        decision = self.classify(delta_e(imported, target, method), method)
        logger.debug("Substrate %s vs %s: %s %.4f -> %s",
                     imported, target, method.value, decision.delta_e, decision.verdict.value)
        return decision

    def compare_samples(self, imported: MatchableSample, target: MatchableSample,
                        method: Union[DeltaEMethod, str],
                        converter: Optional[CachedSpectralConverter] = None) -> Optional[AdaptationDecision]:
        """
        Compares two samples of any matchable tier.

        Spectral samples go through *converter*.  A display-only sample raises
        ``TypeError``.  Returns ``None`` when a spectral sample cannot be
        converted (no converter, no weighting table, or no wavelength shared
        with the table).
        """
        labs = []
        for sample in (imported, target):
            sample = require_matchable(sample)
            if isinstance(sample, MeasuredSample):
                labs.append(sample.lab)
                continue
            if converter is None:
                return None
            lab = converter.spectral_to_lab(sample.curve, fallback=_UNCONVERTIBLE)
            if lab is _UNCONVERTIBLE:
                return None
            labs.append(lab)
        return self.compare_substrates(labs[0], labs[1], method)

    def compare_substrate_spectra(self, imported: Optional[SpectralCurve],
                                  target: Optional[SpectralCurve],
                                  converter: CachedSpectralConverter,
                                  method: Optional[Union[DeltaEMethod, str]] = None) -> Optional[AdaptationDecision]:
        """
        Spectral comparison using the converter's table (D50 / 2 / 5 fallback).

        *method* defaults to the converter settings' method.  Returns ``None``
        when either spectrum is missing or no weighting table is available.
        """
        if imported is None or target is None:
            return None
        if method is None:
            method = converter.settings.delta_e_method
        return self.compare_samples(SpectralSample(imported), SpectralSample(target),
                                    method, converter)

    @staticmethod
    def resolve(decision: AdaptationDecision,
                choice: Optional[Union[Resolution, str]] = None) -> TerminalState:
        """
        Maps the caller's action to a terminal state.

        A ``match`` takes no choice.  A mismatch needs one of the offered
        options; anything else raises ``ValueError``.
        """
        if decision.is_match:
            if choice is not None:
                raise ValueError("A matching substrate offers no resolution options.")
            return TerminalState.MATCH
        if choice is None:
            raise ValueError(
                "Mismatch detected: choose one of "
                + ", ".join(o.value for o in decision.options)
            )
        resolution = Resolution(choice)
        if resolution not in decision.options:
            raise ValueError(f"Resolution {resolution.value!r} was not offered.")
        return _RESOLUTION_OUTCOME[resolution]

    @staticmethod
    def effective_data_mode(decision: Optional[AdaptationDecision],
                            existing_condition: bool) -> DataMode:
        """
        ``adapted`` when a mismatch was detected and the measurement is applied
        to an existing condition; ``imported`` otherwise.
        """
        if decision is not None and not decision.is_match and existing_condition:
            return DataMode.ADAPTED
        return DataMode.IMPORTED


# ---------------------------------------------------------------------------
# 2.  Spectral adaptation math
# ---------------------------------------------------------------------------
def detect_scale(curve: SpectralCurve) -> float:
    """100.0 when the curve looks like percent reflectance, else 1.0."""
    if curve.is_empty:
        return 1.0
    vals = np.nan_to_num(curve.values, nan=0.0)
    return 100.0 if vals.max() > _PERCENT_SCALE_MAX else 1.0


def _normalized_values(curve: SpectralCurve) -> np.ndarray:
    vals = np.nan_to_num(curve.values, nan=0.0)
    return np.clip(vals / detect_scale(curve), 0.0, 1.0)


def _values_on(curve: SpectralCurve, values: np.ndarray, wavelengths: np.ndarray,
               default: float) -> np.ndarray:
    """*values* (aligned with *curve*) sampled on *wavelengths*, *default* where absent."""
    out = np.full(wavelengths.shape, default, dtype=np.float64)
    if curve.is_empty:
        return out
    idx = np.searchsorted(curve.wavelengths, wavelengths)
    idx_c = np.minimum(idx, curve.wavelengths.size - 1)
    hit = curve.wavelengths[idx_c] == wavelengths
    out[hit] = values[idx_c[hit]]
    return out


def _ratio_curve(base: SpectralCurve, other: SpectralCurve) -> SpectralCurve:
    shared = np.intersect1d(base.wavelengths, other.wavelengths)
    b = _values_on(base, base.values / detect_scale(base), shared, 0.0)
    o = _values_on(other, other.values / detect_scale(other), shared, 0.0)
    safe = np.where(b > _MIN_REFLECTANCE, b, 1.0)
    return SpectralCurve(shared, np.where(b > _MIN_REFLECTANCE, o / safe, 1.0))


def substrate_change_scalars(imported_substrate: SpectralCurve,
                             target_substrate: SpectralCurve) -> SpectralCurve:
    """
    Per-wavelength ratio target / imported on the shared wavelengths.

    Each curve is brought to the 0-1 scale on its own.  Where the imported
    reflectance is ~0 the ratio is 1.0.
    """
    return _ratio_curve(imported_substrate, target_substrate)


def adapt_tint_spectrum(tint: SpectralCurve, scalars: SpectralCurve,
                        target_substrate: SpectralCurve, tint_percentage: float,
                        max_coverage: float = 0.95,
                        optical_gain: float = 0.15) -> SpectralCurve:
    """
    Moves an imported tint onto the target substrate.

    Args:
        tint: Imported tint reflectance (0-1 or 0-100 scale).
        scalars: Output of ``substrate_change_scalars``; defines the grid.
        target_substrate: Target substrate reflectance.
        tint_percentage: Nominal tint coverage, 0-100.  A 0 % tint is the
            bare target substrate, returned unchanged.
        max_coverage: Upper bound on the effective coverage.
        optical_gain: Share of the uncovered area that still behaves like ink.

    Returns:
        Adapted reflectance on the scalar grid, on the tint's input scale.
    """
    if not 0.0 <= tint_percentage <= 100.0:
        raise ValueError(f"tint_percentage must be within [0, 100], got {tint_percentage!r}")
    if tint_percentage == 0.0:
        return target_substrate

    wl = scalars.wavelengths
    tint_scale = detect_scale(tint)
    ink = _values_on(tint, _normalized_values(tint), wl, 0.0)
    substrate = _values_on(target_substrate, _normalized_values(target_substrate), wl, 0.0)

    scaled_ink = np.clip(ink * scalars.values, 0.0, 1.0)

    coverage = min(tint_percentage / 100.0, max_coverage)
    blend = coverage + (1.0 - coverage) * optical_gain
    mixed = scaled_ink * blend + substrate * (1.0 - blend)

    return SpectralCurve(wl, np.clip(mixed * tint_scale, 0.0, tint_scale))


def ink_layer_ratio(base_substrate: SpectralCurve, layered_substrate: SpectralCurve) -> SpectralCurve:
    """
    Darkening ratio of an extra ink layer under the tints (e.g. a grey or
    black background) relative to the bare substrate.
    """
    return _ratio_curve(base_substrate, layered_substrate)


def apply_ink_layer(adapted: SpectralCurve, ratio: SpectralCurve) -> SpectralCurve:
    """Re-applies an ``ink_layer_ratio`` to an adapted curve on the shared grid."""
    scale = detect_scale(adapted)
    shared = np.intersect1d(adapted.wavelengths, ratio.wavelengths)
    vals = _values_on(adapted, _normalized_values(adapted), shared, 0.0)
    r = _values_on(ratio, ratio.values, shared, 1.0)
    return SpectralCurve(shared, np.clip(vals * r, 0.0, 1.0) * scale)
