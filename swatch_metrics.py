# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Colour Difference Metrics
=========================
Delta E formulas used by the matching workflow, each behind an explicit
``DeltaEMethod`` selector:

    dE76      CIE 1976, Euclidean distance in L*a*b*.
    dE94      CIE 1994, graphic-arts weights (kL = 1, K1 = 0.045, K2 = 0.015).
    dE00      CIEDE2000 with parametric kL / kC / kH.
    dECMC2:1  CMC l:c = 2:1 (acceptability).
    dECMC1:1  CMC l:c = 1:1 (perceptibility).

Symmetry:
    dE76, dE94 and dE00 are symmetric in their arguments.  The CIE 1994
    weighting functions use the geometric mean of both chromas, sqrt(C1*C2),
    in place of the reference chroma.  CMC stays asymmetric: the first
    argument is the reference (standard), the second the sample (batch).

All kernels are compiled with ``fastmath=False`` so a non-finite Lab yields
a non-finite difference instead of a plausible-looking number.

References:
    - Sharma, G., Wu, W., & Dalal, E. N. (2005). "The CIEDE2000 color-difference formula".
    - Clarke, McDonald, Rigg (1984). "CMC l:c colour difference formula".
    - CIE Publication 116-1995 (CIE 1994 colour difference).
"""

import enum
import numpy as np
from numba import njit, float64, prange
from typing import Dict, Final, Tuple, Union

from swatch_colorengine import ArrayFloat
from swatch_samples import LabColor

__all__ = [
    "C25_7",
    "DEG2RAD",
    "DeltaEMethod",
    "ColorMetrics",
    "delta_e",
    "delta_e_batch",
]

C25_7: Final[float]   = 25.0**7
DEG2RAD: Final[float] = np.pi / 180.0


class DeltaEMethod(enum.Enum):
    DE76 = "dE76"
    DE94 = "dE94"
    DE00 = "dE00"
    CMC_2_1 = "dECMC2:1"
    CMC_1_1 = "dECMC1:1"

    @classmethod
    def parse(cls, method: Union["DeltaEMethod", str]) -> "DeltaEMethod":
        """
        Resolves a method selector.

        Accepts an enum member or its string value (case-insensitive, with
        the legacy spelling ``"dE2000"``).  Anything else raises
        ``ValueError``; there is no default method.
        """
        if isinstance(method, cls):
            return method
        if isinstance(method, str):
            found = _METHOD_ALIASES.get(method.strip().lower().replace(" ", ""))
            if found is not None:
                return found
        raise ValueError(
            f"Unknown Delta E method {method!r}; expected one of "
            + ", ".join(m.value for m in cls)
        )

    @property
    def symmetric(self) -> bool:
        return self not in (DeltaEMethod.CMC_2_1, DeltaEMethod.CMC_1_1)


_METHOD_ALIASES: Final[Dict[str, DeltaEMethod]] = {
    **{m.value.lower(): m for m in DeltaEMethod},
    "de2000": DeltaEMethod.DE00,
}


# =============================================================================
# 1. SINGLE-PAIR KERNELS
# =============================================================================

@njit(float64(float64, float64, float64, float64, float64, float64, float64, float64, float64), cache=True, fastmath=False)
def _delta_e_2000_single(L1: float, a1: float, b1: float, L2: float, a2: float, b2: float, k_L: float, k_C: float, k_H: float) -> float:
    """Single-pair CIEDE2000 with parametric factors."""
    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar = (C1 + C2) * 0.5
    C_bar_7 = C_bar**7
    G = 0.5 * (1.0 - np.sqrt(C_bar_7 / (C_bar_7 + C25_7)))
    scale = 1.0 + G
    a1_p = scale * a1
    a2_p = scale * a2
    C1_p = np.hypot(a1_p, b1)
    C2_p = np.hypot(a2_p, b2)
    # h' is 0 when a' = b = 0
    h1_p = 0.0
    if a1_p != 0.0 or b1 != 0.0:
        h1_p = np.degrees(np.arctan2(b1, a1_p)) % 360.0
    h2_p = 0.0
    if a2_p != 0.0 or b2 != 0.0:
        h2_p = np.degrees(np.arctan2(b2, a2_p)) % 360.0
    dL_p = L2 - L1
    dC_p = C2_p - C1_p
    chroma_prod = C1_p * C2_p
    dh_p = 0.0
    if chroma_prod != 0.0:
        diff = h2_p - h1_p
        if abs(diff) <= 180.0: dh_p = diff
        elif diff > 180.0: dh_p = diff - 360.0
        else: dh_p = diff + 360.0
    dH_p = 2.0 * np.sqrt(chroma_prod) * np.sin((dh_p * DEG2RAD) * 0.5)
    L_bar_p = (L1 + L2) * 0.5
    C_bar_p = (C1_p + C2_p) * 0.5
    h_bar_p = h1_p + h2_p
    if chroma_prod != 0.0:
        if abs(h1_p - h2_p) <= 180.0: h_bar_p *= 0.5
        elif h_bar_p < 360.0: h_bar_p = (h_bar_p + 360.0) * 0.5
        else: h_bar_p = (h_bar_p - 360.0) * 0.5
    T = 1.0 - 0.17 * np.cos((h_bar_p - 30.0) * DEG2RAD) + \
        0.24 * np.cos((2.0 * h_bar_p) * DEG2RAD) + \
        0.32 * np.cos((3.0 * h_bar_p + 6.0) * DEG2RAD) - \
        0.20 * np.cos((4.0 * h_bar_p - 63.0) * DEG2RAD)
    d_theta = 30.0 * np.exp(-((h_bar_p - 275.0) / 25.0)**2)
    C_bar_p_7 = C_bar_p**7
    RC = 2.0 * np.sqrt(C_bar_p_7 / (C_bar_p_7 + C25_7))
    RT = -np.sin((2.0 * d_theta) * DEG2RAD) * RC
    L_term = (L_bar_p - 50.0)**2
    SL = 1.0 + (0.015 * L_term) / np.sqrt(20.0 + L_term)
    SC = 1.0 + 0.045 * C_bar_p
    SH = 1.0 + 0.015 * C_bar_p * T
    tC = dC_p / (k_C * SC)
    tH = dH_p / (k_H * SH)
    return np.sqrt((dL_p / (k_L * SL))**2 + tC**2 + tH**2 + RT * tC * tH)

@njit(float64(float64, float64, float64, float64, float64, float64, float64, float64, float64), cache=True, fastmath=False)
def _delta_e_94_single(L1: float, a1: float, b1: float, L2: float, a2: float, b2: float, k_L: float, K1: float, K2: float) -> float:
    """
    Single-pair CIE 1994 with symmetric chroma weighting.

    dH^2 = da^2 + db^2 - dC^2 can dip below zero from rounding; it is
    clamped to zero.
    """
    dL = L1 - L2
    C1 = np.sqrt(a1*a1 + b1*b1)
    C2 = np.sqrt(a2*a2 + b2*b2)
    dC = C1 - C2
    da = a1 - a2
    db = b1 - b2
    dH_sq = da*da + db*db - dC*dC
    if dH_sq < 0.0:
        dH_sq = 0.0

    C_ref = np.sqrt(C1 * C2)
    SC = 1.0 + K1 * C_ref
    SH = 1.0 + K2 * C_ref

    term_L = dL / k_L
    term_C = dC / SC
    return np.sqrt(term_L*term_L + term_C*term_C + dH_sq / (SH * SH))

@njit(float64(float64, float64, float64, float64, float64, float64, float64, float64), cache=True, fastmath=False)
def _delta_e_cmc_single(L1: float, a1: float, b1: float, L2: float, a2: float, b2: float, pl: float, pc: float) -> float:
    """Single-pair CMC l:c; (L1, a1, b1) is the reference."""
    dL = L1 - L2
    C1 = np.sqrt(a1*a1 + b1*b1)
    C2 = np.sqrt(a2*a2 + b2*b2)
    dC = C1 - C2
    da = a1 - a2
    db = b1 - b2
    dH_sq = da*da + db*db - dC*dC
    if dH_sq < 0.0:
        dH_sq = 0.0

    h1 = np.degrees(np.arctan2(b1, a1)) % 360.0

    if L1 < 16.0:
        SL = 0.511
    else:
        SL = (0.040975 * L1) / (1.0 + 0.01765 * L1)

    SC = (0.0638 * C1) / (1.0 + 0.0131 * C1) + 0.638

    if 164.0 <= h1 <= 345.0:
        T = 0.56 + abs(0.2 * np.cos((h1 + 168.0) * DEG2RAD))
    else:
        T = 0.36 + abs(0.4 * np.cos((h1 + 35.0) * DEG2RAD))

    C1_4 = C1**4
    F = np.sqrt(C1_4 / (C1_4 + 1900.0))
    SH = SC * (F * T + 1.0 - F)

    term_L = dL / (pl * SL)
    term_C = dC / (pc * SC)
    return np.sqrt(term_L*term_L + term_C*term_C + dH_sq / (SH * SH))


# =============================================================================
# 2. BATCH KERNELS
# =============================================================================

@njit(cache=True, fastmath=False, parallel=True)
def _batch_delta_e_76(lab1: ArrayFloat, lab2: ArrayFloat) -> ArrayFloat:
    n = len(lab1)
    res = np.empty(n, dtype=np.float64)
    for i in prange(n):
        dL = lab1[i, 0] - lab2[i, 0]
        da = lab1[i, 1] - lab2[i, 1]
        db = lab1[i, 2] - lab2[i, 2]
        res[i] = np.sqrt(dL*dL + da*da + db*db)
    return res

@njit(cache=True, fastmath=False, parallel=True)
def _batch_delta_e_94(lab1: ArrayFloat, lab2: ArrayFloat, k_L: float, K1: float, K2: float) -> ArrayFloat:
    n = len(lab1)
    res = np.empty(n, dtype=np.float64)
    for i in prange(n):
        res[i] = _delta_e_94_single(lab1[i, 0], lab1[i, 1], lab1[i, 2], lab2[i, 0], lab2[i, 1], lab2[i, 2], k_L, K1, K2)
    return res

@njit(cache=True, fastmath=False, parallel=True)
def _batch_delta_e_2000(lab1: ArrayFloat, lab2: ArrayFloat, k_L: float, k_C: float, k_H: float) -> ArrayFloat:
    n = len(lab1)
    res = np.empty(n, dtype=np.float64)
    for i in prange(n):
        res[i] = _delta_e_2000_single(lab1[i, 0], lab1[i, 1], lab1[i, 2], lab2[i, 0], lab2[i, 1], lab2[i, 2], k_L, k_C, k_H)
    return res

@njit(cache=True, fastmath=False, parallel=True)
def _batch_delta_e_cmc(lab1: ArrayFloat, lab2: ArrayFloat, pl: float, pc: float) -> ArrayFloat:
    n = len(lab1)
    res = np.empty(n, dtype=np.float64)
    for i in prange(n):
        res[i] = _delta_e_cmc_single(lab1[i, 0], lab1[i, 1], lab1[i, 2], lab2[i, 0], lab2[i, 1], lab2[i, 2], pl, pc)
    return res


# =============================================================================
# 3. PUBLIC API
# =============================================================================

class ColorMetrics:
    @staticmethod
    def _prepare_inputs(lab1: ArrayFloat, lab2: ArrayFloat) -> Tuple[ArrayFloat, ArrayFloat]:
        """
        Broadcasting helper: (3,) or (N, 3) inputs, 1-vs-N allowed.

        ``broadcast_to`` views are materialised into contiguous arrays before
        they reach the ``prange`` kernels.
        """
        l1 = np.ascontiguousarray(np.atleast_2d(np.asarray(lab1, dtype=np.float64)))
        l2 = np.ascontiguousarray(np.atleast_2d(np.asarray(lab2, dtype=np.float64)))

        if l1.shape[-1] != 3 or l2.shape[-1] != 3 or l1.ndim != 2 or l2.ndim != 2:
            raise ValueError(f"Inputs must have shape (N, 3), got {l1.shape} and {l2.shape}")

        if l1.shape[0] != l2.shape[0]:
            if l1.shape[0] == 1: l1 = np.ascontiguousarray(np.broadcast_to(l1, l2.shape))
            elif l2.shape[0] == 1: l2 = np.ascontiguousarray(np.broadcast_to(l2, l1.shape))
            else: raise ValueError(f"Shapes {l1.shape} and {l2.shape} are not broadcastable.")
        return l1, l2

    @staticmethod
    def delta_E_76(lab1: ArrayFloat, lab2: ArrayFloat) -> ArrayFloat:
        """CIE 1976 Delta E (Euclidean distance in Lab)."""
        l1, l2 = ColorMetrics._prepare_inputs(lab1, lab2)
        return _batch_delta_e_76(l1, l2)

    @staticmethod
    def delta_E_94(lab1: ArrayFloat, lab2: ArrayFloat,
                   k_L: float = 1.0, K1: float = 0.045, K2: float = 0.015) -> ArrayFloat:
        """
        CIE 1994 Delta E, graphic-arts defaults.

        Args:
            lab1: First colours, shape (N, 3) or (3,).
            lab2: Second colours, shape (N, 3) or (3,).
            k_L: Lightness parametric factor.
            K1: Chroma weighting constant.
            K2: Hue weighting constant.
        """
        l1, l2 = ColorMetrics._prepare_inputs(lab1, lab2)
        return _batch_delta_e_94(l1, l2, k_L, K1, K2)

    @staticmethod
    def delta_E_2000(lab1: ArrayFloat, lab2: ArrayFloat,
                     k_L: float = 1.0, k_C: float = 1.0, k_H: float = 1.0) -> ArrayFloat:
        """
        CIEDE2000 colour difference (Sharma et al. 2005).

        Args:
            lab1: Reference colours, shape (N, 3) or (3,).
            lab2: Sample colours, shape (N, 3) or (3,).
            k_L: Parametric lightness weight.
            k_C: Parametric chroma weight.
            k_H: Parametric hue weight.
        """
        l1, l2 = ColorMetrics._prepare_inputs(lab1, lab2)
        return _batch_delta_e_2000(l1, l2, k_L, k_C, k_H)

    @staticmethod
    def delta_E_CMC(lab1: ArrayFloat, lab2: ArrayFloat,
                    pl: float = 2.0, pc: float = 1.0) -> ArrayFloat:
        """
        CMC l:c (1984) colour difference.

        Note: **asymmetric**; lab1 is the reference (standard) and lab2 the
        sample (batch).

        Args:
            pl: Lightness factor (2.0 acceptability, 1.0 perceptibility).
            pc: Chroma factor.
        """
        l1, l2 = ColorMetrics._prepare_inputs(lab1, lab2)
        return _batch_delta_e_cmc(l1, l2, pl, pc)

    @staticmethod
    def compute(lab1: ArrayFloat, lab2: ArrayFloat,
                method: Union[DeltaEMethod, str]) -> ArrayFloat:
        """Dispatches to the formula named by *method*; always returns (N,)."""
        method = DeltaEMethod.parse(method)
        if method is DeltaEMethod.DE76:
            return ColorMetrics.delta_E_76(lab1, lab2)
        if method is DeltaEMethod.DE94:
            return ColorMetrics.delta_E_94(lab1, lab2)
        if method is DeltaEMethod.DE00:
            return ColorMetrics.delta_E_2000(lab1, lab2)
        if method is DeltaEMethod.CMC_2_1:
            return ColorMetrics.delta_E_CMC(lab1, lab2, 2.0, 1.0)
        return ColorMetrics.delta_E_CMC(lab1, lab2, 1.0, 1.0)


def delta_e(a: LabColor, b: LabColor, method: Union[DeltaEMethod, str]) -> float:
    """
    Colour difference between two Lab colours.

    For CMC, *a* is the reference.  The result is non-negative for finite
    input and NaN when either colour is non-finite.
    """
    return float(ColorMetrics.compute(a.as_array(), b.as_array(), method)[0])


def delta_e_batch(reference: ArrayFloat, samples: ArrayFloat,
                  method: Union[DeltaEMethod, str]) -> ArrayFloat:
    """Vectorised Delta E over (N, 3) arrays; a single row broadcasts."""
    return ColorMetrics.compute(reference, samples, method)
