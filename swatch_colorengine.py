# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Colorimetric Conversion Engine
==============================
JIT-compiled conversions from spectral reflectance to display colour:

    SpectralCurve --(ASTM E308 weighted ordinates)--> XYZ
    XYZ <--(CIE 1976, exact rational constants)--> L*a*b*
    L*a*b* --> C*h
    L*a*b* --> XYZ --(optional Bradford to D65)--> sRGB --> #RRGGBB

Numerical policy:
1. Exactness: the CIELAB split points use the rational definitions
   (epsilon = 216/24389, kappa = 24389/27, delta = 6/29), so Lab -> XYZ -> Lab
   round-trips to machine precision.
2. Propagation: the transfer functions run as ``fastmath=False`` kernels by
   default so NaN / inf survive every stage.  ``set_strict_ieee(False)`` swaps
   in the ``fastmath=True`` variants for throughput-bound batch work.
3. No interpolation: the weighted-ordinate sum only visits wavelengths that
   the curve and the weighting table share.

References:
    - ASTM E308-22 "Standard Practice for Computing the Colors of Objects
      by Using the CIE System".
    - CIE 15:2004 "Colorimetry".
    - IEC 61966-2-1:1999 (sRGB Standard).
"""

import functools
import logging
import numpy as np
from numba import njit
from typing import Tuple, Final, TypeAlias, Callable, Literal, Optional, Union, Sequence, Any

from swatch_samples import (
    ChromaHue,
    DisplayHex,
    LabColor,
    SpectralCurve,
    TristimulusXYZ,
    WHITE_D50,
    WHITE_D65,
    WhitePoint,
)
from swatch_tables import WeightingTable

logger = logging.getLogger(__name__)

__all__ = [
    # --- Type Aliases ---
    "ArrayFloat",
    "TailMode",

    # --- Constants ---
    "LAB_EPSILON",
    "LAB_KAPPA",
    "FALLBACK_LAB",
    "FALLBACK_HEX",

    # --- Configuration ---
    "set_strict_ieee",

    # --- Matrices ---
    "M_XYZ_TO_SRGB_T",
    "M_BRADFORD_T",
    "M_BRADFORD_INV_T",

    # --- Decorators ---
    "handle_shapes",

    # --- Classes ---
    "ColorSpaceEngine",
    "ChromaticAdaptation",
    "SpectralPipeline",
    "DisplayPipeline",

    # --- Functions ---
    "spectral_to_xyz",
    "spectral_to_lab",
    "xyz_to_lab",
    "lab_to_xyz",
    "lab_to_chroma_hue",
    "chroma_hue_to_lab",
    "lab_to_hex",
]

# --- Type Aliases ---
# Internal kernels compile to float64; float32 inputs are cast on entry.
ArrayFloat: TypeAlias = np.typing.NDArray[np.floating]
TailMode: TypeAlias = Literal["skip", "aggregate"]

# --- Constants & Pre-Transposed Matrices ---

# sRGB Matrix (IEC 61966-2-1), pre-transposed for row-vector products.
_M_XYZ_TO_SRGB_BASE = np.array([
    [ 3.2404542, -1.5371385, -0.4985314],
    [-0.9692660,  1.8760108,  0.0415560],
    [ 0.0556434, -0.2040259,  1.0572252]
], dtype=np.float64)
M_XYZ_TO_SRGB_T: Final[ArrayFloat] = _M_XYZ_TO_SRGB_BASE.T.copy()

# Bradford cone response (Lam 1985)
_M_BRADFORD_BASE = np.array([
    [ 0.8951,  0.2664, -0.1614],
    [-0.7502,  1.7135,  0.0367],
    [ 0.0389, -0.0685,  1.0296]
], dtype=np.float64)
M_BRADFORD_T: Final[ArrayFloat] = _M_BRADFORD_BASE.T.copy()
M_BRADFORD_INV_T: Final[ArrayFloat] = np.linalg.inv(_M_BRADFORD_BASE).T.copy()

# CIE Lab Constants
# Use exact rational definitions to avoid discontinuity at the split point.
_LAB_DELTA: Final[float] = 6.0 / 29.0
LAB_EPSILON: Final[float] = _LAB_DELTA ** 3          # 216 / 24389
LAB_KAPPA: Final[float] = 24389.0 / 27.0

FALLBACK_LAB: Final[LabColor] = LabColor(0.0, 0.0, 0.0)
FALLBACK_HEX: Final[DisplayHex] = DisplayHex("#000000")


# --- Runtime Configuration ---
# When True (default), transfer-function kernels are the fastmath=False
# variants, which keep IEEE 754 inf / NaN propagation and a fixed operation
# order.
#
# Toggle at runtime via:
#     import swatch_colorengine as ce
#     ce.set_strict_ieee(False)  # fast mode for large batches
#     ce.set_strict_ieee(True)   # back to strict mode (default)
_STRICT_IEEE: bool = True

def set_strict_ieee(enabled: bool = True) -> None:
    """
    Toggle between strict IEEE 754 (default) and fastmath Numba kernels.

    Fast mode lets LLVM reassociate floating point operations; results may
    then differ in the last bits from the strict kernels and NaN inputs are
    no longer guaranteed to propagate.

    Args:
        enabled: If True, use strict IEEE mode.
    """
    global _STRICT_IEEE
    _STRICT_IEEE = bool(enabled)
    logger.debug("Strict IEEE kernels %s", "enabled" if _STRICT_IEEE else "disabled")


# =============================================================================
# 1. SHAPE HANDLING
# =============================================================================

def handle_shapes(func: Callable[..., ArrayFloat]) -> Callable[..., ArrayFloat]:
    """
    Decorator to normalize inputs to (N, 3) float64.

    - If input is (3,), returns (3,)
    - If input is (N, 3), returns (N, 3)
    """
    @functools.wraps(func)
    def wrapper(arr: ArrayFloat, *args: Any, **kwargs: Any) -> ArrayFloat:
        arr = np.asarray(arr, dtype=np.float64)
        arr_in = np.ascontiguousarray(np.atleast_2d(arr))

        if arr_in.shape[-1] != 3:
            raise ValueError(f"Expected last dimension size 3, got {arr_in.shape[-1]}")

        res = func(arr_in, *args, **kwargs)

        if arr.ndim == 1:
            return res[0]
        return res
    return wrapper


# =============================================================================
# 2. LOW-LEVEL MATH KERNELS (Numba Optimized)
# =============================================================================

@njit(cache=True, fastmath=False)
def _gamma_srgb_strict(linear: ArrayFloat) -> ArrayFloat:
    """
    Applies sRGB OETF (Gamma Correction), IEC 61966-2-1.

    Explicit loop instead of ``np.where`` avoids a boolean mask allocation.
    """
    out = np.empty_like(linear)
    linear_flat = linear.ravel()
    out_flat = out.ravel()

    for i in range(linear.size):
        v = linear_flat[i]
        if v <= 0.0031308:
            out_flat[i] = 12.92 * v
        else:
            out_flat[i] = 1.055 * (v ** (1.0/2.4)) - 0.055
    return out

@njit(cache=True, fastmath=False)
def _xyz_to_lab_f_strict(t: ArrayFloat) -> ArrayFloat:
    """
    Non-linear transfer function f(t) for CIELAB.

    Cube root above epsilon, linear segment (kappa*t + 16) / 116 below it.
    """
    out = np.empty_like(t)
    t_flat = t.ravel()
    out_flat = out.ravel()

    for i in range(t.size):
        v = t_flat[i]
        if v > LAB_EPSILON:
            out_flat[i] = v ** (1.0/3.0)
        else:
            out_flat[i] = (LAB_KAPPA * v + 16.0) / 116.0
    return out

@njit(cache=True, fastmath=False)
def _lab_to_xyz_f_inv_strict(t: ArrayFloat) -> ArrayFloat:
    """
    Inverse transfer function for CIELAB.

    Multiplication form (116*t - 16)/kappa keeps the linear branch exact at
    the delta split.
    """
    out = np.empty_like(t)
    t_flat = t.ravel()
    out_flat = out.ravel()

    for i in range(t.size):
        v = t_flat[i]
        if v > _LAB_DELTA:
            out_flat[i] = v ** 3.0
        else:
            out_flat[i] = (116.0 * v - 16.0) / LAB_KAPPA
    return out

# --- fastmath variants ---

@njit(cache=True, fastmath=True)
def _gamma_srgb_fast(linear: ArrayFloat) -> ArrayFloat:
    out = np.empty_like(linear)
    linear_flat = linear.ravel()
    out_flat = out.ravel()
    for i in range(linear.size):
        v = linear_flat[i]
        if v <= 0.0031308:
            out_flat[i] = 12.92 * v
        else:
            out_flat[i] = 1.055 * (v ** (1.0/2.4)) - 0.055
    return out

@njit(cache=True, fastmath=True)
def _xyz_to_lab_f_fast(t: ArrayFloat) -> ArrayFloat:
    out = np.empty_like(t)
    t_flat = t.ravel()
    out_flat = out.ravel()
    for i in range(t.size):
        v = t_flat[i]
        if v > LAB_EPSILON:
            out_flat[i] = v ** (1.0/3.0)
        else:
            out_flat[i] = (LAB_KAPPA * v + 16.0) / 116.0
    return out

@njit(cache=True, fastmath=True)
def _lab_to_xyz_f_inv_fast(t: ArrayFloat) -> ArrayFloat:
    out = np.empty_like(t)
    t_flat = t.ravel()
    out_flat = out.ravel()
    for i in range(t.size):
        v = t_flat[i]
        if v > _LAB_DELTA:
            out_flat[i] = v ** 3.0
        else:
            out_flat[i] = (116.0 * v - 16.0) / LAB_KAPPA
    return out


# --- Kernel dispatchers ---
# Thin wrappers that check the global _STRICT_IEEE flag and delegate to the
# matching compiled variant.

def _gamma_srgb(linear: ArrayFloat) -> ArrayFloat:
    """Dispatch sRGB OETF to strict or fast kernel."""
    if _STRICT_IEEE:
        return _gamma_srgb_strict(linear)
    return _gamma_srgb_fast(linear)

def _lab_f(t: ArrayFloat) -> ArrayFloat:
    """Dispatch Lab f(t) to strict or fast kernel."""
    if _STRICT_IEEE:
        return _xyz_to_lab_f_strict(t)
    return _xyz_to_lab_f_fast(t)

def _lab_f_inv(t: ArrayFloat) -> ArrayFloat:
    """Dispatch Lab f_inv(t) to strict or fast kernel."""
    if _STRICT_IEEE:
        return _lab_to_xyz_f_inv_strict(t)
    return _lab_to_xyz_f_inv_fast(t)


@njit(cache=True, fastmath=False)
def _lab_to_ch_kernel(lab: ArrayFloat) -> ArrayFloat:
    """
    Lab -> (C*, h) with h in [0, 360).

    The achromatic axis (a = b = 0, including signed zeros) maps to h = 0.
    """
    n = lab.shape[0]
    out = np.empty((n, 2), dtype=np.float64)
    for i in range(n):
        a = lab[i, 1]
        b = lab[i, 2]
        out[i, 0] = np.sqrt(a * a + b * b)
        if a == 0.0 and b == 0.0:
            out[i, 1] = 0.0
        else:
            h = np.degrees(np.arctan2(b, a)) % 360.0
            # -tiny % 360 rounds up to exactly 360.0
            if h >= 360.0:
                h -= 360.0
            out[i, 1] = h
    return out


@njit(cache=True, fastmath=False)
def _weighted_ordinate_kernel(curve_wl: np.ndarray, refl: ArrayFloat,
                              table_wl: np.ndarray, weights: ArrayFloat,
                              aggregate_tails: bool) -> ArrayFloat:
    """
    ASTM E308 weighted-ordinate sum over the shared wavelengths.

    Both grids are strictly increasing, so a single merge walk finds the
    intersection.  With *aggregate_tails*, table rows below the first
    (above the last) curve sample are weighted by that boundary sample,
    provided the two grids share at least one wavelength.
    """
    out = np.zeros(3, dtype=np.float64)
    n_c = curve_wl.size
    n_t = table_wl.size
    if n_c == 0 or n_t == 0:
        return out

    first = curve_wl[0]
    last = curve_wl[n_c - 1]
    tail = np.zeros(3, dtype=np.float64)
    matched = 0
    i = 0
    for j in range(n_t):
        wl = table_wl[j]
        if wl < first:
            if aggregate_tails:
                for k in range(3):
                    tail[k] += refl[0] * weights[j, k]
            continue
        if wl > last:
            if aggregate_tails:
                for k in range(3):
                    tail[k] += refl[n_c - 1] * weights[j, k]
            continue
        while i < n_c and curve_wl[i] < wl:
            i += 1
        if i < n_c and curve_wl[i] == wl:
            r = refl[i]
            for k in range(3):
                out[k] += r * weights[j, k]
            matched += 1

    if matched == 0:
        out[:] = 0.0
        return out
    for k in range(3):
        out[k] += tail[k]
    return out


@njit(cache=True, fastmath=False)
def _shared_count_kernel(curve_wl: np.ndarray, table_wl: np.ndarray) -> int:
    i = 0
    j = 0
    count = 0
    while i < curve_wl.size and j < table_wl.size:
        if curve_wl[i] == table_wl[j]:
            count += 1
            i += 1
            j += 1
        elif curve_wl[i] < table_wl[j]:
            i += 1
        else:
            j += 1
    return count


# =============================================================================
# 3. COLOR SPACE ENGINE
# =============================================================================

def _white_array(white: Union[WhitePoint, ArrayFloat, Sequence[float]]) -> ArrayFloat:
    if isinstance(white, WhitePoint):
        return white.as_array()
    arr = np.asarray(white, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"White point must have shape (3,), got {arr.shape}")
    return arr


class ColorSpaceEngine:
    """Static utility class for array-level colour space transformations.

    Public methods take ``(3,)`` or ``(N, 3)`` arrays; white points are on the
    same scale as the XYZ input (0-100 throughout Swatch).
    """

    @staticmethod
    def _xyz_to_lab_raw(xyz_array: ArrayFloat, white: ArrayFloat) -> ArrayFloat:
        """Raw XYZ -> Lab.  *xyz_array* must be (N, 3) float64."""
        xyz_norm = np.ascontiguousarray(xyz_array / white)
        f_xyz = _lab_f(xyz_norm)

        out = np.empty_like(xyz_array)
        out[..., 0] = 116.0 * f_xyz[..., 1] - 16.0
        out[..., 1] = 500.0 * (f_xyz[..., 0] - f_xyz[..., 1])
        out[..., 2] = 200.0 * (f_xyz[..., 1] - f_xyz[..., 2])
        return out

    @staticmethod
    def _lab_to_xyz_raw(lab_array: ArrayFloat, white: ArrayFloat) -> ArrayFloat:
        """Raw Lab -> XYZ.  *lab_array* must be (N, 3) float64."""
        L, a, b = lab_array[..., 0], lab_array[..., 1], lab_array[..., 2]

        fy = (L + 16.0) / 116.0
        fx = a / 500.0 + fy
        fz = fy - b / 200.0

        xyz = np.empty_like(lab_array)
        xyz[..., 0] = _lab_f_inv(np.ascontiguousarray(fx))
        xyz[..., 1] = _lab_f_inv(np.ascontiguousarray(fy))
        xyz[..., 2] = _lab_f_inv(np.ascontiguousarray(fz))

        xyz *= white
        return xyz

    @staticmethod
    @handle_shapes
    def xyz_to_lab(xyz_array: ArrayFloat,
                   white: Union[WhitePoint, ArrayFloat] = WHITE_D50) -> ArrayFloat:
        """
        Converts XYZ to CIE L*a*b* relative to *white*.

        Args:
            xyz_array: XYZ values, shape (3,) or (N, 3).
            white: Reference white on the same scale as the input.
        """
        return ColorSpaceEngine._xyz_to_lab_raw(xyz_array, _white_array(white))

    @staticmethod
    @handle_shapes
    def lab_to_xyz(lab_array: ArrayFloat,
                   white: Union[WhitePoint, ArrayFloat] = WHITE_D50) -> ArrayFloat:
        """Converts CIE L*a*b* to XYZ on the scale of *white*."""
        return ColorSpaceEngine._lab_to_xyz_raw(lab_array, _white_array(white))

    @staticmethod
    @handle_shapes
    def lab_to_ch(lab_array: ArrayFloat) -> ArrayFloat:
        """
        Converts Lab to (C*, h).

        Returns:
            Shape (2,) or (N, 2): chroma and hue angle in degrees.
        """
        return _lab_to_ch_kernel(lab_array)

    @staticmethod
    def ch_to_lab(L: ArrayFloat, ch_array: ArrayFloat) -> ArrayFloat:
        """Inverse of ``lab_to_ch``: rebuilds a and b from chroma and hue."""
        ch = np.asarray(ch_array, dtype=np.float64)
        C, h = ch[..., 0], np.radians(ch[..., 1])
        return np.stack([np.broadcast_to(L, C.shape), C * np.cos(h), C * np.sin(h)], axis=-1)

    @staticmethod
    @handle_shapes
    def xyz_to_srgb(xyz_array: ArrayFloat, clip: bool = True) -> ArrayFloat:
        """
        XYZ (0-100 scale) -> gamma-encoded sRGB in [0, 1].

        With ``clip=False`` out-of-gamut values are passed through the OETF
        unclipped.
        """
        linear = np.dot(xyz_array / 100.0, M_XYZ_TO_SRGB_T)
        if clip:
            linear = np.clip(linear, 0.0, 1.0)
        return _gamma_srgb(np.ascontiguousarray(linear))


# =============================================================================
# 4. CHROMATIC ADAPTATION
# =============================================================================

def _to_hashable(obj: Union[WhitePoint, ArrayFloat, Sequence[float]]) -> Tuple[float, ...]:
    """Helper to ensure inputs are hashable tuples for caching."""
    return tuple(float(v) for v in _white_array(obj))

@functools.lru_cache(maxsize=16)
def _get_cached_bradford_matrix(src_white_tuple: Tuple[float, ...],
                                dst_white_tuple: Tuple[float, ...]) -> ArrayFloat:
    """
    Cached worker for the Bradford matrix.

    Row-vector composite: M.T @ Gain @ M_inv.T
    """
    src = np.array(src_white_tuple, dtype=np.float64)
    dst = np.array(dst_white_tuple, dtype=np.float64)

    src_lms = np.dot(src, M_BRADFORD_T)
    dst_lms = np.dot(dst, M_BRADFORD_T)

    src_lms = np.where(np.abs(src_lms) < 1e-12, 1e-12, src_lms)
    M_gain = np.diag(dst_lms / src_lms)

    return M_BRADFORD_T @ M_gain @ M_BRADFORD_INV_T

class ChromaticAdaptation:
    """Handles White Point Adaptation (Bradford Method)."""

    @staticmethod
    def calc_transform_matrix(src_white: Union[WhitePoint, ArrayFloat],
                              dst_white: Union[WhitePoint, ArrayFloat]) -> ArrayFloat:
        """3x3 Bradford matrix for row-vector multiplication."""
        return _get_cached_bradford_matrix(_to_hashable(src_white), _to_hashable(dst_white))

    @staticmethod
    @handle_shapes
    def adapt(xyz: ArrayFloat, src_white: Union[WhitePoint, ArrayFloat],
              dst_white: Union[WhitePoint, ArrayFloat]) -> ArrayFloat:
        """Adapts XYZ colour(s) from *src_white* to *dst_white*."""
        src = _white_array(src_white)
        dst = _white_array(dst_white)
        if np.allclose(src, dst):
            return xyz
        return np.dot(xyz, ChromaticAdaptation.calc_transform_matrix(src, dst))


# =============================================================================
# 5. SPECTRAL PIPELINE
# =============================================================================

class SpectralPipeline:
    """ASTM E308 weighted-ordinate integration against a weighting table."""

    @staticmethod
    def shared_wavelengths(curve: SpectralCurve, table: WeightingTable) -> int:
        """Number of wavelengths the curve and the table have in common."""
        return int(_shared_count_kernel(curve.wavelengths, table.wavelengths))

    @staticmethod
    def spectral_to_xyz(curve: SpectralCurve, table: WeightingTable,
                        tails: TailMode = "skip") -> TristimulusXYZ:
        """
        Weighted-ordinate tristimulus values on the table's native scale.

        For every wavelength present in both inputs the reflectance multiplies
        the table's (x, y, z) factors; all other wavelengths are skipped.  An
        empty intersection yields XYZ (0, 0, 0).

        Args:
            curve: Reflectance on the 0-1 scale.
            table: Weighting factors, already multiplied by illuminant power.
            tails: ``"skip"`` (default) or ``"aggregate"`` to fold table rows
                beyond the measured range into the boundary samples.
        """
        if tails not in ("skip", "aggregate"):
            raise ValueError(f"Unknown tail mode: {tails!r}")
        xyz = _weighted_ordinate_kernel(
            curve.wavelengths, curve.values,
            table.wavelengths, table.weights,
            tails == "aggregate",
        )
        return TristimulusXYZ.from_array(xyz)

    @staticmethod
    def spectral_to_lab(curve: Optional[SpectralCurve], table: Optional[WeightingTable],
                        tails: TailMode = "skip", normalize: bool = True,
                        fallback: LabColor = FALLBACK_LAB) -> LabColor:
        """
        Reflectance -> XYZ -> Lab relative to the table's white point.

        Missing or empty input, a missing table, or a curve that shares no
        wavelength with the table return *fallback*.  With ``normalize``
        the curve is first brought onto the 0-1 scale
        (``SpectralCurve.normalized``).
        """
        if curve is None or table is None:
            logger.debug("spectral_to_lab: %s missing, using fallback",
                         "curve" if curve is None else "weighting table")
            return fallback
        if normalize:
            curve = curve.normalized()
        if curve.is_empty or SpectralPipeline.shared_wavelengths(curve, table) == 0:
            logger.debug("spectral_to_lab: no shared wavelengths with %s, using fallback",
                         table.key)
            return fallback

        xyz = SpectralPipeline.spectral_to_xyz(curve, table, tails).as_array()
        lab = ColorSpaceEngine._xyz_to_lab_raw(xyz[np.newaxis, :], table.white_point.as_array())
        return LabColor.from_array(lab[0])


# =============================================================================
# 6. DISPLAY PIPELINE
# =============================================================================

class DisplayPipeline:
    """Lab -> sRGB hex for presentation.  Output is display-only."""

    @staticmethod
    def lab_to_rgb(lab: LabColor, white: WhitePoint = WHITE_D50,
                   adapt_to_d65: bool = False) -> Tuple[int, int, int]:
        """
        8-bit sRGB triple for *lab*.

        Args:
            lab: Colour relative to *white*.
            white: Reference white of *lab*; D50 in print workflows.
            adapt_to_d65: Bradford-adapt from *white* to D65 before encoding,
                so that the Lab white renders as display white.
        """
        xyz = ColorSpaceEngine._lab_to_xyz_raw(lab.as_array()[np.newaxis, :], white.as_array())
        if adapt_to_d65:
            xyz = ChromaticAdaptation.adapt(xyz, white, WHITE_D65)
        rgb = ColorSpaceEngine.xyz_to_srgb(xyz)[0]
        scaled = np.floor(np.clip(rgb * 255.0, 0.0, 255.0) + 0.5)
        return int(scaled[0]), int(scaled[1]), int(scaled[2])

    @staticmethod
    def lab_to_hex(lab: LabColor, white: WhitePoint = WHITE_D50,
                   adapt_to_d65: bool = False,
                   fallback: DisplayHex = FALLBACK_HEX) -> DisplayHex:
        """
        ``#RRGGBB`` (upper-case) for *lab*.

        A non-finite Lab has no display colour and returns *fallback*.
        """
        if not lab.is_finite:
            logger.debug("lab_to_hex: non-finite Lab %s, using fallback", lab)
            return fallback
        r, g, b = DisplayPipeline.lab_to_rgb(lab, white, adapt_to_d65)
        return DisplayHex(f"#{r:02X}{g:02X}{b:02X}")


# =============================================================================
# 7. VALUE-TYPE CONVENIENCE FUNCTIONS
# =============================================================================

def spectral_to_xyz(curve: SpectralCurve, table: WeightingTable,
                    tails: TailMode = "skip") -> TristimulusXYZ:
    return SpectralPipeline.spectral_to_xyz(curve, table, tails)

def spectral_to_lab(curve: Optional[SpectralCurve], table: Optional[WeightingTable],
                    tails: TailMode = "skip", normalize: bool = True,
                    fallback: LabColor = FALLBACK_LAB) -> LabColor:
    return SpectralPipeline.spectral_to_lab(curve, table, tails, normalize, fallback)

def xyz_to_lab(xyz: TristimulusXYZ, white: WhitePoint = WHITE_D50) -> LabColor:
    """CIE 1976 XYZ -> L*a*b*."""
    return LabColor.from_array(ColorSpaceEngine.xyz_to_lab(xyz.as_array(), white))

def lab_to_xyz(lab: LabColor, white: WhitePoint = WHITE_D50) -> TristimulusXYZ:
    """CIE 1976 L*a*b* -> XYZ."""
    return TristimulusXYZ.from_array(ColorSpaceEngine.lab_to_xyz(lab.as_array(), white))

def lab_to_chroma_hue(lab: LabColor) -> ChromaHue:
    ch = ColorSpaceEngine.lab_to_ch(lab.as_array())
    return ChromaHue(float(ch[0]), float(ch[1]))

def chroma_hue_to_lab(L: float, ch: ChromaHue) -> LabColor:
    arr = ColorSpaceEngine.ch_to_lab(np.float64(L), np.array([ch.C, ch.h]))
    return LabColor.from_array(arr)

def lab_to_hex(lab: LabColor, white: WhitePoint = WHITE_D50,
               adapt_to_d65: bool = False,
               fallback: DisplayHex = FALLBACK_HEX) -> DisplayHex:
    return DisplayPipeline.lab_to_hex(lab, white, adapt_to_d65, fallback)
