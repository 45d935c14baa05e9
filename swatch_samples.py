# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Colour sample data model
========================
Immutable value types shared by every stage of the colorimetry pipeline:

  1.  ``SpectralCurve``   - reflectance vs. integer wavelength (nm), strictly
      increasing, read-only buffers and a structural fingerprint.
  2.  ``WhitePoint``, ``TristimulusXYZ``, ``LabColor``, ``ChromaHue`` -
      plain frozen triples / pairs on the 0–100 scale.
  3.  ``DisplayHex``      - an ``#RRGGBB`` display value.  It is a distinct
      type so that a display colour can never be fed back into a Delta E or
      matching computation.
  4.  ``ColorSample``     - tagged variant over the three data-quality tiers:
      ``SpectralSample`` (excellent), ``MeasuredSample`` (good) and
      ``DisplayOnlySample`` (limited, display only).
"""

from __future__ import annotations

import enum
import hashlib
import re
from dataclasses import dataclass
from typing import ClassVar, Dict, Final, Mapping, Optional, Tuple, TypeAlias, Union

import numpy as np

__all__ = [
    "SpectralCurve",
    "WhitePoint",
    "WHITE_D50",
    "WHITE_D65",
    "WHITE_POINTS",
    "TristimulusXYZ",
    "LabColor",
    "ChromaHue",
    "DisplayHex",
    "DataQuality",
    "SpectralSample",
    "MeasuredSample",
    "DisplayOnlySample",
    "ColorSample",
    "MatchableSample",
    "assess_quality",
    "structural_fingerprint",
    "require_matchable",
]

# Reflectance import window and percent-scale heuristics.
VISIBLE_RANGE_NM: Final[Tuple[int, int]] = (360, 830)
_PERCENT_MAX: Final[float] = 1.1
_PERCENT_MEAN: Final[float] = 1.0

_HEX_PATTERN: Final[re.Pattern[str]] = re.compile(r"^#[0-9A-Fa-f]{6}$")


def structural_fingerprint(*buffers: np.ndarray) -> str:
    """BLAKE2b digest over the raw bytes of *buffers*."""
    h = hashlib.blake2b(digest_size=16)
    for buf in buffers:
        h.update(np.ascontiguousarray(buf).tobytes())
    return h.hexdigest()


# ---------------------------------------------------------------------------
# 1.  Spectral curve
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True, eq=False)
class SpectralCurve:
    """
    Reflectance samples on an integer nanometre grid.

    Wavelengths are coerced to ``int64`` and must be strictly increasing;
    reflectance is stored as ``float64``.  Both buffers are made read-only
    after validation.  An empty curve is legal and converts to the
    fallback colour downstream.
    """
    wavelengths: np.ndarray
    values:      np.ndarray

    def __post_init__(self) -> None:
        wl = np.asarray(self.wavelengths, dtype=np.float64).ravel()
        vals = np.array(self.values, dtype=np.float64).ravel()

        if wl.shape != vals.shape:
            raise ValueError(
                f"SpectralCurve shape mismatch: {wl.shape} wavelengths, "
                f"{vals.shape} values"
            )
        if wl.size and not np.all(np.isfinite(wl)):
            raise ValueError("SpectralCurve wavelengths must be finite.")
        if wl.size and np.any(wl != np.round(wl)):
            raise ValueError("SpectralCurve wavelengths must be whole nanometres.")

        wl_int = wl.astype(np.int64)
        if wl_int.size > 1 and np.any(np.diff(wl_int) <= 0):
            raise ValueError(
                "SpectralCurve wavelengths must be strictly increasing "
                "without duplicates."
            )

        wl_int.setflags(write=False)
        vals.setflags(write=False)
        object.__setattr__(self, "wavelengths", wl_int)
        object.__setattr__(self, "values", vals)

    @classmethod
    def from_mapping(cls, mapping: Mapping[Union[int, float, str], float]) -> SpectralCurve:
        """
        Builds a curve from a ``{wavelength: reflectance}`` mapping.

        Keys are coerced to ``int`` and sorted.  Fractional wavelengths and
        two keys that coerce to the same wavelength (``"400"`` and ``400``)
        are rejected.
        """
        points: Dict[int, float] = {}
        for key, value in mapping.items():
            nm = float(key)
            if not np.isfinite(nm) or nm != round(nm):
                raise ValueError(f"Wavelength {key!r} is not a whole nanometre.")
            wl = int(nm)
            if wl in points:
                raise ValueError(f"Duplicate wavelength {wl} nm in spectral mapping.")
            points[wl] = float(value)

        ordered = sorted(points)
        return cls(
            np.array(ordered, dtype=np.int64),
            np.array([points[wl] for wl in ordered], dtype=np.float64),
        )

    @classmethod
    def empty(cls) -> SpectralCurve:
        return cls(np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64))

    def __len__(self) -> int:
        return int(self.wavelengths.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpectralCurve):
            return NotImplemented
        return (np.array_equal(self.wavelengths, other.wavelengths)
                and np.array_equal(self.values, other.values, equal_nan=True))

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    @property
    def is_empty(self) -> bool:
        return self.wavelengths.size == 0

    @property
    def fingerprint(self) -> str:
        """Structural hash of the wavelength and reflectance buffers."""
        return structural_fingerprint(self.wavelengths, self.values)

    def as_dict(self) -> Dict[int, float]:
        return {int(wl): float(v) for wl, v in zip(self.wavelengths, self.values)}

    def normalized(self) -> SpectralCurve:
        """
        Returns the curve on the 0–1 reflectance scale.

        Measurement files mix fractional and percent reflectance.  The curve
        is treated as percent when ``max > 1.1`` and ``mean > 1.0``; in that
        case every value above 1.0 is divided by 100.  Samples outside
        360–830 nm, negative samples and NaN are dropped, and the remainder
        is clamped to [0, 1].
        """
        wl, vals = self.wavelengths, self.values
        lo, hi = VISIBLE_RANGE_NM
        keep = (wl >= lo) & (wl <= hi) & np.isfinite(vals) & (vals >= 0.0)
        wl, vals = wl[keep], vals[keep].copy()

        if vals.size and vals.max() > _PERCENT_MAX and vals.mean() > _PERCENT_MEAN:
            over = vals > 1.0
            vals[over] = vals[over] / 100.0

        return SpectralCurve(wl, np.clip(vals, 0.0, 1.0))


# ---------------------------------------------------------------------------
# 2.  Colour value types
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class WhitePoint:
    """Reference white (Xn, Yn, Zn) on the 0–100 scale."""
    X: float
    Y: float
    Z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.X, self.Y, self.Z], dtype=np.float64)

    def is_close(self, other: WhitePoint, tolerance: float = 1e-3) -> bool:
        return bool(np.all(np.abs(self.as_array() - other.as_array()) <= tolerance))


WHITE_D50: Final[WhitePoint] = WhitePoint(96.422, 100.0, 82.521)
WHITE_D65: Final[WhitePoint] = WhitePoint(95.047, 100.0, 108.883)
WHITE_POINTS: Final[Dict[str, WhitePoint]] = {"D50": WHITE_D50, "D65": WHITE_D65}


@dataclass(slots=True, frozen=True)
class TristimulusXYZ:
    X: float
    Y: float
    Z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.X, self.Y, self.Z], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> TristimulusXYZ:
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))


@dataclass(slots=True, frozen=True)
class LabColor:
    """CIE 1976 L*a*b* coordinates."""
    L: float
    a: float
    b: float

    def as_array(self) -> np.ndarray:
        return np.array([self.L, self.a, self.b], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> LabColor:
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    @property
    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.as_array())))


@dataclass(slots=True, frozen=True)
class ChromaHue:
    """Chroma C* and hue angle h in degrees, [0, 360)."""
    C: float
    h: float


@dataclass(slots=True, frozen=True)
class DisplayHex:
    """
    Display-only ``#RRGGBB`` value, stored upper-case.

    Derived for presentation; never an input to colour difference or
    matching.
    """
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _HEX_PATTERN.match(self.value):
            raise ValueError(f"Invalid display hex {self.value!r}; expected '#RRGGBB'.")
        object.__setattr__(self, "value", self.value.upper())

    def __str__(self) -> str:
        return self.value

    def rgb(self) -> Tuple[int, int, int]:
        v = self.value
        return int(v[1:3], 16), int(v[3:5], 16), int(v[5:7], 16)


# ---------------------------------------------------------------------------
# 3.  Tagged sample variant
# ---------------------------------------------------------------------------
class DataQuality(enum.Enum):
    EXCELLENT = "excellent"   # full spectral data
    GOOD = "good"             # measured Lab
    LIMITED = "limited"       # display hex only
    POOR = "poor"             # nothing usable


@dataclass(slots=True, frozen=True)
class SpectralSample:
    curve: SpectralCurve
    name: str = ""

    quality: ClassVar[DataQuality] = DataQuality.EXCELLENT
    usable_for_matching: ClassVar[bool] = True


@dataclass(slots=True, frozen=True)
class MeasuredSample:
    lab: LabColor
    name: str = ""

    quality: ClassVar[DataQuality] = DataQuality.GOOD
    usable_for_matching: ClassVar[bool] = True


@dataclass(slots=True, frozen=True)
class DisplayOnlySample:
    hex: DisplayHex
    name: str = ""

    quality: ClassVar[DataQuality] = DataQuality.LIMITED
    usable_for_matching: ClassVar[bool] = False


ColorSample: TypeAlias = Union[SpectralSample, MeasuredSample, DisplayOnlySample]
MatchableSample: TypeAlias = Union[SpectralSample, MeasuredSample]


def assess_quality(sample: Optional[ColorSample]) -> DataQuality:
    if sample is None:
        return DataQuality.POOR
    return sample.quality


def require_matchable(sample: object) -> MatchableSample:
    """Rejects samples that cannot enter a colour-difference computation."""
    if isinstance(sample, (SpectralSample, MeasuredSample)):
        return sample
    if isinstance(sample, DisplayOnlySample):
        raise TypeError(
            f"Sample {sample.name!r} carries display hex only and cannot be "
            "used for colour matching."
        )
    raise TypeError(f"Unsupported sample type: {type(sample)}")
