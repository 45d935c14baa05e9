# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Engine settings
===============
One frozen ``EngineSettings`` value carries every knob of the pipeline.  It
is serialisable via ``get_state`` / ``from_state`` so a host application can
persist an organisation's defaults, and its ``fingerprint`` covers exactly
the fields that change a computed Lab value (cache identity).
"""

from __future__ import annotations

import dataclasses
import hashlib
import math
from dataclasses import dataclass
from typing import Any, Dict, Union

from swatch_colorengine import TailMode
from swatch_metrics import DeltaEMethod
from swatch_samples import DisplayHex
from swatch_tables import TableKey

__all__ = ["EngineSettings", "DEFAULT_SETTINGS"]


@dataclass(slots=True, frozen=True)
class EngineSettings:
    illuminant:            str = "D50"
    observer:              str = "2"
    table_number:          int = 5
    delta_e_method:        Union[DeltaEMethod, str] = DeltaEMethod.DE00
    mismatch_threshold:    float = 1.0
    cache_capacity:        int = 1000
    tails:                 TailMode = "skip"
    normalize_reflectance: bool = True
    fallback_hex:          str = "#E5E7EB"

    def __post_init__(self) -> None:
        object.__setattr__(self, "delta_e_method", DeltaEMethod.parse(self.delta_e_method))
        if not math.isfinite(self.mismatch_threshold) or self.mismatch_threshold < 0.0:
            raise ValueError(
                f"mismatch_threshold must be a finite non-negative number, "
                f"got {self.mismatch_threshold!r}"
            )
        if int(self.cache_capacity) < 1:
            raise ValueError(f"cache_capacity must be >= 1, got {self.cache_capacity!r}")
        if self.tails not in ("skip", "aggregate"):
            raise ValueError(f"Unknown tail mode: {self.tails!r}")
        object.__setattr__(self, "fallback_hex", DisplayHex(self.fallback_hex).value)
        # Canonical key spelling ("d50" / "2°" -> "D50" / "2")
        key = self.table_key
        object.__setattr__(self, "illuminant", key.illuminant)
        object.__setattr__(self, "observer", key.observer)
        object.__setattr__(self, "table_number", key.table_number)

    @property
    def table_key(self) -> TableKey:
        return TableKey.normalized(self.illuminant, self.observer, self.table_number)

    @property
    def fingerprint(self) -> str:
        """Hash of the fields that affect spectral -> Lab results."""
        token = f"{self.table_key}|{self.tails}|{int(self.normalize_reflectance)}"
        return hashlib.blake2b(token.encode("utf-8"), digest_size=16).hexdigest()

    def replace(self, **changes: Any) -> EngineSettings:
        return dataclasses.replace(self, **changes)

    # -- serialisation ------------------------------------------------------
    def get_state(self) -> Dict[str, Any]:
        """Full serialisable snapshot."""
        return {
            "illuminant": self.illuminant,
            "observer": self.observer,
            "table_number": self.table_number,
            "delta_e_method": DeltaEMethod.parse(self.delta_e_method).value,
            "mismatch_threshold": self.mismatch_threshold,
            "cache_capacity": self.cache_capacity,
            "tails": self.tails,
            "normalize_reflectance": self.normalize_reflectance,
            "fallback_hex": self.fallback_hex,
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> EngineSettings:
        """Reconstruct settings from a serialised dict; missing keys take defaults."""
        defaults = cls()
        return cls(
            illuminant=state.get("illuminant", defaults.illuminant),
            observer=str(state.get("observer", defaults.observer)),
            table_number=int(state.get("table_number", defaults.table_number)),
            delta_e_method=state.get("delta_e_method", defaults.delta_e_method),
            mismatch_threshold=float(state.get("mismatch_threshold", defaults.mismatch_threshold)),
            cache_capacity=int(state.get("cache_capacity", defaults.cache_capacity)),
            tails=state.get("tails", defaults.tails),
            normalize_reflectance=bool(state.get("normalize_reflectance", defaults.normalize_reflectance)),
            fallback_hex=state.get("fallback_hex", defaults.fallback_hex),
        )


DEFAULT_SETTINGS = EngineSettings()
