# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Bundled reference data.

``astm_e308_table5.csv`` carries the 10 nm, 360-780 nm weighting factors
for D50 and D65 (CIE 1931 2 deg observer) in the vertical import layout.
These are NOT the ASTM E308 Table 5 values.  They are a synthetic working
set: 3-decimal factors shaped like the CIE 1931 colour-matching functions
weighted by each illuminant, then adjusted so that every column sums to the
published Table 5 white point (D50 96.421 / 99.997 / 82.524, D65 95.047 /
100.000 / 108.883).  They exercise the engine and its tests; colorimetric
results from them are approximate.  Load the licensed ASTM tables through
``WeightingTableStore.add_csv_text`` for production use.
"""

from importlib import resources

BUNDLED_TABLES: str = "astm_e308_table5.csv"


def read_text(name: str = BUNDLED_TABLES) -> str:
    """Returns the text of a bundled data file."""
    return resources.files(__name__).joinpath(name).read_text(encoding="utf-8")
