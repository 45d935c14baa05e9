# -*- coding: utf-8 -*-
"""
Swatch: Spectral colorimetry for substrate and ink matching
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

ASTM E308 weighting tables
==========================
Read-only store of weighting-factor tables keyed by
``(illuminant, observer, table_number)``.

Design:
  1.  A ``WeightingTable`` is immutable once built: integer wavelength grid,
      an (N, 3) factor array and exactly one white point.  Tables whose
      source rows disagree on the white point are rejected at construction.
  2.  ``factor_sums()`` / ``check_white_point()`` expose the ASTM sanity
      check (column sums equal the white point).  It is not enforced on
      the conversion path; ``WeightingTableStore.add`` warns when a table
      fails it.
  3.  CSV import accepts the vertical layout (one row per wavelength) and
      the horizontal layout (wavelengths as columns, X/Y/Z as rows plus a
      ``WP`` white-point column), comma or tab separated.
  4.  Lookups never raise on a missing table: ``get`` returns ``None`` and
      ``resolve`` falls back to D50 / 2 deg / table 5.
"""

from __future__ import annotations

import logging
import re
import threading
import warnings
from dataclasses import dataclass
from typing import (
    Dict, Final, Iterable, Iterator, List, NamedTuple, Optional, Tuple, TypeAlias, Union,
)

import numpy as np

import swatch_data
from swatch_samples import WHITE_POINTS, WhitePoint, structural_fingerprint

logger = logging.getLogger(__name__)

__all__ = [
    "TableKey",
    "DEFAULT_TABLE_KEY",
    "WeightingRow",
    "WeightingTable",
    "WeightingTableStore",
    "parse_astm_csv",
]

_SPLIT: Final[re.Pattern[str]] = re.compile(r"[,\t]")
# Header cells in this window mark the horizontal layout.
_HORIZONTAL_WL_RANGE: Final[Tuple[int, int]] = (300, 800)
_HORIZONTAL_KEEP_RANGE: Final[Tuple[int, int]] = (360, 780)


# ---------------------------------------------------------------------------
# 1.  Keys and rows
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class TableKey:
    illuminant:   str
    observer:     str
    table_number: int

    @classmethod
    def normalized(cls, illuminant: str, observer: Union[str, int],
                   table_number: Union[str, int]) -> TableKey:
        """
        Canonical key: upper-case illuminant, observer reduced to its digits
        (``"2°"``, ``"2 deg"`` and ``2`` all become ``"2"``).
        """
        obs = re.sub(r"\D", "", str(observer))
        if not obs:
            raise ValueError(f"Observer {observer!r} contains no angle digits.")
        return cls(str(illuminant).strip().upper(), obs, int(table_number))

    def __str__(self) -> str:
        return f"{self.illuminant}/{self.observer}/{self.table_number}"


DEFAULT_TABLE_KEY: Final[TableKey] = TableKey("D50", "2", 5)

KeyLike: TypeAlias = Union[TableKey, Tuple[str, Union[str, int], Union[str, int]]]


def _coerce_key(key: KeyLike) -> TableKey:
    if isinstance(key, TableKey):
        return key
    if isinstance(key, tuple) and len(key) == 3:
        return TableKey.normalized(*key)
    raise TypeError(f"Unsupported table key: {key!r}")


class WeightingRow(NamedTuple):
    """One weighting-factor row as it appears in an import file."""
    wavelength:  int
    x:           float
    y:           float
    z:           float
    white_point: Optional[WhitePoint] = None


# ---------------------------------------------------------------------------
# 2.  WeightingTable
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True, eq=False)
class WeightingTable:
    key:         TableKey
    wavelengths: np.ndarray   # (N,) int64, strictly increasing
    weights:     np.ndarray   # (N, 3) float64: x, y, z factors
    white_point: WhitePoint

    def __post_init__(self) -> None:
        wl = np.asarray(self.wavelengths, dtype=np.int64).ravel().copy()
        w = np.array(self.weights, dtype=np.float64)
        if w.ndim != 2 or w.shape[1] != 3:
            raise ValueError(f"Weights must be shape (N, 3), got {w.shape}.")
        if w.shape[0] != wl.shape[0]:
            raise ValueError(
                f"WeightingTable {self.key} shape mismatch: "
                f"{wl.shape[0]} wavelengths, {w.shape[0]} weight rows"
            )
        if wl.size > 1 and np.any(np.diff(wl) <= 0):
            raise ValueError(
                f"WeightingTable {self.key} wavelengths must be strictly increasing."
            )
        wl.setflags(write=False)
        w.setflags(write=False)
        object.__setattr__(self, "wavelengths", wl)
        object.__setattr__(self, "weights", w)

    @classmethod
    def from_rows(cls, key: KeyLike, rows: Iterable[WeightingRow],
                  white_point: Optional[WhitePoint] = None) -> WeightingTable:
        """
        Assembles a table from import rows.

        Every row that carries a white point must carry the same one.  When
        no row does, *white_point* is used, then the standard white of the
        illuminant.
        """
        key = _coerce_key(key)
        ordered = sorted(rows, key=lambda r: r.wavelength)
        if not ordered:
            raise ValueError(f"WeightingTable {key} has no rows.")

        row_whites = {r.white_point for r in ordered if r.white_point is not None}
        if len(row_whites) > 1:
            raise ValueError(
                f"WeightingTable {key} rows disagree on the white point: "
                + ", ".join(str(wp) for wp in sorted(row_whites, key=repr))
            )
        if row_whites:
            wp = row_whites.pop()
        elif white_point is not None:
            wp = white_point
        elif key.illuminant in WHITE_POINTS:
            wp = WHITE_POINTS[key.illuminant]
        else:
            raise ValueError(
                f"WeightingTable {key} has no white point and "
                f"{key.illuminant} is not a known illuminant."
            )

        wl = np.array([r.wavelength for r in ordered], dtype=np.int64)
        weights = np.array([[r.x, r.y, r.z] for r in ordered], dtype=np.float64)
        return cls(key, wl, weights, wp)

    def __len__(self) -> int:
        return int(self.wavelengths.size)

    @property
    def fingerprint(self) -> str:
        return structural_fingerprint(self.wavelengths, self.weights, self.white_point.as_array())

    def factor_sums(self) -> np.ndarray:
        """Column sums of the x, y, z factors."""
        return self.weights.sum(axis=0)

    def check_white_point(self, tolerance: float = 1e-3) -> bool:
        """True when the factor sums reproduce the white point within *tolerance*."""
        diff = np.abs(self.factor_sums() - self.white_point.as_array())
        return bool(np.all(diff <= tolerance))


# ---------------------------------------------------------------------------
# 3.  CSV parsing
# ---------------------------------------------------------------------------
def _cells(line: str) -> List[str]:
    return [c.strip() for c in _SPLIT.split(line)]


def _as_int(cell: str) -> Optional[int]:
    try:
        return int(float(cell))
    except (ValueError, OverflowError):
        return None


def _float_or_zero(cell: str) -> float:
    try:
        return float(cell)
    except ValueError:
        return 0.0


def _parse_vertical(lines: List[str]) -> Dict[TableKey, List[WeightingRow]]:
    grouped: Dict[TableKey, List[WeightingRow]] = {}
    for lineno, line in enumerate(lines[1:], start=2):
        cells = _cells(line)
        if len(cells) < 7:
            continue
        try:
            key = TableKey.normalized(cells[0], cells[1], int(float(cells[2])))
            wl = int(float(cells[3]))
            x, y, z = float(cells[4]), float(cells[5]), float(cells[6])
        except ValueError as exc:
            raise ValueError(f"Malformed weighting row at line {lineno}: {line!r}") from exc

        wp: Optional[WhitePoint] = None
        if len(cells) >= 10 and all(cells[7:10]):
            wp = WhitePoint(float(cells[7]), float(cells[8]), float(cells[9]))
        grouped.setdefault(key, []).append(WeightingRow(wl, x, y, z, wp))
    return grouped


def _parse_horizontal(lines: List[str], key: TableKey) -> Dict[TableKey, List[WeightingRow]]:
    headers = _cells(lines[0])
    lo, hi = _HORIZONTAL_KEEP_RANGE
    columns: List[Tuple[int, int]] = []
    for idx, cell in enumerate(headers):
        wl = _as_int(cell)
        if wl is not None and lo <= wl <= hi:
            columns.append((idx, wl))

    tri: Dict[str, List[str]] = {}
    for line in lines[1:]:
        cells = _cells(line)
        label = cells[0].lower()
        if label in ("x", "y", "z"):
            tri[label] = cells
    if len(tri) != 3:
        raise ValueError("Could not find X, Y, Z rows in horizontal weighting table.")

    lowered = [h.lower() for h in headers]
    if "wp" not in lowered:
        raise ValueError("Horizontal weighting table has no 'WP' (white point) column.")
    wp_idx = lowered.index("wp")
    wp = WhitePoint(float(tri["x"][wp_idx]), float(tri["y"][wp_idx]), float(tri["z"][wp_idx]))

    rows = [
        WeightingRow(
            wl,
            _float_or_zero(tri["x"][idx]),
            _float_or_zero(tri["y"][idx]),
            _float_or_zero(tri["z"][idx]),
            wp,
        )
        for idx, wl in columns
    ]
    return {key: rows}


def parse_astm_csv(text: str, key: Optional[KeyLike] = None) -> List[WeightingTable]:
    """
    Parses weighting tables from CSV / TSV text.

    The layout is detected from the header: any header cell that reads as a
    wavelength between 300 and 800 nm marks the horizontal layout, whose key
    must be passed in (it defaults to D50 / 2 / 5).  The vertical layout
    carries the key in every row and may hold several tables.
    """
    lines = [ln for ln in text.strip().splitlines() if ln.strip()]
    if not lines:
        return []

    lo, hi = _HORIZONTAL_WL_RANGE
    header_wls = [_as_int(c) for c in _cells(lines[0])]
    if any(wl is not None and lo <= wl <= hi for wl in header_wls):
        grouped = _parse_horizontal(lines, _coerce_key(key) if key else DEFAULT_TABLE_KEY)
    else:
        grouped = _parse_vertical(lines)

    return [WeightingTable.from_rows(k, rows) for k, rows in grouped.items()]


# ---------------------------------------------------------------------------
# 4.  WeightingTableStore
# ---------------------------------------------------------------------------
class WeightingTableStore:
    """
    Registry of weighting tables.

    Tables are immutable, so readers share them freely; only registration
    takes the lock.
    """

    def __init__(self, tables: Iterable[WeightingTable] = ()) -> None:
        self._tables: Dict[TableKey, WeightingTable] = {}
        self._lock = threading.RLock()
        for table in tables:
            self.add(table)

    @classmethod
    def load_bundled(cls) -> WeightingTableStore:
        """Store pre-loaded with the bundled D50 / D65 Table 5 factors."""
        store = cls()
        store.add_csv_text(swatch_data.read_text())
        return store

    # -- registration -------------------------------------------------------
    def add(self, table: WeightingTable) -> None:
        if not table.check_white_point():
            sums = table.factor_sums()
            warnings.warn(
                f"Weighting table {table.key}: factor sums "
                f"({sums[0]:.3f}, {sums[1]:.3f}, {sums[2]:.3f}) do not match "
                f"white point ({table.white_point.X}, {table.white_point.Y}, "
                f"{table.white_point.Z}).",
                stacklevel=2,
            )
        with self._lock:
            self._tables[table.key] = table
        logger.debug("Registered weighting table %s (%d rows)", table.key, len(table))

    def add_csv_text(self, text: str, key: Optional[KeyLike] = None) -> List[TableKey]:
        tables = parse_astm_csv(text, key)
        for table in tables:
            self.add(table)
        return [t.key for t in tables]

    # -- lookup -------------------------------------------------------------
    def __getitem__(self, key: KeyLike) -> WeightingTable:
        table = self.get(key)
        if table is None:
            raise KeyError(f"Weighting table {key} not found.")
        return table

    def __contains__(self, key: object) -> bool:
        try:
            return _coerce_key(key) in self._tables  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[TableKey]:
        return iter(list(self._tables))

    def keys(self) -> List[TableKey]:
        return list(self._tables)

    def get(self, key: KeyLike) -> Optional[WeightingTable]:
        return self._tables.get(_coerce_key(key))

    def resolve(self, key: KeyLike,
                fallback: Optional[TableKey] = DEFAULT_TABLE_KEY) -> Optional[WeightingTable]:
        """
        Returns the table for *key*, else the *fallback* table, else ``None``.
        """
        table = self.get(key)
        if table is None and fallback is not None:
            logger.debug("Weighting table %s missing, falling back to %s", key, fallback)
            table = self.get(fallback)
        return table

    def __repr__(self) -> str:
        keys = ", ".join(str(k) for k in self._tables)
        return f"WeightingTableStore([{keys}])"
