"""Tests for weighting tables, CSV import and the table store."""

from __future__ import annotations

import warnings

import numpy as np
import pytest

import swatch_data
from swatch_samples import WHITE_D50, WhitePoint
from swatch_tables import (
    DEFAULT_TABLE_KEY,
    TableKey,
    WeightingRow,
    WeightingTable,
    WeightingTableStore,
    parse_astm_csv,
)


def test_d50_table5_sums_match_published_white_point(d50_table: WeightingTable) -> None:
    """D50/2/5 factor sums over 360-780 nm reproduce 96.421, 99.997, 82.524."""
    assert d50_table.wavelengths[0] == 360
    assert d50_table.wavelengths[-1] == 780
    np.testing.assert_allclose(d50_table.factor_sums(), [96.421, 99.997, 82.524], atol=1e-3)
    assert d50_table.check_white_point(tolerance=1e-3)


def test_d65_table5_sums_match_white_point(d65_table: WeightingTable) -> None:
    """The bundled D65 table passes the same sanity check."""
    np.testing.assert_allclose(d65_table.factor_sums(), [95.047, 100.0, 108.883], atol=1e-3)
    assert d65_table.check_white_point()


def test_table_key_normalisation() -> None:
    """Illuminant upper-cased, observer reduced to digits, table number int."""
    assert TableKey.normalized(" d50 ", "2°", "5") == DEFAULT_TABLE_KEY
    assert TableKey.normalized("D65", 10, 6) == TableKey("D65", "10", 6)
    assert str(DEFAULT_TABLE_KEY) == "D50/2/5"
    with pytest.raises(ValueError):
        TableKey.normalized("D50", "deg", 5)


def test_from_rows_rejects_inconsistent_white_points() -> None:
    """All rows of one table must share a single white point."""
    rows = [
        WeightingRow(400, 1.0, 1.0, 1.0, WhitePoint(1.0, 1.0, 1.0)),
        WeightingRow(410, 1.0, 1.0, 1.0, WhitePoint(1.0, 1.0, 1.5)),
    ]
    with pytest.raises(ValueError, match="disagree"):
        WeightingTable.from_rows(DEFAULT_TABLE_KEY, rows)


def test_from_rows_uses_standard_white_when_rows_carry_none() -> None:
    """Without row white points the illuminant's standard white is used."""
    rows = [WeightingRow(410, 2.0, 2.0, 2.0), WeightingRow(400, 1.0, 1.0, 1.0)]
    table = WeightingTable.from_rows(("d50", "2", 5), rows)
    assert table.white_point == WHITE_D50
    assert table.wavelengths.tolist() == [400, 410]


def test_from_rows_rejects_duplicate_wavelengths() -> None:
    """Duplicate rows break the strictly increasing grid."""
    rows = [WeightingRow(400, 1.0, 1.0, 1.0), WeightingRow(400, 1.0, 1.0, 1.0)]
    with pytest.raises(ValueError, match="strictly increasing"):
        WeightingTable.from_rows(DEFAULT_TABLE_KEY, rows)


def test_parse_vertical_csv_groups_tables() -> None:
    """Vertical rows are grouped per (illuminant, observer, table)."""
    text = "\n".join([
        "illuminant,observer,table_number,wavelength,x,y,z,wx,wy,wz",
        "D50,2,5,400,1.0,2.0,3.0,3.0,5.0,7.0",
        "D50,2,5,410,2.0,3.0,4.0,3.0,5.0,7.0",
        "D65\t10\t5\t400\t1.0\t1.0\t1.0",
    ])
    tables = {t.key: t for t in parse_astm_csv(text)}

    d50 = tables[TableKey("D50", "2", 5)]
    assert d50.white_point == WhitePoint(3.0, 5.0, 7.0)
    assert d50.check_white_point()
    assert TableKey("D65", "10", 5) in tables


def test_parse_vertical_csv_reports_malformed_row() -> None:
    """A non-numeric factor names the offending line."""
    text = "h1,h2,h3,h4,h5,h6,h7\nD50,2,5,400,abc,1,1"
    with pytest.raises(ValueError, match="line 2"):
        parse_astm_csv(text)


def test_parse_horizontal_csv_with_white_point_column() -> None:
    """Horizontal layout: wavelengths as columns, X/Y/Z rows, WP column."""
    text = "\n".join([
        "Component,360,370,380,790,WP",
        "X,0.1,0.2,0.3,9.9,0.6",
        "Y,0.0,0.5,0.5,9.9,1.0",
        "Z,1.0,1.0,1.0,9.9,3.0",
    ])
    (table,) = parse_astm_csv(text, key=("D65", "2", 5))

    assert table.key == TableKey("D65", "2", 5)
    assert table.wavelengths.tolist() == [360, 370, 380]
    assert table.white_point == WhitePoint(0.6, 1.0, 3.0)
    assert table.check_white_point()


def test_parse_horizontal_csv_requires_white_point_column() -> None:
    """A horizontal table without a WP column is rejected."""
    text = "Component,360,370\nX,0.1,0.2\nY,0.1,0.2\nZ,0.1,0.2"
    with pytest.raises(ValueError, match="WP"):
        parse_astm_csv(text)


def test_store_lookup_and_fallback(bundled_store: WeightingTableStore) -> None:
    """get returns None for unknown keys; resolve falls back to D50/2/5."""
    missing = ("A", "10", 5)
    assert bundled_store.get(missing) is None
    assert missing not in bundled_store
    assert bundled_store.resolve(missing).key == DEFAULT_TABLE_KEY
    assert bundled_store.resolve(missing, fallback=None) is None
    with pytest.raises(KeyError):
        bundled_store[missing]


def test_store_warns_on_inconsistent_sums() -> None:
    """Registering a table whose sums miss its white point warns."""
    table = WeightingTable(DEFAULT_TABLE_KEY, np.array([400]), np.array([[1.0, 1.0, 1.0]]),
                           WhitePoint(2.0, 2.0, 2.0))
    store = WeightingTableStore()
    with pytest.warns(UserWarning, match="do not match"):
        store.add(table)
    assert store.get(DEFAULT_TABLE_KEY) is table


def test_bundled_store_loads_without_warnings() -> None:
    """The bundled tables pass their own sanity check."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        store = WeightingTableStore.load_bundled()
    assert len(store) == 2


def test_bundled_data_is_labelled_synthetic() -> None:
    """The bundled factors are documented as a synthetic set, not ASTM Table 5."""
    doc = swatch_data.__doc__ or ""
    assert "synthetic" in doc
    assert "NOT the ASTM E308 Table 5 values" in doc
    assert swatch_data.read_text().startswith("illuminant,observer,table_number,wavelength")
