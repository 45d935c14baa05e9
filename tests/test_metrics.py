"""Tests for the Delta E formulas and method selection."""

from __future__ import annotations

import math

import numpy as np
import pytest

from swatch_metrics import ColorMetrics, DeltaEMethod, delta_e, delta_e_batch
from swatch_samples import LabColor

ALL_METHODS = list(DeltaEMethod)
SYMMETRIC_METHODS = [DeltaEMethod.DE76, DeltaEMethod.DE94, DeltaEMethod.DE00]

REF = LabColor(50.0, 20.0, -10.0)
SAMPLE = LabColor(52.0, 22.0, -9.0)

# Sharma, Wu & Dalal (2005), Table 1 (subset).
SHARMA_PAIRS = [
    ((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485), 2.0425),
    ((50.0, 3.1571, -77.2803), (50.0, 0.0, -82.7485), 2.8615),
    ((50.0, -1.3802, -84.2814), (50.0, 0.0, -82.7485), 1.0000),
    ((50.0, 0.0, 0.0), (50.0, -1.0, 2.0), 2.3669),
    ((50.0, 2.49, -0.001), (50.0, -2.49, 0.0009), 7.1792),
    ((50.0, 2.49, -0.001), (50.0, -2.49, 0.0011), 7.2195),
    ((50.0, -0.001, 2.49), (50.0, 0.0009, -2.49), 4.8045),
    ((50.0, 2.5, 0.0), (73.0, 25.0, -18.0), 27.1492),
    ((50.0, 2.5, 0.0), (61.0, -5.0, 29.0), 22.8977),
    ((50.0, 2.5, 0.0), (56.0, -27.0, -3.0), 31.9030),
    ((50.0, 2.5, 0.0), (58.0, 24.0, 15.0), 19.4535),
    ((60.2574, -34.0099, 36.2677), (60.4626, -34.1751, 39.4387), 1.2644),
    ((63.0109, -31.0961, -5.8663), (62.8187, -29.7946, -4.0864), 1.2630),
]


@pytest.mark.parametrize(("lab1", "lab2", "expected"), SHARMA_PAIRS)
def test_ciede2000_sharma_reference(lab1: tuple, lab2: tuple, expected: float) -> None:
    """CIEDE2000 reproduces the published reference differences."""
    got = delta_e(LabColor(*lab1), LabColor(*lab2), DeltaEMethod.DE00)
    assert got == pytest.approx(expected, abs=5e-5)
    assert delta_e(LabColor(*lab2), LabColor(*lab1), DeltaEMethod.DE00) == pytest.approx(got, abs=1e-12)


def test_scenario_pair_pinned_values() -> None:
    """Pinned differences for {50, 20, -10} vs {52, 22, -9}."""
    assert delta_e(REF, SAMPLE, "dE00") == pytest.approx(2.4471686707, abs=1e-9)
    assert delta_e(REF, SAMPLE, "dE76") == pytest.approx(3.0, abs=1e-12)
    assert delta_e(REF, SAMPLE, "dE94") == pytest.approx(2.4784402509, abs=1e-9)
    assert delta_e(REF, SAMPLE, "dECMC2:1") == pytest.approx(1.8521044218, abs=1e-9)
    assert delta_e(REF, SAMPLE, "dECMC1:1") == pytest.approx(2.4419588594, abs=1e-9)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_identity_is_zero(method: DeltaEMethod) -> None:
    """Identical colours differ by exactly zero under every method."""
    gray = LabColor(50.0, 0.0, 0.0)
    assert delta_e(gray, gray, method) == 0.0
    assert delta_e(REF, REF, method) == 0.0


@pytest.mark.parametrize("method", ALL_METHODS)
def test_non_negative(method: DeltaEMethod) -> None:
    """Differences are never negative."""
    rng = np.random.default_rng(7)
    a = np.column_stack([rng.uniform(0, 100, 200), rng.uniform(-100, 100, 200), rng.uniform(-100, 100, 200)])
    b = np.column_stack([rng.uniform(0, 100, 200), rng.uniform(-100, 100, 200), rng.uniform(-100, 100, 200)])
    assert np.all(delta_e_batch(a, b, method) >= 0.0)


@pytest.mark.parametrize("method", SYMMETRIC_METHODS)
def test_symmetric_methods(method: DeltaEMethod) -> None:
    """dE76, dE94 and dE00 do not depend on argument order."""
    rng = np.random.default_rng(11)
    a = np.column_stack([rng.uniform(0, 100, 100), rng.uniform(-80, 80, 100), rng.uniform(-80, 80, 100)])
    b = np.column_stack([rng.uniform(0, 100, 100), rng.uniform(-80, 80, 100), rng.uniform(-80, 80, 100)])
    np.testing.assert_allclose(delta_e_batch(a, b, method), delta_e_batch(b, a, method), atol=1e-10)
    assert method.symmetric


def test_cmc_is_asymmetric() -> None:
    """CMC weights by the reference colour, so order matters."""
    forward = delta_e(REF, SAMPLE, DeltaEMethod.CMC_2_1)
    reverse = delta_e(SAMPLE, REF, DeltaEMethod.CMC_2_1)
    assert forward == pytest.approx(1.8521044218, abs=1e-9)
    assert reverse == pytest.approx(1.7895108261, abs=1e-9)
    assert forward != reverse

    gray, tinted = LabColor(50.0, 0.0, 0.0), LabColor(50.0, -1.0, 2.0)
    assert delta_e(gray, tinted, "dECMC2:1") == pytest.approx(3.5048087422, abs=1e-9)
    assert delta_e(tinted, gray, "dECMC2:1") == pytest.approx(2.8793003179, abs=1e-9)
    assert not DeltaEMethod.CMC_1_1.symmetric


def test_method_parsing() -> None:
    """String selectors map to members; the legacy dE2000 spelling is accepted."""
    assert DeltaEMethod.parse("dE00") is DeltaEMethod.DE00
    assert DeltaEMethod.parse("dE2000") is DeltaEMethod.DE00
    assert DeltaEMethod.parse("de76") is DeltaEMethod.DE76
    assert DeltaEMethod.parse("dECMC 1:1") is DeltaEMethod.CMC_1_1
    assert DeltaEMethod.parse(DeltaEMethod.DE94) is DeltaEMethod.DE94


@pytest.mark.parametrize("bad", ["", "dE", "CIEDE", "dECMC3:1", None, 2000])
def test_unknown_method_raises(bad: object) -> None:
    """There is no default method; unknown selectors are rejected."""
    with pytest.raises(ValueError, match="Unknown Delta E method"):
        delta_e(REF, SAMPLE, bad)  # type: ignore[arg-type]


@pytest.mark.parametrize("method", ALL_METHODS)
def test_non_finite_input_propagates(method: DeltaEMethod) -> None:
    """A NaN coordinate yields NaN rather than a plausible number."""
    assert math.isnan(delta_e(LabColor(float("nan"), 0.0, 0.0), REF, method))


def test_batch_broadcasts_single_reference() -> None:
    """One reference against N samples matches N pairwise calls."""
    samples = np.array([[52.0, 22.0, -9.0], [50.0, 20.0, -10.0], [40.0, 0.0, 5.0]])
    res = ColorMetrics.delta_E_2000(REF.as_array(), samples)
    assert res.shape == (3,)
    assert res[0] == pytest.approx(2.4471686707, abs=1e-9)
    assert res[1] == 0.0

    with pytest.raises(ValueError, match="not broadcastable"):
        ColorMetrics.delta_E_76(np.zeros((2, 3)), np.zeros((3, 3)))
