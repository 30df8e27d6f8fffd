import numpy as np
import pytest

from wirewidth.histogram import Hist1D
from wirewidth.truncmean import (
    hist_mean_unc,
    iterative_truncated_mean,
    iterative_truncated_mean_array,
)


def _gaussian_hist(seed=0):
    h = Hist1D(np.linspace(-10.0, 10.0, 101))
    for value in np.random.default_rng(seed).normal(0.0, 1.0, 1000):
        h.fill(value)
    return h


def test_gaussian_histogram_truncated_mean():
    h = _gaussian_hist()
    mean, unc = iterative_truncated_mean(h, -2, 2, 1.0e-4)
    assert abs(mean) < 0.2
    assert 0.0 < unc < 0.2


def test_histogram_outlier_bin_removed():
    h = Hist1D(np.linspace(0.0, 100.0, 101))
    for i in (10, 11, 12):
        h.set_bin(i, 100.0, 0.0)
    h.set_bin(95, 5.0, 0.0)
    mean, unc = iterative_truncated_mean(h)
    assert mean == pytest.approx(h.bin_centers()[11])
    assert unc == pytest.approx(0.0)


def test_histogram_reversed_limits_warn_and_agree():
    h = _gaussian_hist(3)
    expected = iterative_truncated_mean(h, -2, 2)
    with pytest.warns(UserWarning):
        result = iterative_truncated_mean(h, 2, -2)
    assert result == pytest.approx(expected)


def test_empty_histogram_truncated_mean_is_zero():
    h = Hist1D([0.0, 1.0, 2.0])
    assert iterative_truncated_mean(h) == (0.0, 0.0)


def test_hist_mean_unc_without_errors_is_exact():
    h = Hist1D([0.0, 1.0, 2.0, 3.0])
    h.set_bin(0, 2.0, 0.0)
    h.set_bin(2, 6.0, 0.0)
    mean, unc = hist_mean_unc(h)
    assert mean == pytest.approx(h.mean())
    assert unc == pytest.approx(0.0)


def test_hist_mean_unc_is_reproducible():
    h = _gaussian_hist(7)
    assert hist_mean_unc(h) == hist_mean_unc(h)
    assert hist_mean_unc(h)[1] > 0.0


def test_hist_mean_unc_empty_raises():
    with pytest.raises(ValueError):
        hist_mean_unc(Hist1D([0.0, 1.0]))


def test_array_outlier_removed():
    mean, unc = iterative_truncated_mean_array([1.0, 2.0, 3.0, 4.0, 5.0, 100.0], -2, 2, 1.0e-4)
    core = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    assert mean == pytest.approx(core.mean())
    assert unc == pytest.approx(core.std(ddof=1) / np.sqrt(core.size))


def test_array_gaussian_close_to_centre():
    data = np.random.default_rng(11).normal(5.0, 1.0, 1000)
    mean, unc = iterative_truncated_mean_array(data)
    assert mean == pytest.approx(5.0, abs=0.2)
    assert 0.0 < unc < 0.1


def test_array_reversed_limits_warn():
    data = [1.0, 2.0, 3.0, 4.0, 5.0, 100.0]
    with pytest.warns(UserWarning):
        result = iterative_truncated_mean_array(data, 2, -2)
    assert result == pytest.approx(iterative_truncated_mean_array(data, -2, 2))


def test_array_everything_cut_raises():
    with pytest.raises(ValueError):
        iterative_truncated_mean_array([1.0, 2.0, 3.0], 3, 4)
    with pytest.raises(ValueError):
        iterative_truncated_mean_array([])