"""Iterative truncated means of histogrammed and raw samples."""

from __future__ import annotations

import warnings

import numpy as np

from .histogram import Hist1D

N_THROWS = 1000
DEFAULT_SEED = 4357


def _ordered_limits(sig_down, sig_up):
    if sig_down > sig_up:
        warnings.warn(
            f"reversing iterative truncated mean limits [{sig_down:.2e},{sig_up:.2e}]",
            stacklevel=3,
        )
        return sig_up, sig_down
    return sig_down, sig_up


def hist_mean_unc(hist: Hist1D, rng=None) -> tuple[float, float]:
    """Mean of a histogram and its spread under Gaussian fluctuations of the bins."""
    if hist.integral() == 0:
        raise ValueError("cannot estimate the mean of an empty histogram")
    rng = rng if rng is not None else np.random.default_rng(DEFAULT_SEED)
    noise = rng.normal(0.0, hist.errors, size=(N_THROWS, hist.nbins))
    throws = np.maximum(hist.contents + noise, 0.0)
    totals = throws.sum(axis=1)
    weighted = throws @ hist.bin_centers()
    means = np.divide(weighted, totals, out=np.zeros_like(weighted), where=totals != 0)
    return float(means.mean()), float(means.std(ddof=1))


def iterative_truncated_mean(
    hist: Hist1D, sig_down=-2.0, sig_up=2.0, tol=1.0e-4, rng=None
) -> tuple[float, float]:
    """Repeatedly drop bins outside median + [sig_down, sig_up] * sd until the mean settles.

    Returns the converged mean and its uncertainty.
    """
    sig_down, sig_up = _ordered_limits(sig_down, sig_up)
    previous: tuple[float, float] | None = None
    current = hist
    while True:
        mean, sd = current.mean(), current.std()
        if previous is not None and abs(previous[0] - mean) < tol:
            if current.integral() == 0:
                return previous
            return hist_mean_unc(current, rng)
        previous = (mean, sd)
        if current.integral() == 0:
            continue
        median = float(current.quantiles([0.5])[0])
        low = median + sig_down * sd
        high = median + sig_up * sd
        keep = (current.edges[:-1] <= high) & (current.edges[1:] >= low)
        trimmed = current.clone()
        trimmed.contents = np.where(keep, current.contents, 0.0)
        trimmed.sumw2 = np.where(keep, current.sumw2, 0.0)
        current = trimmed


def iterative_truncated_mean_array(
    data, sig_down=-2.0, sig_up=2.0, tol=1.0e-4
) -> tuple[float, float]:
    """Iterative truncated mean of raw values; returns the mean and its standard error."""
    sig_down, sig_up = _ordered_limits(sig_down, sig_up)
    sample = np.asarray(data, dtype=float).ravel()
    previous: float | None = None
    while True:
        if sample.size == 0:
            raise ValueError("no data left to average")
        mean = float(sample.mean())
        sd = float(sample.std(ddof=1)) if sample.size > 1 else 0.0
        if previous is not None and abs(previous - mean) < tol:
            return mean, sd / float(np.sqrt(sample.size))
        previous = mean
        median = float(np.median(sample))
        sample = sample[(sample >= median + sig_down * sd) & (sample <= median + sig_up * sd)]