"""Fit a scale and shift that bring a data histogram onto a simulated one.

The data histogram is resampled once into a fixed set of bootstrap values.
Each trial (scale, shift) maps those values through ``v * scale + shift``
and re-bins them. The result is compared with the simulation using a
Poisson likelihood ratio.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy.optimize import minimize

from .histogram import Hist1D

logger = logging.getLogger(__name__)

DATA_FILE = "output_data_0.npz"
MC_FILE = "output_mc_0.npz"
HIST_NAME = "htxz_13"
N_SAMPLES = 1_000_000
OUTPUT_FILE = "~/test.npz"

SCALE_LIMITS = (0.0, 100.0)
STEP = 0.1
EDGE_MARGIN = 1.0e-6


class BootstrapFCN:
    """Likelihood chi-square between resampled data and simulation."""

    up = 0.5

    def __init__(self, nsamples, hmc: Hist1D, hdata: Hist1D, rng=None):
        if hmc.nbins != hdata.nbins:
            raise ValueError("data and simulation histograms must have the same number of bins")
        mc_total = hmc.integral()
        if mc_total == 0:
            raise ValueError("the simulation histogram is empty")
        rng = rng if rng is not None else np.random.default_rng()
        self.nsamples = int(nsamples)
        self.hmc = hmc.clone()
        self.hdata = hdata.clone()
        self.samples = np.atleast_1d(self.hdata.random(rng, self.nsamples))
        self.hmc.scale(self.nsamples / mc_total)

    def __call__(self, params) -> float:
        scale, shift = params[0], params[1]
        sample = self.sample_hist(scale, shift)
        mc = self.hmc.contents
        dt = sample.contents
        used = mc > 0
        safe_dt = np.where(dt > 0, dt, 1.0)
        safe_mc = np.where(used, mc, 1.0)
        log_term = np.where(dt > 0, dt * np.log(safe_dt / safe_mc), 0.0)
        terms = np.where(used, mc - dt + log_term, 0.0)
        chi2 = 2.0 * float(terms.sum())
        logger.info("For scale=%g and shift=%g chisq=%g", scale, shift, chi2)
        return chi2

    def sample_hist(self, scale, shift) -> Hist1D:
        """The bootstrap values mapped by scale and shift, clipped to the axis, binned."""
        result = self.hdata.clone()
        result.reset()
        upper = result.edges[-1] - EDGE_MARGIN
        values = np.maximum(0.0, np.minimum(upper, self.samples * scale + shift))
        index = np.searchsorted(result.edges, values, side="right") - 1
        inside = (index >= 0) & (index < result.nbins)
        counts = np.bincount(index[inside], minlength=result.nbins).astype(float)
        result.contents = counts
        result.sumw2 = counts.copy()
        return result


@dataclass(frozen=True)
class FitResult:
    """Best-fit scale and shift with the chi-square reached there."""

    scale: float
    shift: float
    chi2: float
    success: bool
    nfev: int


def fit_scale_shift(hmc: Hist1D, hdata: Hist1D, nsamples=N_SAMPLES, rng=None):
    """Minimise the bootstrap chi-square over (scale, shift).

    Returns the fit result and the objective used, so the best sample can be redrawn.
    """
    fcn = BootstrapFCN(nsamples, hmc, hdata, rng)
    start = np.array([1.0, hmc.mean() - hdata.mean()])
    simplex = np.array([start, start + [STEP, 0.0], start + [0.0, STEP]])
    outcome = minimize(
        fcn,
        start,
        method="Nelder-Mead",
        bounds=[SCALE_LIMITS, (None, None)],
        options={"initial_simplex": simplex, "maxfev": 500},
    )
    scale, shift = (float(v) for v in outcome.x)
    result = FitResult(
        scale=scale,
        shift=shift,
        chi2=float(outcome.fun),
        success=bool(outcome.success),
        nfev=int(outcome.nfev),
    )
    logger.info("minimum: %s", result)
    return result, fcn


def ratio_to_mc(hist: Hist1D, hmc: Hist1D) -> Hist1D:
    """Bin-by-bin ratio to the simulation; bins empty in the simulation become zero."""
    if hist.nbins != hmc.nbins:
        raise ValueError("histograms must have the same number of bins")
    mc = hmc.contents
    nonzero = mc != 0
    safe = np.where(nonzero, mc, 1.0)
    result = hist.clone()
    result.contents = np.where(nonzero, hist.contents / safe, 0.0)
    result.sumw2 = np.where(nonzero, hist.sumw2 / (safe * safe), 0.0)
    return result


def _load_hist(path, name) -> Hist1D:
    with np.load(path) as archive:
        hist = Hist1D(archive[f"{name}_edges"])
        hist.contents = np.array(archive[f"{name}_contents"], dtype=float)
        key = f"{name}_sumw2"
        hist.sumw2 = (
            np.array(archive[key], dtype=float) if key in archive.files else hist.contents.copy()
        )
    if hist.contents.shape != (hist.nbins,) or hist.sumw2.shape != (hist.nbins,):
        raise ValueError(f"histogram {name!r} in {path} does not match its edges")
    return hist


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="ndfit", description="Fit a width scale and shift between data and simulation."
    )
    parser.add_argument("--data", default=DATA_FILE)
    parser.add_argument("--mc", default=MC_FILE)
    parser.add_argument("--hist", default=HIST_NAME)
    parser.add_argument("--nsamples", type=int, default=N_SAMPLES)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=OUTPUT_FILE)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    hd = _load_hist(args.data, args.hist)
    hm = _load_hist(args.mc, args.hist)

    rng = np.random.default_rng(args.seed)
    result, fcn = fit_scale_shift(hm, hd, args.nsamples, rng)
    print(f"minimum: scale={result.scale:.6g} shift={result.shift:.6g} chisq={result.chi2:.6g}")

    hm.scale(hd.integral() / hm.integral())
    hsample = fcn.sample_hist(result.scale, result.shift)
    hsample.scale(hd.integral() / hsample.integral())
    data_ratio = ratio_to_mc(hd, hm)
    sample_ratio = ratio_to_mc(hsample, hm)

    output = Path(args.output).expanduser()
    with open(output, "wb") as handle:
        np.savez(
            handle,
            edges=hd.edges,
            data=hd.contents,
            data_errors=hd.errors,
            mc=hm.contents,
            mc_errors=hm.errors,
            sample=hsample.contents,
            data_ratio=data_ratio.contents,
            data_ratio_errors=data_ratio.errors,
            sample_ratio=sample_ratio.contents,
            scale=result.scale,
            shift=result.shift,
            chi2=result.chi2,
        )
    return 0