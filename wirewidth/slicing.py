"""Width-versus-x slices of the n-dimensional width histograms in y/z regions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import numpy as np

from .histogram import Hist1D, Hist2D, SparseHist
from .truncmean import iterative_truncated_mean

logger = logging.getLogger(__name__)

Y_EDGES = (-300.0, -100.0, 0.0, 100.0, 300.0)
Z_EDGES = (-100.0, 100.0, 200.0, 300.0, 400.0, 600.0)

X_DIM, Y_DIM, Z_DIM, WIDTH_DIM = 0, 1, 2, 6

SIG_DOWN = -2.0
SIG_UP = 2.0
ITM_TOL = 1.0e-4

_PLANE_RE = re.compile(r"hwidth([0-9])")


@dataclass
class SliceResult:
    """Projections and the truncated-mean width graph for one (y, z) region."""

    iy: int
    iz: int
    y_range: tuple[float, float]
    z_range: tuple[float, float]
    width_vs_x: Hist2D
    xs: np.ndarray
    xerrs: np.ndarray
    ys: np.ndarray
    yerrs: np.ndarray
    yz: Hist2D

    @property
    def title(self) -> str:
        (y0, y1), (z0, z1) = self.y_range, self.z_range
        return f" Y=({y0:.2f}, {y1:.2f}), Z=({z0:.2f}, {z1:.2f})"

    @property
    def name(self) -> str:
        return f"h2d_{self.iy}_{self.iz}"

    @property
    def graph_name(self) -> str:
        return f"gitm_{self.iy}_{self.iz}_x_vs_width"

    @property
    def yz_name(self) -> str:
        return f"h2dyz_{self.iy}_{self.iz}"


def plane_index(hist_name) -> int:
    """The histogram index in a name such as 'hwidth3'."""
    match = _PLANE_RE.search(hist_name)
    if match is None:
        raise ValueError(f"no plane index in histogram name {hist_name!r}")
    return int(match.group(1))


def slice_from_2d_hist(hist: Hist2D, idx, axis=0) -> Hist1D:
    """One row (axis=0: fixed x bin) or column (axis=1: fixed y bin) of a 2D histogram.

    The last bin of the slice is left empty.
    """
    if axis == 0:
        result = Hist1D(hist.yedges)
        contents, sumw2 = hist.contents[idx, :], hist.sumw2[idx, :]
    else:
        result = Hist1D(hist.xedges)
        contents, sumw2 = hist.contents[:, idx], hist.sumw2[:, idx]
    result.contents[:-1] = contents[:-1]
    result.sumw2[:-1] = sumw2[:-1]
    return result


def itm_graph(proj: Hist2D, proj_ntrk: Hist2D, rng=None):
    """Iterative truncated mean of y in every x bin, with errors from track counts.

    Returns the arrays (xs, xerrs, ys, yerrs).
    """
    if proj.contents.shape != proj_ntrk.contents.shape:
        raise ValueError("hit and track-count histograms must have the same binning")
    xs = 0.5 * (proj.xedges[:-1] + proj.xedges[1:])
    xerrs = np.diff(proj.xedges) / 2.0
    ys = np.zeros(xs.size)
    yerrs = np.zeros(xs.size)
    for ix, (column, ntrk_column) in enumerate(zip(proj.contents, proj_ntrk.contents)):
        ntrk = np.trunc(ntrk_column)
        used = ntrk > 0
        hits_per_track = np.divide(column, ntrk, out=np.zeros_like(column), where=used)
        variance = ntrk * hits_per_track * (1.0 + hits_per_track)
        hslice = Hist1D(proj.yedges)
        hslice.contents = np.where(used, column, 0.0)
        hslice.sumw2 = np.where(used, variance, 0.0)
        ys[ix], yerrs[ix] = iterative_truncated_mean(hslice, SIG_DOWN, SIG_UP, ITM_TOL, rng)
    return xs, xerrs, ys, yerrs


def slice_yz(hist: SparseHist, proj_ntrk: Hist2D, rng=None) -> list[SliceResult]:
    """Width-versus-x projections and truncated-mean graphs over the y/z grid.

    Sets the y and z ranges of hist as it goes.
    """
    results = []
    for iy, y_range in enumerate(zip(Y_EDGES[:-1], Y_EDGES[1:])):
        hist.set_range(Y_DIM, *y_range)
        for iz, z_range in enumerate(zip(Z_EDGES[:-1], Z_EDGES[1:])):
            hist.set_range(Z_DIM, *z_range)
            logger.info(
                "Y=(%.2f, %.2f), Z=(%.2f, %.2f)", y_range[0], y_range[1], z_range[0], z_range[1]
            )
            proj = hist.projection(WIDTH_DIM, X_DIM)
            xs, xerrs, ys, yerrs = itm_graph(proj, proj_ntrk, rng)
            results.append(
                SliceResult(
                    iy=iy,
                    iz=iz,
                    y_range=y_range,
                    z_range=z_range,
                    width_vs_x=proj,
                    xs=xs,
                    xerrs=xerrs,
                    ys=ys,
                    yerrs=yerrs,
                    yz=hist.projection(Y_DIM, Z_DIM),
                )
            )
    return results