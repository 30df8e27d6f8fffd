"""Fixed-binning histograms in one, two and many dimensions."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def _check_edges(edges) -> np.ndarray:
    array = np.asarray(edges, dtype=float)
    if array.ndim != 1 or array.size < 2:
        raise ValueError("a histogram axis needs at least two bin edges")
    if np.any(np.diff(array) <= 0):
        raise ValueError("bin edges must be strictly increasing")
    return array


def _locate(edges: np.ndarray, x: float) -> int:
    """Return the 0-based bin holding x: -1 below the axis, nbins above it."""
    return int(np.searchsorted(edges, x, side="right")) - 1


class Hist1D:
    """A one-dimensional histogram with per-bin sums of weights and squared weights."""

    def __init__(self, edges):
        self.edges = _check_edges(edges)
        self.contents = np.zeros(self.edges.size - 1)
        self.sumw2 = np.zeros(self.edges.size - 1)

    @property
    def nbins(self) -> int:
        return self.contents.size

    @property
    def errors(self) -> np.ndarray:
        return np.sqrt(self.sumw2)

    @property
    def widths(self) -> np.ndarray:
        return np.diff(self.edges)

    def fill(self, x, weight=1.0):
        """Add a weighted entry; return its bin, or None if it falls outside the axis."""
        index = _locate(self.edges, x)
        if not 0 <= index < self.nbins:
            return None
        self.contents[index] += weight
        self.sumw2[index] += weight * weight
        return index

    def set_bin(self, index, content, error=None):
        """Set a bin's content and error; the error defaults to sqrt(|content|)."""
        if not 0 <= index < self.nbins:
            raise IndexError(f"bin {index} outside 0..{self.nbins - 1}")
        if error is None:
            error = np.sqrt(abs(content))
        self.contents[index] = content
        self.sumw2[index] = error * error

    def reset(self):
        self.contents[:] = 0.0
        self.sumw2[:] = 0.0

    def clone(self) -> Hist1D:
        copy = Hist1D(self.edges)
        copy.contents = self.contents.copy()
        copy.sumw2 = self.sumw2.copy()
        return copy

    def integral(self) -> float:
        return float(self.contents.sum())

    def mean(self) -> float:
        """Content-weighted mean of the bin centres; 0 for an empty histogram."""
        total = self.contents.sum()
        if total == 0:
            return 0.0
        return float(self.contents @ self.bin_centers() / total)

    def std(self) -> float:
        """Content-weighted standard deviation of the bin centres."""
        total = self.contents.sum()
        if total == 0:
            return 0.0
        centers = self.bin_centers()
        mean = self.contents @ centers / total
        second = self.contents @ (centers * centers) / total
        return float(np.sqrt(abs(second - mean * mean)))

    def quantiles(self, probs) -> np.ndarray:
        """Positions below which the given fractions of the content lie."""
        total = self.contents.sum()
        if total == 0:
            raise ValueError("quantiles of an empty histogram are undefined")
        p = np.asarray(probs, dtype=float)
        cumulative = np.concatenate(([0.0], np.cumsum(self.contents))) / total
        index = np.clip(np.searchsorted(cumulative, p, side="right") - 1, 0, self.nbins - 1)
        step = cumulative[index + 1] - cumulative[index]
        offset = p - cumulative[index]
        fraction = np.divide(offset, step, out=np.zeros_like(offset), where=step > 0)
        return self.edges[index] + self.widths[index] * fraction

    def scale(self, factor):
        self.contents *= factor
        self.sumw2 *= factor * factor

    def bin_centers(self) -> np.ndarray:
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    def random(self, rng=None, size=None):
        """Draw values distributed like the histogram, uniform within each bin."""
        rng = rng if rng is not None else np.random.default_rng()
        draws = self.quantiles(rng.random(size))
        return float(draws) if size is None else draws


class Hist2D:
    """A two-dimensional histogram on rectangular bins."""

    def __init__(self, xedges, yedges):
        self.xedges = _check_edges(xedges)
        self.yedges = _check_edges(yedges)
        shape = (self.xedges.size - 1, self.yedges.size - 1)
        self.contents = np.zeros(shape)
        self.sumw2 = np.zeros(shape)

    @property
    def errors(self) -> np.ndarray:
        return np.sqrt(self.sumw2)

    def fill(self, x, y, weight=1.0):
        """Add a weighted entry; return its bin, or None if outside the axes."""
        cell = self.find_bin(x, y)
        if cell is None:
            return None
        self.contents[cell] += weight
        self.sumw2[cell] += weight * weight
        return cell

    def find_bin(self, x, y):
        """Return (ix, iy) for the point, or None if it lies outside the axes."""
        ix = _locate(self.xedges, x)
        iy = _locate(self.yedges, y)
        nx, ny = self.contents.shape
        if 0 <= ix < nx and 0 <= iy < ny:
            return ix, iy
        return None

    def projection_x(self) -> Hist1D:
        result = Hist1D(self.xedges)
        result.contents = self.contents.sum(axis=1)
        result.sumw2 = self.sumw2.sum(axis=1)
        return result

    def projection_y(self) -> Hist1D:
        result = Hist1D(self.yedges)
        result.contents = self.contents.sum(axis=0)
        result.sumw2 = self.sumw2.sum(axis=0)
        return result


class SparseHist:
    """An n-dimensional histogram with uniform axes that stores only filled cells."""

    def __init__(self, nbins: Sequence[int], lows: Sequence[float], highs: Sequence[float]):
        if not len(nbins) == len(lows) == len(highs) or not nbins:
            raise ValueError("nbins, lows and highs must have the same non-zero length")
        if any(n < 1 for n in nbins):
            raise ValueError("every axis needs at least one bin")
        self.edges = tuple(
            _check_edges(np.linspace(low, high, n + 1)) for n, low, high in zip(nbins, lows, highs)
        )
        self._cells: dict[tuple[int, ...], list[float]] = {}
        self._ranges: list[tuple[int, int] | None] = [None] * len(self.edges)

    @property
    def ndim(self) -> int:
        return len(self.edges)

    def fill(self, values):
        """Add one unit-weight entry at the given coordinates."""
        if len(values) != self.ndim:
            raise ValueError(f"expected {self.ndim} coordinates, got {len(values)}")
        key = tuple(_locate(edges, value) for edges, value in zip(self.edges, values))
        cell = self._cells.setdefault(key, [0.0, 0.0])
        cell[0] += 1.0
        cell[1] += 1.0

    def set_range(self, dim, low, high):
        """Restrict an axis to the bins that overlap the open interval (low, high)."""
        edges = self.edges[dim]
        nbins = edges.size - 1
        first = _locate(edges, low)
        last = _locate(edges, high)
        if 0 <= first < nbins and edges[first + 1] <= low:
            first += 1
        if 0 <= last < nbins and edges[last] >= high:
            last -= 1
        first = max(first, 0)
        last = min(last, nbins - 1)
        if last < first:
            raise ValueError(f"range ({low}, {high}) selects no bins on axis {dim}")
        self._ranges[dim] = (first, last)

    def _axis_span(self, dim) -> tuple[int, int]:
        return self._ranges[dim] or (0, self.edges[dim].size - 2)

    def projection(self, ydim, xdim) -> Hist2D:
        """Project onto (xdim, ydim), honouring the ranges set on every axis."""
        if xdim == ydim:
            raise ValueError("projection axes must differ")
        x_first, x_last = self._axis_span(xdim)
        y_first, y_last = self._axis_span(ydim)
        result = Hist2D(
            self.edges[xdim][x_first:x_last + 2],
            self.edges[ydim][y_first:y_last + 2],
        )
        limited = [
            (dim, span) for dim, span in enumerate(self._ranges)
            if span is not None and dim not in (xdim, ydim)
        ]
        nx, ny = result.contents.shape
        for key, (weight, weight2) in self._cells.items():
            if any(not lo <= key[dim] <= hi for dim, (lo, hi) in limited):
                continue
            ix = key[xdim] - x_first
            iy = key[ydim] - y_first
            if 0 <= ix < nx and 0 <= iy < ny:
                result.contents[ix, iy] += weight
                result.sumw2[ix, iy] += weight2
        return result