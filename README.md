# wirewidth

Tools for studying hit widths in wire-readout detector calibration samples:
histogramming hits from selected tracks, taking iterative truncated means
of width distributions, and fitting a scale and shift between data and
simulation.

## Modules

- `wirewidth.histogram`: fixed-binning histograms.
  - `Hist1D(edges)`: `fill`, `set_bin`, `reset`, `clone`, `integral`,
    `mean`, `std`, `quantiles`, `scale`, `bin_centers`, and `random`, which
    draws values distributed like the histogram.
  - `Hist2D(xedges, yedges)`: `fill`, `find_bin`, `projection_x`,
    `projection_y`.
  - `SparseHist(nbins, lows, highs)`: an n-dimensional histogram with
    uniform axes that stores only filled cells. It has `fill`, `set_range`
    to restrict an axis, and `projection(ydim, xdim)` to a `Hist2D`.
- `wirewidth.truncmean`:
  - `iterative_truncated_mean(hist, sig_down, sig_up, tol, rng)` drops bins
    outside `median + [sig_down, sig_up] * sd` until the mean changes by less
    than `tol`. It returns the mean and its uncertainty.
  - `hist_mean_unc(hist, rng)` gives the mean and spread of a histogram's
    mean under 1000 Gaussian fluctuations of its bins. It raises
    `ValueError` for an empty histogram.
  - `iterative_truncated_mean_array(data, sig_down, sig_up, tol)` does the
    same on raw values and returns the mean and its standard error.

  If `sig_down > sig_up`, the limits are swapped and a warning is issued.
- `wirewidth.ndhist`: builds hit-width histograms per plane and TPC from
  track records. See `WidthHistogrammer`, `Track`, `Hit`,
  `lifetime_correction`, `is_int`, `filenames_from_input`,
  `collect_input_files` and `basename_prefix`. It also provides the
  `wiremod-ndhist` command.
- `wirewidth.slicing`: width-versus-x slices of a `SparseHist` over a fixed
  y/z grid.
  - The grid is y edges -300, -100, 0, 100, 300 and z edges -100, 100, 200,
    300, 400, 600.
  - `slice_yz` returns a list of `SliceResult` objects.
  - `itm_graph` computes truncated means per x bin, with bin errors taken
    from track counts.
  - `slice_from_2d_hist` takes one row or column of a `Hist2D`.
  - `plane_index` reads the index out of a name such as `hwidth3`.
- `wirewidth.ndfit`: a bootstrap fit of a scale and shift that maps data
  onto simulation.
  - `BootstrapFCN` is the Poisson likelihood chi-square objective.
  - `fit_scale_shift` minimises it with Nelder-Mead, with scale limited to
    [0, 100]. It returns a `FitResult` and the objective.
  - `ratio_to_mc` gives the bin-by-bin ratio to the simulation.
  - The module also provides the `ndfit` command.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Commands

### `wiremod-ndhist`

```
wiremod-ndhist data|mc <sce-flag> [lifetime] [yz-correction.npz] <input>
```

**Arguments**

- The first argument selects DATA or MC mode. Any value other than `data`
  means MC.
- If the second argument is `sce`, the command stops with an error, because
  space-charge corrections are not available. Any other value goes on
  without them.
- The last argument is the input. It is either a single `.jsonl` file, or a
  text file that lists one input file per line.
- With four or more arguments, the third is an electron lifetime. The
  dQ/dx of each hit is then multiplied by `lifetime_correction(x, tau)`.
- With five or more arguments, the fourth is an `.npz` file of YZ correction
  maps:
  - The maps are named `CzyHist_<plane>_<tpc>` and indexed `[iz, iy]`.
  - Hits outside the map binning are dropped.
  - Those binnings are x in [-200, 200) with 40 bins, y in [-200, 200) with
    80 bins, and z in [0, 500) with 100 bins.

**Input records**

Each line of a `.jsonl` input is one track, a JSON object with:

- `direction` (three components) and `residual_range` (a list).
- `hits`: three lists, one per plane, of hit objects. Each hit has `x`, `y`,
  `z`, `width` and `dqdx`, and optionally `goodness`, `ontraj` and `tpc`.
- Optionally `selected`, `whicht0`, `run`, `subrun` and `evt`.

**Selection**

A track is used only if all of these hold:

- `selected >= 1`;
- `whicht0 == 1`;
- its last residual-range value is at least 60 cm.

A hit is skipped if any of these hold:

- its x is NaN;
- it is off the trajectory;
- its goodness is 100 or more;
- its width is an exact multiple of 0.5.

**Output**

The output is written to `out_<input base name>.npz`, with the suffix
replaced. It holds:

- `hwidth<i>`: an array of (x, y, z, ThetaXZ, ThetaYZ, dQ/dx, width) rows
  for histogram `i = plane + 3 * tpc`.
- `hntrk_<i>_<label>`: track-count histograms, where each track is counted
  at most once per bin.
- `edges_<label>`: the axis edges.

Input files that cannot be read are reported and skipped.

### `ndfit`

```
ndfit [--data output_data_0.npz] [--mc output_mc_0.npz] [--hist htxz_13]
      [--nsamples 1000000] [--seed N] [--output ~/test.npz]
```

**Input**

Each input `.npz` must hold `<hist>_edges` and `<hist>_contents`.
`<hist>_sumw2` is optional; without it, the contents are used.

**What it does**

1. Fits scale and shift, starting from scale 1 and shift mean(mc) −
   mean(data), and prints the minimum.
2. Normalises the simulation and the best-fit sample to the data integral.

**Output**

The output `.npz` holds:

- the edges;
- data, simulation and sample contents, with their errors;
- the data and sample ratios to the simulation;
- the fitted `scale`, `shift` and `chi2`.

## Library use

```python
import numpy as np
from wirewidth.histogram import Hist1D
from wirewidth.truncmean import iterative_truncated_mean

rng = np.random.default_rng(1)
hist = Hist1D(np.linspace(-10, 10, 101))
for value in rng.normal(size=1000):
    hist.fill(value, 1.0)

mean, uncertainty = iterative_truncated_mean(hist, -2, 2, 1.0e-4, rng)
```

```python
from wirewidth.ndhist import lifetime_correction

factor = lifetime_correction(50.0, 10.0)  # exp(((200 - 50) / 156.267) / 10)
```

## What the package does not do

- It does not read or write ROOT files. Inputs and outputs are JSON lines
  and NumPy `.npz` archives.
- It has no space-charge correction.
- It draws no plots or canvases. The `ndfit` output holds the arrays needed
  to plot the data, the simulation and the fitted sample.
- Y/Z slicing is available only as a library function, not as a command.