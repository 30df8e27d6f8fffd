"""Fill n-dimensional hit-width histograms from calibration track records.

Each hit on a selected, T0-tagged, long enough track is histogrammed in
(x, y, z, ThetaXZ, ThetaYZ, dQ/dx, width), one histogram per plane and TPC.
Alongside, for every dimension, a 2D histogram against width counts how many
distinct tracks contributed to each bin.
"""

from __future__ import annotations

import json
import logging
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Sequence

import numpy as np

from .histogram import Hist2D, SparseHist

logger = logging.getLogger(__name__)

N_PLANES = 3
N_TPCS = 2
N_DIMS = 7
TRACK_CUT = 60.0  # cm
GOODNESS_CUT = 100.0
DRIFT_VELOCITY = 156.267
DRIFT_LENGTH = 200.0

LABELS = ("x", "y", "z", "txz", "tyz", "dqdx", "width")
TITLES = ("x (cm)", "y (cm)", "z (cm)", "ThetaXZ (deg)", "ThetaYZ (deg)", "dQ/dx", "Width")
NBINS = (60, 60, 70, 30, 30, 50, 200)
XMIN = (-300.0, -300.0, -100.0, 0.0, -180.0, 0.0, 0.0)
XMAX = (300.0, 300.0, 600.0, 180.0, 180.0, 5000.0, 20.0)

DATA_SUFFIX = ".jsonl"

# Binning of the YZ non-uniformity correction maps.
_YZ_X = (-200.0, 200.0, 40)
_YZ_Y = (-200.0, 200.0, 80)
_YZ_Z = (0.0, 500.0, 100)

USAGE = " wiremod-ndhist [data|mc] [sce] <filename or file list>"


@dataclass(frozen=True)
class Hit:
    """One reconstructed hit on a wire plane."""

    x: float
    y: float
    z: float
    width: float
    dqdx: float
    goodness: float = 0.0
    ontraj: bool = True
    tpc: int = 0

    @classmethod
    def from_dict(cls, record: Mapping) -> Hit:
        return cls(
            x=float(record["x"]),
            y=float(record["y"]),
            z=float(record["z"]),
            width=float(record["width"]),
            dqdx=float(record["dqdx"]),
            goodness=float(record.get("goodness", 0.0)),
            ontraj=bool(record.get("ontraj", True)),
            tpc=int(record.get("tpc", 0)),
        )


@dataclass
class Track:
    """A reconstructed track with its hits on each of the three planes."""

    direction: tuple[float, float, float]
    residual_range: Sequence[float]
    planes: tuple[list[Hit], ...] = field(default_factory=lambda: ([], [], []))
    selected: int = 1
    whicht0: int = 1
    run: int = 0
    subrun: int = 0
    event: int = 0

    @classmethod
    def from_dict(cls, record: Mapping) -> Track:
        planes = tuple([Hit.from_dict(h) for h in plane] for plane in record.get("hits", []))
        if len(planes) != N_PLANES:
            raise ValueError(f"a track needs hits for {N_PLANES} planes, got {len(planes)}")
        dx, dy, dz = (float(v) for v in record["direction"])
        return cls(
            direction=(dx, dy, dz),
            residual_range=[float(v) for v in record["residual_range"]],
            planes=planes,
            selected=int(record.get("selected", 1)),
            whicht0=int(record.get("whicht0", 1)),
            run=int(record.get("run", 0)),
            subrun=int(record.get("subrun", 0)),
            event=int(record.get("evt", 0)),
        )

    @property
    def angles(self) -> tuple[float, float]:
        """Polar and azimuthal angle of the track direction, in degrees."""
        dx, dy, dz = self.direction
        theta = math.degrees(math.atan2(math.hypot(dx, dy), dz))
        phi = math.degrees(math.atan2(dy, dx))
        return theta, phi


def _axis_bin(value: float, spec: tuple[float, float, int]) -> int | None:
    low, high, nbins = spec
    index = math.floor((value - low) / (high - low) * nbins)
    return index if 0 <= index < nbins else None


class WidthHistogrammer:
    """Accumulates hit widths per plane and TPC, with per-bin track counts."""

    def __init__(self, lifetime=None, yz_corrections=None):
        self.lifetime = lifetime
        self.yz_corrections = yz_corrections
        self.edges = tuple(
            np.linspace(low, high, n + 1) for n, low, high in zip(NBINS, XMIN, XMAX)
        )
        nhists = N_PLANES * N_TPCS
        self.hists = [SparseHist(NBINS, XMIN, XMAX) for _ in range(nhists)]
        self.hit_values: list[list[tuple[float, ...]]] = [[] for _ in range(nhists)]
        self.track_counts: dict[str, Hist2D] = {
            f"hntrk_{i}_{label}": Hist2D(self.edges[j], self.edges[-1])
            for i in range(nhists)
            for j, label in enumerate(LABELS)
        }
        self.n_tracks = 0
        self.n_hits = 0

    def _corrected_dqdx(self, hit: Hit, plane: int) -> float | None:
        """dQ/dx after the configured corrections, or None if the hit falls off the maps."""
        dqdx = hit.dqdx
        total = e_corr = yz_corr = 1.0
        if self.lifetime is not None:
            e_corr = lifetime_correction(hit.x, self.lifetime)
            dqdx *= e_corr
            total *= e_corr
        if self.yz_corrections is not None:
            if _axis_bin(hit.x, _YZ_X) is None:
                return None
            iy = _axis_bin(hit.y, _YZ_Y)
            if iy is None:
                return None
            iz = _axis_bin(hit.z, _YZ_Z)
            if iz is None:
                return None
            yz_corr = float(self.yz_corrections[(plane, hit.tpc)][iz, iy])
            dqdx *= yz_corr
            total *= yz_corr
        logger.debug(
            "total_correction=%.6e (%.6e, %.6e, %.6e)", total, 1.0, e_corr, yz_corr
        )
        return dqdx

    def add_track(self, track: Track) -> bool:
        """Histogram the good hits of a track; return whether the track passed selection."""
        if track.selected < 1 or track.whicht0 != 1:
            return False
        if not track.residual_range:
            logger.warning(
                "selected track (selected=%d) with no hits? Run=%d, Subrun=%d, Evt=%d. Skipping!",
                track.selected, track.run, track.subrun, track.event,
            )
            return False
        if track.residual_range[-1] < TRACK_CUT:
            return False

        self.n_tracks += 1
        theta, phi = track.angles
        seen: set[tuple[str, tuple[int, int]]] = set()
        for plane, hits in enumerate(track.planes):
            for hit in hits:
                if math.isnan(hit.x) or not hit.ontraj or hit.goodness >= GOODNESS_CUT:
                    continue
                # hit trains have widths in exact multiples of 0.5
                if is_int(hit.width * 2):
                    continue
                self.n_hits += 1
                dqdx = self._corrected_dqdx(hit, plane)
                if dqdx is None:
                    continue
                values = (hit.x, hit.y, hit.z, theta, phi, dqdx, hit.width)
                index = plane + N_PLANES * hit.tpc
                self.hists[index].fill(values)
                self.hit_values[index].append(values)
                for label, value in zip(LABELS, values):
                    name = f"hntrk_{index}_{label}"
                    counts = self.track_counts[name]
                    cell = counts.find_bin(value, values[-1])
                    if cell is None or (name, cell) in seen:
                        continue
                    counts.fill(value, values[-1])
                    seen.add((name, cell))
        return True

    def save(self, path):
        """Write hit values, track counts and axis edges to an .npz archive."""
        arrays: dict[str, np.ndarray] = {}
        for index, rows in enumerate(self.hit_values):
            arrays[f"hwidth{index}"] = np.array(rows, dtype=float).reshape(-1, N_DIMS)
        for name, counts in self.track_counts.items():
            arrays[name] = counts.contents
        for label, edges in zip(LABELS, self.edges):
            arrays[f"edges_{label}"] = edges
        with open(path, "wb") as handle:
            np.savez(handle, **arrays)


def filenames_from_input(input_arg, nmax=-1) -> list[str]:
    """A single data file, or the file names listed one per line in a text file."""
    input_arg = str(input_arg)
    if input_arg.endswith(DATA_SUFFIX):
        return [input_arg]
    names: list[str] = []
    with open(input_arg, encoding="utf-8") as listing:
        for count, line in enumerate(listing, start=1):
            name = line.rstrip("\n")
            print(f"Adding file {count}: {name}...")
            names.append(name)
            if 0 < nmax <= count:
                break
    return names


def collect_input_files(input_dir) -> list[str]:
    """Data files found one directory level below input_dir."""
    root = Path(input_dir)
    return [
        str(path)
        for entry in sorted(root.iterdir())
        if entry.is_dir()
        for path in sorted(entry.glob(f"*{DATA_SUFFIX}"))
    ]


def basename_prefix(path, prefix="") -> str:
    """The file name of path, without directories, with prefix prepended."""
    return prefix + str(path).rpartition("/")[2]


def is_int(value) -> bool:
    return abs(round(value) - value) < 1.0e-5


def lifetime_correction(x, tau) -> float:
    """Factor undoing electron attenuation over the drift from position x."""
    if abs(x) > DRIFT_LENGTH:
        return 1.0
    drift_time = (DRIFT_LENGTH - abs(x)) / DRIFT_VELOCITY
    return math.exp(drift_time / tau)


def _read_tracks(path) -> Iterator[Track]:
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            if line.strip():
                yield Track.from_dict(json.loads(line))


def _load_yz_corrections(path) -> dict[tuple[int, int], np.ndarray]:
    with np.load(path) as archive:
        return {
            (plane, tpc): np.array(archive[f"CzyHist_{plane}_{tpc}"])
            for plane in range(N_PLANES)
            for tpc in range(N_TPCS)
        }


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print(USAGE)
        return 1

    is_data = args[0] == "data"
    print(f"wiremod_ndhist: {'DATA' if is_data else 'MC'} mode")
    if args[1] == "sce":
        print("wiremod_ndhist: space-charge correction maps are not available", file=sys.stderr)
        return 1
    print("wiremod_ndhist: SCE will NOT be applied")

    lifetime = None
    if len(args) > 3:
        lifetime = float(args[2])
        print(f"wiremod_ndhist: Electron lifetime correction will be applied, tau={lifetime:.2e}")
    else:
        print("wiremod_ndhist: Electron lifetime correction will NOT be applied")

    yz_corrections = None
    if len(args) > 4:
        print(f"wiremod_ndhist: Loading YZ nonuniformity correction histograms from {args[3]}")
        yz_corrections = _load_yz_corrections(args[3])
    print(f"wiremod_ndhist: YZ nonuniformity correction will {'' if yz_corrections else 'NOT '}be applied")

    filenames = filenames_from_input(args[-1])
    if not filenames:
        print("wiremod_ndhist: no input files", file=sys.stderr)
        return 1
    output = Path(basename_prefix(filenames[0], "out_")).with_suffix(".npz")

    histogrammer = WidthHistogrammer(lifetime, yz_corrections)
    files_passed = 0
    for name in filenames:
        try:
            tracks = list(_read_tracks(name))
        except (OSError, ValueError, KeyError, TypeError):
            print(f"Could not open file {name}.", file=sys.stderr)
            continue
        files_passed += 1
        for track in tracks:
            histogrammer.add_track(track)

    print(f"Processed {histogrammer.n_tracks} tracks ({histogrammer.n_hits} hits)")
    if files_passed == 0:
        print("No files processed.")
        return 0
    histogrammer.save(output)
    return 0