"""Hit-width histogramming, truncated means and scale/shift fits for calibration studies."""

__version__ = "0.0.1"

__all__ = ["histogram", "truncmean", "ndhist", "slicing", "ndfit"]