[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wirewidth"
version = "0.0.1"
description = "Hit-width histogramming, iterative truncated means and scale/shift fits for wire-chamber calibration studies"
requires-python = ">=3.10"
dependencies = [
    "numpy",
    "scipy",
]
keywords = [
    "physics",
    "calibration",
    "histogram",
    "truncated-mean",
    "bootstrap",
    "lartpc",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
wiremod-ndhist = "wirewidth.ndhist:main"
ndfit = "wirewidth.ndfit:main"

[tool.hatch.build.targets.wheel]
packages = ["wirewidth"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
