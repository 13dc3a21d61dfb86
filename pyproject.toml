[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ooga"
version = "0.1.0"
description = "Geometry, filtering and bookkeeping core of a binocular, glint-based head-mounted gaze tracker"
requires-python = ">=3.10"
keywords = [
    "eye tracking",
    "gaze estimation",
    "cornea",
    "pupil",
    "kalman filter",
    "camera model",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ooga"]

[tool.pytest.ini_options]
addopts = "-ra"
