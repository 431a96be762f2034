[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tokamak-replay"
version = "0.1.0"
description = "Load, inspect and play back recorded tokamak particle simulation runs"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "tokamak",
    "plasma",
    "fusion",
    "replay",
    "particle simulation",
    "visualization",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
    "Topic :: Scientific/Engineering :: Visualization",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tokamak-replay = "tokamak_replay.viewer:main"

[tool.hatch.build.targets.wheel]
packages = ["tokamak_replay"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
