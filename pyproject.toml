[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arkly"
version = "0.1.0"
description = "In-memory model of a tokenised real-estate platform: token presale and vesting, staking governance, and rental yield distribution"
requires-python = ">=3.10"
dependencies = []
keywords = ["tokenomics", "vesting", "governance", "staking", "yield", "real-estate"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["arkly"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
