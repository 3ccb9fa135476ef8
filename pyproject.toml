[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hashminer"
version = "0.1.0"
description = "Core utilities for a hash miner: hex and difficulty helpers, fixed-size hashes, logging, workers and a JSON-RPC/HTTP monitoring API"
requires-python = ">=3.10"
dependencies = []
keywords = ["mining", "ethash", "json-rpc", "monitoring", "hashrate", "difficulty"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hashminer"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
