[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "datastacks"
version = "0.1.0"
description = "A small password-protected in-memory key-value server with string and list values and per-key expiry."
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "in-memory", "database", "server", "tcp", "cache"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
datastacks = "datastacks.app:main"

[tool.hatch.build.targets.wheel]
packages = ["datastacks"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
