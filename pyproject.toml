[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "machload"
version = "1.1.1"
description = "A small HTTP load-testing tool with run history and before/after regression checks"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "load-testing", "benchmark", "latency", "performance"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mach = "machload.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["machload"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
