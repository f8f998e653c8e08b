[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mtfs"
version = "1.0.0"
description = "A small file system layer with caching, RLE compression, backups, a block store and a thread pool"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "block storage", "backup", "compression", "cache", "thread pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mtfs"]

[tool.pytest.ini_options]
addopts = "-ra"
