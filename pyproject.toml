[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chronq"
version = "0.1.0"
description = "Building blocks for a memory-mapped message queue: record headers, control block, reader wake-ups, fan-in merging and bus discovery"
requires-python = ">=3.10"
dependencies = []
keywords = ["queue", "mmap", "messaging", "ipc", "fan-in", "discovery", "eventfd"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chronq"]

[tool.pytest.ini_options]
addopts = "-ra"
