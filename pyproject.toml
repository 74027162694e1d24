[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netbench"
version = "0.1.0"
description = "Building blocks for a deterministic in-memory network simulator, plus a golden-test runner"
requires-python = ">=3.10"
dependencies = []
keywords = ["network", "simulation", "pcapng", "udp", "ipv4", "schc", "golden-tests"]
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
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
netbench-golden = "netbench.golden:main"

[tool.hatch.build.targets.wheel]
packages = ["netbench"]

[tool.pytest.ini_options]
addopts = "-ra"
