[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oakbridge"
version = "0.1.0"
description = "Building blocks for joining a Kubernetes cluster to the Oakestra orchestrator: agent configuration, job resources, a network admission webhook and a service translation table."
requires-python = ">=3.10"
keywords = [
    "oakestra",
    "kubernetes",
    "orchestration",
    "edge computing",
    "cni",
    "admission webhook",
    "custom resource",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Distributed Computing",
    "Typing :: Typed",
]
dependencies = [
    "requests>=2.28",
    "flask>=2.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["oakbridge"]

[tool.hatch.build.targets.sdist]
include = ["oakbridge", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
