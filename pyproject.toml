[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sagaflow"
version = "0.1.0"
description = "Saga pattern orchestration: ordered steps with compensation, retries, step groups and background execution."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "saga",
    "compensation",
    "transactions",
    "orchestration",
    "retry",
    "workflow",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sagaflow"]

[tool.hatch.build.targets.sdist]
include = ["sagaflow", "tests"]

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
