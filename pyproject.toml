[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opinai"
version = "0.1.0"
description = "Building blocks for AI-driven bug reproduction and pull request review: agent tools, response parsing and repository analysis."
requires-python = ">=3.10"
dependencies = []
keywords = ["ai", "agent", "bug-reproduction", "code-review", "triage"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["opinai"]

[tool.pytest.ini_options]
addopts = "-ra"
