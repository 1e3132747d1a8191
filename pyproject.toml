[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ratchet"
version = "0.1.0"
description = "A software ratchet tool that ensures metrics only improve"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["ratchet", "metrics", "git", "ci", "quality", "worktree"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ratchet = "ratchet.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ratchet"]

[tool.pytest.ini_options]
addopts = "-ra"
