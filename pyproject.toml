[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "policybot"
version = "0.1.0"
description = "Define and evaluate approval and disapproval policies for pull requests."
requires-python = ">=3.10"
keywords = ["pull-request", "code-review", "approval", "policy", "git"]
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
    "Topic :: Software Development :: Version Control :: Git",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pyyaml>=6.0",
]

[tool.setuptools.packages.find]
include = ["policybot*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
