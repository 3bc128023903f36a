[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyunix"
version = "0.1.0"
description = "Small Unix-style tools, a shell command parser, a toy allocator, an Sv39 page-table model and a file-system image builder"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "unix",
    "shell",
    "grep",
    "wc",
    "ls",
    "page-table",
    "malloc",
    "filesystem",
    "mkfs",
    "teaching",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
    "Topic :: Education",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyunix-grep = "tinyunix.grep:main"
tinyunix-wc = "tinyunix.wc:main"
tinyunix-ls = "tinyunix.ls:main"
tinyunix-mkfs = "tinyunix.mkfs:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyunix"]

[tool.hatch.build.targets.sdist]
include = ["tinyunix", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
