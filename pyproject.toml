[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gwascan"
version = "0.1.0"
description = "Packed SNP genotype storage, association tests, relatedness and linkage disequilibrium"
requires-python = ">=3.10"
keywords = ["genetics", "gwas", "snp", "association", "linkage-disequilibrium", "kinship"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gwascan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
