"""Packed SNP genotypes with association, relatedness and linkage disequilibrium statistics."""

__version__ = "0.1.0"