"""Conversion of packed genotype data into dosage and indicator matrices."""

from __future__ import annotations

import numpy as np

from gwascan.genotypes import unpack_rows


def int_snp_matrix(
    data: bytes, nids: int, nsnps: int, transposed: bool = False
) -> list[list[int | None]]:
    """Allele dosages (0, 1, 2) of every individual at every SNP.

    ``data`` holds one packed row of ``nids`` genotypes per SNP.  Missing
    genotypes are ``None``.  The result has one row per individual and one
    column per SNP, or one row per SNP when ``transposed`` is true.
    """
    by_snp = [
        [code - 1 if code else None for code in row]
        for row in unpack_rows(data, nids, nsnps)
    ]
    if transposed:
        return by_snp
    return [[row[individual] for row in by_snp] for individual in range(nids)]


def impute_snp_matrix(data: bytes, nids: int, nsnps: int) -> np.ndarray:
    """Genotype indicators, shape ``(nsnps, 3 * nids)``.

    Columns ``3*i``, ``3*i + 1`` and ``3*i + 2`` hold 1.0 when individual
    ``i`` carries 0, 1 or 2 copies of the coded allele; a missing genotype
    leaves all three at 0.0.
    """
    out = np.zeros((nsnps, 3 * nids))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        for individual, code in enumerate(row):
            if code:
                out[snp, 3 * individual + code - 1] = 1.0
    return out