"""Score tests that account for relatedness through an inverse covariance matrix.

Every test returns one row of seven statistics per SNP, as a NumPy array
of shape ``(nsnps, 7)``: 1-df chi2, two unused columns (0), effect
estimate, two unused columns (0) and the number of measured individuals.
A SNP without any measured individual gets ``[0, 0, 0.0001, 0, 0, 0, 0]``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence

import numpy as np

from gwascan.genotypes import unpack_rows

_EPSILON = 1.0e-16
_EMPTY_ROW = (0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, 0.0)


def _labels(strata: Sequence[int] | None, nids: int) -> tuple[np.ndarray, int]:
    if strata is None:
        return np.zeros(nids, dtype=int), 1
    labels = np.asarray(strata, dtype=int)
    if labels.shape != (nids,):
        raise ValueError(f"strata has {labels.size} values, expected {nids}")
    if (labels < 0).any():
        raise ValueError("stratum labels must be non-negative")
    return labels, (int(labels.max()) + 1 if nids else 1)


def _prepare(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, int, list[list[int]]]:
    values = np.asarray(pheno, dtype=float)
    if values.shape != (nids,):
        raise ValueError(f"pheno has {values.size} values, expected {nids}")
    matrix = np.asarray(inv_s, dtype=float)
    if matrix.ndim == 1 and matrix.size == nids * nids:
        matrix = matrix.reshape(nids, nids)
    if matrix.shape != (nids, nids):
        raise ValueError(
            f"inv_s must be a {nids}x{nids} matrix, got shape {matrix.shape}"
        )
    labels, nstra = _labels(strata, nids)
    return values, matrix, labels, nstra, unpack_rows(data, nids, nsnps)


def _centred(
    values: np.ndarray, measured: np.ndarray, labels: np.ndarray, nstra: int
) -> np.ndarray:
    """Values minus their stratum mean over measured individuals; 0 elsewhere."""
    groups = labels[measured]
    totals = np.bincount(groups, minlength=nstra).astype(float)
    sums = np.bincount(groups, weights=values[measured], minlength=nstra)
    with np.errstate(divide="ignore", invalid="ignore"):
        means = sums / totals
        return np.where(measured, values - means[labels], 0.0)


def _snps(
    rows: list[list[int]], labels: np.ndarray, nstra: int
) -> Iterator[tuple[np.ndarray, np.ndarray, np.ndarray]]:
    """Yield the measured mask, dosages and stratum-centred dosages per SNP."""
    for row in rows:
        codes = np.asarray(row, dtype=int)
        measured = codes != 0
        dosage = codes - 1.0
        yield measured, dosage, _centred(dosage, measured, labels, nstra)


def _row(measured_count: float, u: float, v: float, effect_den: float) -> tuple:
    if measured_count == 0:
        return _EMPTY_ROW
    if v < _EPSILON:
        chi, effect = 0.0, 0.0
    else:
        chi = u * u / v
        with np.errstate(divide="ignore", invalid="ignore"):
            effect = float(np.float64(u) / np.float64(effect_den))
    return (chi, 0.0, 0.0, effect, 0.0, 0.0, measured_count)


def _scan(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
    score: Callable[..., tuple[float, float, float]],
) -> np.ndarray:
    values, matrix, labels, nstra, rows = _prepare(
        data, pheno, inv_s, nids, nsnps, strata
    )
    out = np.zeros((nsnps, 7))
    for snp, (measured, dosage, gtctr) in enumerate(_snps(rows, labels, nstra)):
        u, v, den = score(values, matrix, labels, nstra, measured, dosage, gtctr)
        out[snp] = _row(float(measured.sum()), u, v, den)
    return out


def mmscore(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Score test with centred genotypes and the raw trait; effect is u over allele count."""

    def score(values, matrix, labels, nstra, measured, dosage, gtctr):
        svec = matrix @ gtctr
        u = float(svec[measured] @ values[measured])
        v = float(svec[measured] @ gtctr[measured])
        return u, v, float(dosage[measured].sum())

    return _scan(data, pheno, inv_s, nids, nsnps, strata, score)


def mmscore_centered(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Score test with both genotype and trait centred within strata; effect is u/v."""

    def score(values, matrix, labels, nstra, measured, dosage, gtctr):
        phctr = _centred(values, measured, labels, nstra)
        svec = matrix @ gtctr
        u = float(svec[measured] @ phctr[measured])
        v = float(svec[measured] @ gtctr[measured])
        return u, v, v

    return _scan(data, pheno, inv_s, nids, nsnps, strata, score)


def mmscore_symmetric(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """As :func:`mmscore_centered`, reading only the upper triangle of ``inv_s``.

    The lower triangle is taken to mirror the upper one.
    """

    def score(values, matrix, labels, nstra, measured, dosage, gtctr):
        phctr = _centred(values, measured, labels, nstra)
        svec = np.triu(matrix) @ gtctr + np.triu(matrix, 1).T @ gtctr
        u = float(svec[measured] @ phctr[measured])
        v = float(svec[measured] @ gtctr[measured])
        return u, v, v

    return _scan(data, pheno, inv_s, nids, nsnps, strata, score)


def grammar(
    data: bytes,
    pheno: Sequence[float],
    inv_s: Sequence,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Score test of centred genotypes against ``pheno`` transformed by ``inv_s``."""
    cache: dict[str, np.ndarray] = {}

    def score(values, matrix, labels, nstra, measured, dosage, gtctr):
        if "svec" not in cache:
            cache["svec"] = values @ matrix
        svec = cache["svec"]
        u = float(svec[measured] @ gtctr[measured])
        v = float(gtctr[measured] @ gtctr[measured])
        return u, v, float(dosage[measured].sum())

    return _scan(data, pheno, inv_s, nids, nsnps, strata, score)