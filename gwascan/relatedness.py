"""Per-individual homozygosity and pairwise genomic similarity on packed data.

Genotype codes are 0 (missing), 1, 2 and 3; the data hold one packed row
of ``nids`` genotypes per SNP.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

import numpy as np

from gwascan.genotypes import unpack_rows

_EPSILON = 1.0e-16
_HOM_WEIGHT = (0.0, 1.0, 0.0, 1.0)
_IBS_TABLE = np.array(
    [
        [0.0, 0.0, 0.0, 0.0],
        [0.0, 1.0, 0.5, 0.0],
        [0.0, 0.5, 1.0, 0.5],
        [0.0, 0.0, 0.5, 1.0],
    ]
)


def _counts(row: Sequence[int]) -> list[int]:
    return [row.count(code) for code in range(4)]


def _check_option(option: int) -> int:
    option = int(option)
    if option < 0:
        raise ValueError(f"option must be non-negative, got {option}")
    return option


def _per_snp(values: Sequence[float] | None, nsnps: int, name: str) -> list[float]:
    if values is None:
        raise ValueError(f"{name} are required for this option")
    result = [float(value) for value in values]
    if len(result) != nsnps:
        raise ValueError(f"{name} has {len(result)} values, expected {nsnps}")
    return result


def _centred_table(p: float, den: float) -> np.ndarray:
    cent = np.array([0.0, -p, 0.5 - p, 1.0 - p])
    with np.errstate(invalid="ignore", over="ignore"):
        return np.outer(cent, cent) * den


def hom(
    data: bytes,
    nids: int,
    nsnps: int,
    freqs: Sequence[float] | None = None,
    nfreq: Sequence[float] | None = None,
    use_freq: bool = False,
) -> np.ndarray:
    """Homozygosity statistics per individual, shape ``(nids, 5)``.

    Columns: measured SNPs, measured polymorphic SNPs, observed homozygous
    genotypes, expected homozygosity, and the summed standardised squared
    genotype.  With ``use_freq`` the frequency of the allele counted by
    code 3 is taken from ``freqs`` and the sample size from ``nfreq``.
    """
    if use_freq:
        q_values = _per_snp(freqs, nsnps, "freqs")
        n_values = _per_snp(nfreq, nsnps, "nfreq")
    out = np.zeros((nids, 5))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        counts = _counts(row)
        measured = counts[1] + counts[2] + counts[3]
        if use_freq:
            q0 = q_values[snp]
            p0 = 1.0 - q0
        elif measured >= 1:
            p0 = (2.0 * counts[1] + counts[2]) / (2.0 * measured)
            q0 = 1.0 - p0
        else:
            p0, q0 = 0.0, 1.0
        maf = q0 if p0 > q0 else p0
        polymorphic = maf > _EPSILON
        den = 1.0 / (p0 * q0) if polymorphic else 0.0
        n = n_values[snp] if use_freq else float(measured)
        if n > 1:
            expected = 1.0 - 2.0 * p0 * q0 * n / (n - 1.0)
        else:
            expected = 1.0 - 2.0 * p0 * q0
        cent = (0.0, -q0, 0.5 - q0, 1.0 - q0)
        for individual, code in enumerate(row):
            if not code:
                continue
            out[individual, 0] += 1.0
            if polymorphic:
                out[individual, 1] += 1.0
            out[individual, 2] += _HOM_WEIGHT[code]
            out[individual, 3] += expected
            out[individual, 4] += cent[code] * cent[code] * den
    return out


def homold(data: bytes, nids: int, nsnps: int, option: int) -> np.ndarray:
    """Homozygosity per individual, shape ``(nids, 2 + option)``.

    With option 0 the columns are measured SNPs and homozygous genotypes
    over all SNPs.  With a positive option only polymorphic SNPs with more
    than one measured individual count, and the third column holds the
    expected homozygosity.
    """
    option = _check_option(option)
    out = np.zeros((nids, 2 + option))
    for row in unpack_rows(data, nids, nsnps):
        if option == 0:
            for individual, code in enumerate(row):
                if code:
                    out[individual, 0] += 1.0
                    out[individual, 1] += _HOM_WEIGHT[code]
            continue
        counts = _counts(row)
        measured = counts[1] + counts[2] + counts[3]
        if measured <= 1:
            continue
        p0 = (2.0 * counts[1] + counts[2]) / (2.0 * measured)
        q0 = 1.0 - p0
        maf = q0 if p0 > q0 else p0
        if maf < _EPSILON:
            continue
        expected = 1.0 - 2.0 * p0 * (1.0 - p0) * measured / (measured - 1.0)
        for individual, code in enumerate(row):
            if code:
                out[individual, 0] += 1.0
                out[individual, 1] += _HOM_WEIGHT[code]
                out[individual, 2] += expected
    return out


def _pairwise(
    rows: list[list[int]],
    nids: int,
    table_for: Callable[[int, list[int]], np.ndarray | None],
) -> np.ndarray:
    counts = np.zeros((nids, nids))
    sums = np.zeros((nids, nids))
    for snp, row in enumerate(rows):
        table = table_for(snp, row)
        if table is None:
            continue
        codes = np.asarray(row, dtype=int)
        both = np.outer(codes != 0, codes != 0)
        counts += both
        sums += np.where(both, table[np.ix_(codes, codes)], 0.0)

    out = np.zeros((nids, nids))
    upper = np.triu_indices(nids, 1)
    out[upper] = counts[upper]
    safe = np.where(counts > 0, counts, 1.0)
    ratio = np.where(counts > 0, sums / safe, -1.0)
    out[upper[1], upper[0]] = ratio[upper]
    return out


def ibs(data: bytes, nids: int, nsnps: int, option: int) -> np.ndarray:
    """Pairwise similarity matrix, shape ``(nids, nids)``.

    Above the diagonal: the number of SNPs informative for the pair.  Below
    it: the mean similarity over those SNPs, or -1 with none.  Option 0
    uses identity by state; a positive option uses genotypes standardised
    by the sample frequency of the allele counted by code 3, skipping
    monomorphic SNPs.
    """
    option = _check_option(option)
    rows = unpack_rows(data, nids, nsnps)

    def table_for(snp: int, row: list[int]) -> np.ndarray | None:
        if option == 0:
            return _IBS_TABLE
        counts = _counts(row)
        measured = counts[1] + counts[2] + counts[3]
        if measured == 0:
            return None
        p = (2.0 * counts[3] + counts[2]) / (2.0 * measured)
        q = 1.0 - p
        limit = 1.0 - _EPSILON
        if p * 2 * measured < limit or q * 2 * measured < limit:
            return None
        return _centred_table(p, 1.0 / (p * q))

    return _pairwise(rows, nids, table_for)


def ibsnew(
    data: bytes,
    nids: int,
    nsnps: int,
    freqs: Sequence[float] | None,
    option: int,
) -> np.ndarray:
    """As :func:`ibs`, with allele frequencies supplied in ``freqs``.

    Option 1 scales by the binomial variance of the frequency, option 3 by
    the empirical genotype variance; any other option uses identity by
    state.  SNPs whose frequency is within 1e-16 of 0 or 1 are skipped.
    """
    option = _check_option(option)
    weighted = option in (1, 3)
    if weighted:
        freq_values = _per_snp(freqs, nsnps, "freqs")
    rows = unpack_rows(data, nids, nsnps)

    def table_for(snp: int, row: list[int]) -> np.ndarray | None:
        if not weighted:
            return _IBS_TABLE
        p = freq_values[snp]
        q = 1.0 - p
        if p < _EPSILON or q < _EPSILON:
            return None
        if option == 1:
            return _centred_table(p, 1.0 / (p * q))
        cent = (0.0, -p, 0.5 - p, 1.0 - p)
        values = [cent[code] for code in row if code]
        if not values:
            return None
        mean = sum(values) / len(values)
        variance = sum(value * value for value in values) / len(values) - mean * mean
        den = 1.0 / (2.0 * variance) if variance != 0 else math.inf
        return _centred_table(p, den)

    return _pairwise(rows, nids, table_for)


def ibspar(
    data: bytes,
    nids: int,
    nsnps: int,
    ids1: Sequence[int],
    ids2: Sequence[int],
    freqs: Sequence[float] | None,
    option: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Similarity between two groups of individuals given by 0-based index.

    Returns ``(similarity, counts)``, both of shape ``(len(ids1), len(ids2))``.
    Pairs without an informative SNP get similarity -1.  Option 0 uses
    identity by state, a positive option standardises genotypes with the
    frequencies in ``freqs``.
    """
    option = _check_option(option)
    first = [int(index) for index in ids1]
    second = [int(index) for index in ids2]
    for index in first + second:
        if not 0 <= index < nids:
            raise IndexError(f"individual {index} is outside 0..{nids - 1}")
    if option > 0:
        freq_values = _per_snp(freqs, nsnps, "freqs")
    idx1 = np.asarray(first, dtype=int)
    idx2 = np.asarray(second, dtype=int)
    sums = np.zeros((len(first), len(second)))
    counts = np.zeros((len(first), len(second)))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        if option == 0:
            table = _IBS_TABLE
        else:
            p = freq_values[snp]
            q = 1.0 - p
            if p < _EPSILON or q < _EPSILON:
                continue
            table = _centred_table(p, 1.0 / (p * q))
        codes = np.asarray(row, dtype=int)
        a = codes[idx1]
        b = codes[idx2]
        both = np.outer(a != 0, b != 0)
        counts += both
        sums += np.where(both, table[np.ix_(a, b)], 0.0)
    safe = np.where(counts > 0, counts, 1.0)
    similarity = np.where(counts > 0, sums / safe, -1.0)
    return similarity, counts