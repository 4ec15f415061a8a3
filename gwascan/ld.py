"""Pairwise linkage disequilibrium between SNPs of packed genotype data.

Two-locus haplotype frequencies are estimated by expectation-maximisation
when double heterozygotes leave the phase unknown.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence

import numpy as np

from gwascan.genotypes import packed_size, unpack_genotypes, unpack_rows

_MAX_ITERATIONS = 1000
_TOLERANCE = 1e-8
_FUDGE = 0.1

Counts = tuple[int, int, int, int, int]


def _div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator) or math.isnan(denominator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _slog(value: float) -> float:
    return math.log(value + 1.0e-32)


def _haplotype_probs(
    n_aa: int, n_ab: int, n_ba: int, n_bb: int, n_dh: int
) -> tuple[float, tuple[float, float, float, float]] | None:
    if min(n_aa, n_ab, n_ba, n_bb, n_dh) < 0:
        raise ValueError("haplotype counts must be non-negative")
    n_chrom = float(n_aa + n_ab + n_ba + n_bb + 2 * n_dh)
    mono1 = n_aa + n_ab == 0 or n_ba + n_bb == 0
    mono2 = n_aa + n_ba == 0 or n_ab + n_bb == 0
    if (mono1 or mono2) and n_dh == 0:
        return None
    if n_dh == 0:
        return n_chrom, (n_aa / n_chrom, n_ab / n_chrom, n_ba / n_chrom, n_bb / n_chrom)

    divisor = 4.0 * _FUDGE + n_chrom
    p_aa = (n_aa + _FUDGE) / divisor
    p_ab = (n_ab + _FUDGE) / divisor
    p_ba = (n_ba + _FUDGE) / divisor
    p_bb = (n_bb + _FUDGE) / divisor
    old_loglik = -1e10
    for iteration in range(_MAX_ITERATIONS):
        aa_bb = p_aa * p_bb
        ab_ba = p_ab * p_ba
        dh_aa_bb = _div(aa_bb, aa_bb + ab_ba) * n_dh
        dh_ab_ba = n_dh - dh_aa_bb
        p_aa = (n_aa + dh_aa_bb) / n_chrom
        p_ab = (n_ab + dh_ab_ba) / n_chrom
        p_ba = (n_ba + dh_ab_ba) / n_chrom
        p_bb = (n_bb + dh_aa_bb) / n_chrom
        loglik = (
            n_aa * _slog(p_aa)
            + n_ab * _slog(p_ab)
            + n_ba * _slog(p_ba)
            + n_bb * _slog(p_bb)
            + n_dh * _slog(p_aa * p_bb + p_ab * p_ba)
        )
        if iteration > 0 and loglik - old_loglik < _TOLERANCE:
            break
        old_loglik = loglik
    return n_chrom, (p_aa, p_ab, p_ba, p_bb)


def calculate_r2(n_aa: int, n_ab: int, n_ba: int, n_bb: int, n_dh: int) -> float:
    """Squared correlation r2 between two loci from haplotype counts.

    ``n_dh`` counts the haplotypes of double heterozygotes of unknown phase.
    Monomorphic loci without double heterozygotes give 0.
    """
    estimate = _haplotype_probs(n_aa, n_ab, n_ba, n_bb, n_dh)
    if estimate is None:
        return 0.0
    _, (p_aa, p_ab, p_ba, p_bb) = estimate
    p_ax = p_aa + p_ab
    p_xa = p_aa + p_ba
    p_bx = p_ba + p_bb
    p_xb = p_ab + p_bb
    d = p_aa - p_ax * p_xa
    return _div(d * d, p_ax * p_xa * p_bx * p_xb)


def estimate_haplotype_counts(
    n_aa: int, n_ab: int, n_ba: int, n_bb: int, n_dh: int
) -> tuple[float, float, float, float]:
    """Expected counts of the four haplotypes AA, AB, BA, BB.

    Monomorphic loci without double heterozygotes give ``(1, 1, 0, 0)``.
    """
    estimate = _haplotype_probs(n_aa, n_ab, n_ba, n_bb, n_dh)
    if estimate is None:
        return (1.0, 1.0, 0.0, 0.0)
    n_chrom, probs = estimate
    return tuple(p * n_chrom for p in probs)  # type: ignore[return-value]


def _pair_counts(first: Sequence[int], second: Sequence[int]) -> Counts:
    table = [[0] * 4 for _ in range(4)]
    for a, b in zip(first, second):
        table[a][b] += 1
    n_aa = 2 * table[1][1] + table[1][2] + table[2][1]
    n_ab = table[1][2] + 2 * table[1][3] + table[2][3]
    n_ba = table[2][1] + 2 * table[3][1] + table[3][2]
    n_bb = table[2][3] + table[3][2] + 2 * table[3][3]
    n_dh = 2 * table[2][2]
    return n_aa, n_ab, n_ba, n_bb, n_dh


def _pairs(rows: list[list[int]]) -> Iterator[tuple[int, int, Counts]]:
    for m0, first in enumerate(rows):
        for m1 in range(m0 + 1, len(rows)):
            yield m0, m1, _pair_counts(first, rows[m1])


def r2(data: bytes, nids: int, nsnps: int) -> np.ndarray:
    """r2 for every pair of SNPs, shape ``(nsnps, nsnps)``.

    Above the diagonal: r2.  Below it: the number of individuals measured
    at both SNPs.
    """
    out = np.zeros((nsnps, nsnps))
    for m0, m1, counts in _pairs(unpack_rows(data, nids, nsnps)):
        measured = sum(counts) // 2
        out[m1, m0] = measured
        out[m0, m1] = calculate_r2(*counts) if measured else 0.0
    return out


def r2_pairs(
    data: bytes, nids: int, snps1: Sequence[int], snps2: Sequence[int]
) -> tuple[np.ndarray, np.ndarray]:
    """r2 between each SNP of ``snps1`` and each of ``snps2`` (0-based).

    Returns ``(counts, values)``, both of shape ``(len(snps1), len(snps2))``,
    holding the individuals measured at both SNPs and r2.
    """
    nbytes = packed_size(nids)
    cache: dict[int, list[int]] = {}

    def row(snp: int) -> list[int]:
        snp = int(snp)
        if snp not in cache:
            if snp < 0 or (snp + 1) * nbytes > len(data):
                raise IndexError(f"SNP {snp} is outside the data")
            cache[snp] = unpack_genotypes(data[snp * nbytes:(snp + 1) * nbytes], nids)
        return cache[snp]

    first = [row(snp) for snp in snps1]
    second = [row(snp) for snp in snps2]
    counts = np.zeros((len(first), len(second)))
    values = np.zeros((len(first), len(second)))
    for i, row1 in enumerate(first):
        for j, row2 in enumerate(second):
            pair = _pair_counts(row1, row2)
            measured = sum(pair) // 2
            counts[i, j] = measured
            values[i, j] = calculate_r2(*pair) if measured else 0.0
    return counts, values


def _orient(
    e_aa: float, e_ab: float, e_ba: float, e_bb: float
) -> tuple[float, float, float, float]:
    for _ in range(2):
        if e_aa * e_bb - e_ab * e_ba < 0:
            e_aa, e_ba = e_ba, e_aa
            e_ab, e_bb = e_bb, e_ab
        if e_ab > e_ba:
            e_aa, e_ab = e_ab, e_aa
            e_ba, e_bb = e_bb, e_ba
    return e_aa, e_ab, e_ba, e_bb


def rho(data: bytes, nids: int, nsnps: int) -> np.ndarray:
    """The rho measure of LD for every pair of SNPs, shape ``(nsnps, nsnps)``.

    Above the diagonal: rho.  Below it: the chromosome count scaled by the
    ratio of the haplotype margins.
    """
    out = np.zeros((nsnps, nsnps))
    for m0, m1, counts in _pairs(unpack_rows(data, nids, nsnps)):
        nchr = float(sum(counts))
        if nchr <= 0:
            continue
        e_aa, e_ab, e_ba, e_bb = _orient(*estimate_haplotype_counts(*counts))
        out[m0, m1] = _div(e_aa * e_bb - e_ab * e_ba, (e_aa + e_ab) * (e_ab + e_bb))
        out[m1, m0] = _div(
            nchr * (e_aa + e_ab) * (e_ab + e_bb), (e_aa + e_ba) * (e_ba + e_bb)
        )
    return out


def allld(data: bytes, nids: int, nsnps: int) -> np.ndarray:
    """Same statistics as :func:`rho`."""
    return rho(data, nids, nsnps)


def dprime(data: bytes, nids: int, nsnps: int) -> np.ndarray:
    """D' (above the diagonal) and D (below it) for every pair of SNPs."""
    out = np.zeros((nsnps, nsnps))
    for m0, m1, counts in _pairs(unpack_rows(data, nids, nsnps)):
        nchr = float(sum(counts))
        if nchr <= 0:
            continue
        e_aa, e_ab, e_ba, e_bb = estimate_haplotype_counts(*counts)
        p_aa, p_ab, p_ba, p_bb = (e / nchr for e in (e_aa, e_ab, e_ba, e_bb))
        p_ax = p_aa + p_ab
        p_xa = p_aa + p_ba
        p_bx = p_ba + p_bb
        p_xb = p_ab + p_bb
        est_d = p_aa * p_bb - p_ab * p_ba
        d_min = min(p_ax * p_xb, p_bx * p_xa)
        d_max = max(-p_ax * p_xa, -p_bx * p_xb)
        out[m0, m1] = _div(est_d, d_max) if est_d < 0 else _div(est_d, d_min)
        out[m1, m0] = est_d
    return out