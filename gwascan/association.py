"""Single-SNP association tests on packed genotype data.

Every test returns one row of statistics per SNP, as a NumPy array of
shape ``(nsnps, ncolumns)``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from gwascan.genotypes import unpack_rows

_NO_DATA = -999.99
_EPSILON = 1.0e-16
_NO_ODDS = 10000.0


def _div(numerator: float, denominator: float) -> float:
    """Floating-point division that yields inf or NaN instead of raising."""
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator) or math.isnan(denominator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _check_length(name: str, values: Sequence, nids: int) -> None:
    if len(values) != nids:
        raise ValueError(f"{name} has {len(values)} values, expected {nids}")


def _strata(strata: Sequence[int] | None, nids: int) -> tuple[list[int], int]:
    if strata is None:
        return [0] * nids, 1
    labels = [int(label) for label in strata]
    _check_length("strata", labels, nids)
    if any(label < 0 for label in labels):
        raise ValueError("stratum labels must be non-negative")
    return labels, (max(labels) + 1 if labels else 1)


def fastcc(
    data: bytes, case_control: Sequence[int], nids: int, nsnps: int
) -> np.ndarray:
    """Allelic and genotypic chi-square tests for a case-control trait.

    Columns: allelic chi2, genotypic chi2, genotypic degrees of freedom,
    allelic odds ratio, heterozygote odds ratio, homozygote odds ratio,
    number of measured individuals.  Odds ratios that cannot be computed
    are reported as 10000.
    """
    _check_length("case_control", case_control, nids)
    out = np.zeros((nsnps, 7))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        cases = [0, 0, 0]
        controls = [0, 0, 0]
        for code, status in zip(row, case_control):
            if code:
                (cases if status else controls)[code - 1] += 1
        total = sum(cases) + sum(controls)
        if total == 0:
            out[snp] = [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, 0.0]
            continue

        rows_total = [sum(cases), sum(controls)]
        cols_total = [cases[k] + controls[k] for k in range(3)]
        genotypic = 0.0
        for observed, row_total in ((cases, rows_total[0]), (controls, rows_total[1])):
            for count, col_total in zip(observed, cols_total):
                expected = row_total * col_total / total
                if expected > 0:
                    genotypic += (count - expected) ** 2 / expected
        df = 1.0 if min(cols_total) < 1 else 2.0
        or_het = (
            cases[1] * controls[0] / (cases[0] * controls[1])
            if cases[0] > 0 and controls[1] > 0
            else _NO_ODDS
        )
        or_hom = (
            cases[2] * controls[0] / (cases[0] * controls[2])
            if cases[0] > 0 and controls[2] > 0
            else _NO_ODDS
        )

        allele_total = 2 * total
        allele_rows = [2 * rows_total[0], 2 * rows_total[1]]
        allele_cols = [
            2 * cols_total[0] + cols_total[1],
            cols_total[1] + 2 * cols_total[2],
        ]
        allele_cases = [2 * cases[0] + cases[1], cases[1] + 2 * cases[2]]
        allele_controls = [
            2 * controls[0] + controls[1],
            controls[1] + 2 * controls[2],
        ]
        allelic = 0.0
        for observed, row_total in (
            (allele_cases, allele_rows[0]),
            (allele_controls, allele_rows[1]),
        ):
            for count, col_total in zip(observed, allele_cols):
                expected = row_total * col_total / allele_total
                if expected > 0:
                    allelic += (count - expected) ** 2 / expected
        or_allelic = (
            allele_cases[1] * allele_controls[0]
            / (allele_cases[0] * allele_controls[1])
            if allele_cases[0] > 0 and allele_controls[1] > 0
            else _NO_ODDS
        )
        out[snp] = [
            allelic,
            genotypic,
            df,
            or_allelic,
            or_het,
            or_hom,
            float(rows_total[0] + rows_total[1]),
        ]
    return out


def fastcc_new(
    data: bytes, case_control: Sequence[int], nids: int, nsnps: int
) -> np.ndarray:
    """Trend tests for a case-control trait under three genetic models.

    Columns: additive, dominant and recessive chi2, then the matching
    odds-ratio estimates.  A SNP without both cases and controls among the
    measured individuals gets -1 in every column.
    """
    _check_length("case_control", case_control, nids)
    status_codes = [int(status) for status in case_control]
    if any(status not in (0, 1) for status in status_codes):
        raise ValueError("case_control values must be 0 or 1")
    out = np.full((nsnps, 6), -1.0)
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        count = [[0] * 4, [0] * 4]
        for code, status in zip(row, status_codes):
            count[status][code] += 1
        n_all = sum(count[0][1:]) + sum(count[1][1:])
        r1, r2 = count[1][2], count[1][3]
        n1, n2 = r1 + count[0][2], r2 + count[0][3]
        r_all = r1 + r2 + count[1][1]
        if not (n_all > 0 and 0 < r_all < n_all):
            continue
        mul = n_all / (r_all * (n_all - r_all))

        def chi(a: float, c: float, den: float) -> float:
            b = n_all * c - r_all * a
            return mul * b * b / den if den != 0 else -1.0

        a = n1 + 2.0 * n2
        c = r1 + 2.0 * r2
        additive = chi(a, c, n_all * (n1 + 4.0 * n2) - a * a)
        or_additive = _div(
            count[0][1] * c, (r_all - c) * (count[0][2] + 2.0 * count[0][3])
        )
        a = float(n1 + n2)
        c = float(r1 + r2)
        dominant = chi(a, c, n_all * a - a * a)
        or_dominant = _div(count[0][1] * c, (r_all - c) * (count[0][2] + count[0][3]))
        a = float(n2)
        c = float(r2)
        recessive = chi(a, c, n_all * a - a * a)
        or_recessive = _div(
            (count[0][1] + count[0][2]) * c, (r_all - c) * count[0][3]
        )
        out[snp] = [
            additive,
            dominant,
            recessive,
            or_additive,
            or_dominant,
            or_recessive,
        ]
    return out


def qtscore(
    data: bytes,
    pheno: Sequence[float],
    binary: int,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Stratified score test of a trait against genotype.

    Columns: 1-df chi2, 2-df chi2, degrees of freedom, additive effect,
    heterozygote effect, homozygote effect, number measured.  With
    ``binary`` true the trait variance is taken as ``m * (1 - m)``.
    """
    _check_length("pheno", pheno, nids)
    labels, nstra = _strata(strata, nids)
    out = np.zeros((nsnps, 7))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        totg = [0.0] * nstra
        x2 = [0.0] * nstra
        sumx = [0.0] * nstra
        sg1 = [0.0] * nstra
        sg2 = [0.0] * nstra
        xg1 = [0.0] * nstra
        xg2 = [0.0] * nstra
        for code, y, s in zip(row, pheno, labels):
            if not code:
                continue
            totg[s] += 1.0
            if code == 2:
                sg1[s] += 1.0
                xg1[s] += y
            elif code == 3:
                sg2[s] += 1.0
                xg2[s] += y
            x2[s] += y * y
            sumx[s] += y
        t_totg = sum(totg)
        t_sg1 = sum(sg1)
        t_sg2 = sum(sg2)
        if t_totg == 0:
            out[snp] = [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, t_totg]
            continue

        u1 = u2 = v11 = v12 = v22 = 0.0
        for s in range(nstra):
            if totg[s] <= 0:
                continue
            mx = sumx[s] / totg[s]
            bb = mx * (1.0 - mx) if binary else x2[s] / totg[s] - mx * mx
            u1 += xg1[s] - sg1[s] * mx
            u2 += xg2[s] - sg2[s] * mx
            v11 += bb * (sg1[s] - sg1[s] * sg1[s] / totg[s])
            v12 += bb * (0.0 - sg1[s] * sg2[s] / totg[s])
            v22 += bb * (sg2[s] - sg2[s] * sg2[s] / totg[s])
        u = u1 + 2.0 * u2
        v = v11 + 4.0 * v12 + 4.0 * v22
        if v < _EPSILON:
            chi1 = effect = 0.0
        else:
            chi1 = u * u / v
            effect = _div(u, t_sg1 + 2.0 * t_sg2)
        det = v11 * v22 - v12 * v12
        if det < _EPSILON:
            chi2df, df = chi1, 1.0
            effect_het, effect_hom = effect, 2.0 * effect
        else:
            chi2df = (u1 * u1 * v22 + u2 * u2 * v11 - 2.0 * u1 * u2 * v12) / det
            effect_het = _div(u1, t_sg1)
            effect_hom = _div(u2, t_sg2)
            df = 2.0 if t_sg1 > 0 and t_sg2 > 0 else 1.0
        out[snp] = [chi1, chi2df, df, effect, effect_het, effect_hom, t_totg]
    return out


def egscore(
    data: bytes,
    pheno: Sequence[float],
    axes: Sequence[Sequence[float]],
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Score test after adjusting genotypes for principal axes of variation.

    ``axes`` holds one sequence of ``nids`` values per axis.  Columns are
    laid out as in :func:`qtscore`.
    """
    _check_length("pheno", pheno, nids)
    axes = [list(axis) for axis in axes]
    for axis in axes:
        _check_length("axis", axis, nids)
    naxes = len(axes)
    labels, nstra = _strata(strata, nids)
    out = np.zeros((nsnps, 7))
    for snp, row in enumerate(unpack_rows(data, nids, nsnps)):
        gt = [code - 1.0 for code in row]
        saxg = [[0.0] * naxes for _ in range(nstra)]
        sa2 = [[0.0] * naxes for _ in range(nstra)]
        for j, axis in enumerate(axes):
            for code, value, g, s in zip(row, axis, gt, labels):
                if code:
                    saxg[s][j] += (g - 1.0) * value
                    sa2[s][j] += value * value
        gamma = [
            [_div(saxg[s][j], sa2[s][j]) for j in range(naxes)] for s in range(nstra)
        ]
        for i, s in enumerate(labels):
            for j, axis in enumerate(axes):
                gt[i] -= gamma[s][j] * axis[i]

        totg = [0.0] * nstra
        x2 = [0.0] * nstra
        sumx = [0.0] * nstra
        sg1 = [0.0] * nstra
        sg2 = [0.0] * nstra
        xg1 = [0.0] * nstra
        xg2 = [0.0] * nstra
        # The accumulation pass runs once per stratum.
        for _ in range(nstra):
            for code, g, y, s in zip(row, gt, pheno, labels):
                if code:
                    totg[s] += 1.0
                    sg1[s] += g
                    sg2[s] += g * g
                    sumx[s] += y
                    x2[s] += y * y
                    xg1[s] += g * y
        t_totg = sum(totg)
        t_sg1 = sum(sg1)
        t_sg2 = sum(sg2)
        if t_totg == 0:
            out[snp] = [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, t_totg]
            continue

        u = v = u1 = u2 = v11 = v12 = v22 = 0.0
        for s in range(nstra):
            if totg[s] <= 0:
                continue
            mx = sumx[s] / totg[s]
            bb = x2[s] / totg[s] - mx * mx
            u1 += xg1[s] - sg1[s] * mx
            u2 += xg2[s] - sg2[s] * mx
            v11 += bb * (sg1[s] - sg1[s] * sg1[s] / totg[s])
            v12 += bb * (0.0 - sg1[s] * sg2[s] / totg[s])
            v22 += bb * (sg2[s] - sg2[s] * sg2[s] / totg[s])
        for s in range(nstra):
            if totg[s] <= 0:
                continue
            mx = sumx[s] / totg[s]
            bb = x2[s] / totg[s] - mx * mx
            u += xg1[s] - sg1[s] * mx
            v += bb * (sg2[s] - sg1[s] * sg1[s] / totg[s])
        if v < _EPSILON:
            chi1 = effect = 0.0
        else:
            chi1 = (u * u / v) * _div(float(nids), nids - naxes - 1.0)
            effect = _div(u, t_sg1 + 2.0 * t_sg2)
        det = v11 * v22 - v12 * v12
        if det < _EPSILON:
            chi2df, df = chi1, 1.0
            effect_het, effect_hom = effect, 2.0 * effect
        else:
            chi2df = (u1 * u1 * v22 + u2 * u2 * v11 - 2.0 * u1 * u2 * v12) / det
            effect_het = _div(u1, t_sg1)
            effect_hom = _div(u2, t_sg2)
            df = 2.0 if t_sg1 > 0 and t_sg2 > 0 else 1.0
        out[snp] = [chi1, chi2df, df, effect, effect_het, effect_hom, t_totg]
    return out


def _glob_row(
    codes: Sequence[float],
    pheno: Sequence[float],
    binary: int,
    labels: list[int],
    nstra: int,
) -> list[float]:
    totg = [0.0] * nstra
    x2 = [0.0] * nstra
    sumx = [0.0] * nstra
    sg = [[0.0] * nstra for _ in range(3)]
    xg = [[0.0] * nstra for _ in range(3)]
    for code, y, s in zip(codes, pheno, labels):
        if code == 0 or (isinstance(code, float) and math.isnan(code)):
            continue
        dgt = int(code - 1)
        totg[s] += 1.0
        if 0 <= dgt <= 2:
            sg[dgt][s] += 1.0
            xg[dgt][s] += y
        x2[s] += y * y
        sumx[s] += y
    t_totg = sum(totg)
    t_sg0, t_sg1, t_sg2 = (sum(group) for group in sg)
    if t_totg == 0:
        row = [_NO_DATA] * 10
        row[6] = t_totg
        return row

    mx = _NO_DATA
    u0 = u1 = u2 = m0 = m1 = m2 = 0.0
    v00 = v02 = v11 = v12 = v22 = 0.0
    for s in range(nstra):
        if totg[s] <= 0:
            continue
        mx = sumx[s] / totg[s]
        bb = x2[s] / totg[s] - mx * mx
        s0, s1, s2 = sg[0][s], sg[1][s], sg[2][s]
        u0 += xg[0][s] - s0 * mx
        m0 += xg[0][s]
        u1 += xg[1][s] - s1 * mx
        m1 += xg[1][s]
        u2 += xg[2][s] - s2 * mx
        m2 += xg[2][s]
        v00 += bb * (s0 - s0 * s0 / totg[s])
        v11 += bb * (s1 - s1 * s1 / totg[s])
        v12 += bb * (0.0 - s1 * s2 / totg[s])
        v02 += bb * (0.0 - s0 * s2 / totg[s])
        v22 += bb * (s2 - s2 * s2 / totg[s])
    m0 = m0 / t_sg0 if t_sg0 > 0 else _EPSILON
    m1 = m1 / t_sg1 if t_sg1 > 0 else _EPSILON
    m2 = m2 / t_sg2 if t_sg2 > 0 else _EPSILON

    row = [_NO_DATA] * 10
    row[6] = t_totg
    row[2] = _EPSILON
    u = u1 + 2.0 * u2
    v = v11 + 4.0 * v12 + 4.0 * v22
    if v >= _EPSILON:
        row[0] = u * u / v
        mean_g = (t_sg1 + 2.0 * t_sg2) / t_totg
        var_g = t_sg1 + 4.0 * t_sg2 - t_totg * mean_g * mean_g
        if binary:
            p1 = mx + _div(u, var_g)
            row[3] = _div((1.0 - mx) * p1, (1.0 - p1) * mx)
        else:
            row[3] = _div(u, var_g)
    if v00 > 0.0:
        row[7] = u0 / math.sqrt(v00)
        row[1] = u0 * u0 / v00
    if v22 > 0.0:
        row[8] = u2 / math.sqrt(v22)
        row[1] += u2 * u2 / v22
    if v00 * v22 > 0.0:
        row[9] = v02 / math.sqrt(v00 * v22)
        row[1] += -2.0 * u0 * u2 * v02 / (v00 * v22)
        row[1] = _div(row[1], 1.0 - v02 * v02 / (v00 * v22))
    if t_sg1 > 0:
        row[4] = _div((1.0 - m0) * m1, (1.0 - m1) * m0) if binary else m1 - m0
    if t_sg2 > 0:
        row[5] = _div((1.0 - m0) * m2, (1.0 - m2) * m0) if binary else m2 - m0
    if t_sg1 > 0 and t_sg2 > 0:
        row[2] = 2.0
    elif t_sg1 > 0 or t_sg2 > 0:
        row[2] = 1.0
    return row


def qtscore_glob(
    data: bytes,
    pheno: Sequence[float],
    binary: int,
    nids: int,
    nsnps: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """Score test with genotypic-model statistics relative to the first homozygote.

    Columns: 1-df chi2, genotypic chi2, degrees of freedom, additive effect,
    heterozygote effect, homozygote effect, number measured, z of the first
    homozygote, z of the second homozygote, and their correlation.  Values
    that cannot be computed are -999.99.
    """
    _check_length("pheno", pheno, nids)
    labels, nstra = _strata(strata, nids)
    rows = unpack_rows(data, nids, nsnps)
    out = np.zeros((nsnps, 10))
    for snp, row in enumerate(rows):
        out[snp] = _glob_row(row, pheno, binary, labels, nstra)
    return out


def qtscore_single(
    genotypes: Sequence[float],
    pheno: Sequence[float],
    binary: int,
    strata: Sequence[int] | None,
) -> np.ndarray:
    """The statistics of :func:`qtscore_glob` for one SNP given as codes 0-3."""
    nids = len(genotypes)
    _check_length("pheno", pheno, nids)
    labels, nstra = _strata(strata, nids)
    return np.array(_glob_row(list(genotypes), pheno, binary, labels, nstra))