"""Genotype extraction and data preparation for per-SNP regression models."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence

import numpy as np

from gwascan.genotypes import packed_size, unpack_genotypes


class GeneticModel(enum.IntEnum):
    """How genotype dosages 0, 1, 2 are recoded before a regression."""

    ADDITIVE = 1
    DOMINANT = 2
    RECESSIVE = 3
    OVERDOMINANT = 4


_RECODING = {
    GeneticModel.ADDITIVE: {},
    GeneticModel.DOMINANT: {2: 1},
    GeneticModel.RECESSIVE: {1: 0, 2: 1},
    GeneticModel.OVERDOMINANT: {2: 0},
}


def snp_vector(data: bytes, nids: int, snp: int) -> list[int]:
    """Dosages of SNP ``snp`` (0-based): -1 for missing, otherwise 0, 1 or 2."""
    if snp < 0:
        raise IndexError(f"SNP index must be non-negative, got {snp}")
    nbytes = packed_size(nids)
    chunk = data[snp * nbytes:(snp + 1) * nbytes]
    return [code - 1 for code in unpack_genotypes(chunk, nids)]


def convert_genotypes(
    genotypes: Iterable[int], mode: GeneticModel | int
) -> list[int]:
    """Recode dosages under a genetic model; missing values (-1) are kept."""
    recoding = _RECODING[GeneticModel(mode)]
    return [recoding.get(value, value) for value in genotypes]


def _columns(values: Sequence, rows: int, name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.size == 0:
        array = np.zeros((rows, 0))
    elif array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2 or array.shape[0] != rows:
        raise ValueError(f"{name} must have {rows} rows, got shape {array.shape}")
    return array


class RegressionData:
    """Outcomes and design matrix restricted to individuals with a genotype.

    ``x`` holds the covariate columns followed by the genotype column;
    ``y`` holds one column per outcome.
    """

    def __init__(self, y: Sequence, x: Sequence, genotypes: Sequence[int]) -> None:
        codes = np.asarray(genotypes, dtype=int)
        rows = codes.size
        outcomes = _columns(y, rows, "y")
        covariates = _columns(x, rows, "x")
        keep = codes >= 0

        self.nids = int(keep.sum())
        self.ncov = covariates.shape[1]
        self.noutcomes = outcomes.shape[1]
        self.y = outcomes[keep]
        self.x = np.column_stack([covariates[keep], codes[keep].astype(float)])
        genotype = self.x[:, -1]
        self.is_monomorphic = bool(np.all(genotype == genotype[0])) if self.nids else True


class CoxPHData:
    """Survival data sorted by follow-up time, ready for a Cox model.

    The outcomes of the source data must be follow-up time and a 0/1 event
    status.  The first ``ncov`` columns of its design matrix are taken as
    covariates and stored transposed, one row per covariate.
    """

    def __init__(self, data: RegressionData) -> None:
        if data.noutcomes != 2:
            raise ValueError(
                f"number of outcomes should be 2 (now: {data.noutcomes})"
            )
        self.nids = data.nids
        self.ncov = data.ncov
        self.maxiter = 0

        times = data.y[:, 0].copy()
        raw_status = data.y[:, 1]
        if np.isnan(raw_status).any():
            raise ValueError("status not 0/1 (right order: id, fuptime, status ...)")
        status = raw_status.astype(int)
        if not np.isin(status, (0, 1)).all():
            raise ValueError("status not 0/1 (right order: id, fuptime, status ...)")
        if np.isnan(times).any():
            raise ValueError("can not recover element with undefined time")

        sorted_index = np.argsort(times, kind="stable")
        self.order = np.empty(self.nids, dtype=int)
        self.order[sorted_index] = np.arange(self.nids)

        self.stime = times[sorted_index]
        self.sstat = status[sorted_index]
        self.weights = np.ones(self.nids)
        self.offset = np.zeros(self.nids)
        self.strata = np.zeros(self.nids, dtype=int)
        self.x = data.x[:, : self.ncov][sorted_index].T