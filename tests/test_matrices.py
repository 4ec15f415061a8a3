import numpy as np
import pytest

from gwascan.genotypes import pack_genotypes
from gwascan.matrices import impute_snp_matrix, int_snp_matrix

SNP_ROWS = [
    [1, 2, 3, 0, 2],
    [3, 3, 0, 1, 1],
    [0, 1, 2, 2, 3],
]
NIDS = 5


def _packed():
    return b"".join(pack_genotypes(row) for row in SNP_ROWS)


def test_transposed_gives_one_row_per_snp():
    result = int_snp_matrix(_packed(), NIDS, len(SNP_ROWS), True)
    assert result[0] == [0, 1, 2, None, 1]
    assert len(result) == len(SNP_ROWS)


def test_plain_layout_is_transpose_of_snp_layout():
    by_snp = int_snp_matrix(_packed(), NIDS, len(SNP_ROWS), True)
    by_id = int_snp_matrix(_packed(), NIDS, len(SNP_ROWS), False)
    assert len(by_id) == NIDS
    for individual in range(NIDS):
        for snp in range(len(SNP_ROWS)):
            assert by_id[individual][snp] == by_snp[snp][individual]


def test_missing_genotypes_are_none():
    by_snp = int_snp_matrix(_packed(), NIDS, len(SNP_ROWS), True)
    for row, decoded in zip(SNP_ROWS, by_snp):
        for code, value in zip(row, decoded):
            assert (value is None) == (code == 0)


def test_short_data_is_rejected():
    with pytest.raises(ValueError):
        int_snp_matrix(_packed()[:-1], NIDS, len(SNP_ROWS), False)


def test_impute_matrix_shape_and_indicators():
    out = impute_snp_matrix(_packed(), NIDS, len(SNP_ROWS))
    assert out.shape == (len(SNP_ROWS), 3 * NIDS)
    blocks = out.reshape(len(SNP_ROWS), NIDS, 3)
    for snp, row in enumerate(SNP_ROWS):
        for individual, code in enumerate(row):
            block = blocks[snp, individual]
            if code == 0:
                assert block.sum() == 0.0
            else:
                assert block.sum() == 1.0
                assert int(np.argmax(block)) == code - 1


def test_impute_matches_dosage_matrix():
    dosages = int_snp_matrix(_packed(), NIDS, len(SNP_ROWS), True)
    blocks = impute_snp_matrix(_packed(), NIDS, len(SNP_ROWS)).reshape(
        len(SNP_ROWS), NIDS, 3
    )
    for snp in range(len(SNP_ROWS)):
        for individual in range(NIDS):
            value = dosages[snp][individual]
            expected = -1 if value is None else value
            observed = int(np.argmax(blocks[snp, individual])) if blocks[
                snp, individual
            ].any() else -1
            assert observed == expected