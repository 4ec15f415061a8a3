import math

import numpy as np
import pytest

from gwascan.association import (
    egscore,
    fastcc,
    fastcc_new,
    qtscore,
    qtscore_glob,
    qtscore_single,
)
from gwascan.genotypes import pack_genotypes


def packed(*rows):
    return b"".join(pack_genotypes(row) for row in rows)


CODES = [1, 1, 2, 2, 3, 3, 1, 3]
PHENO = [0.5, 1.2, 2.0, 1.7, 3.1, 2.9, 0.9, 3.3]


def test_fastcc_no_association():
    data = packed([1, 2, 3, 1, 2, 3])
    result = fastcc(data, [1, 1, 1, 0, 0, 0], 6, 1)[0]
    assert result[0] == pytest.approx(0.0)
    assert result[1] == pytest.approx(0.0)
    assert result[2] == 2.0
    assert result[4] == pytest.approx(1.0)
    assert result[6] == 6.0


def test_fastcc_perfect_separation():
    data = packed([3, 3, 1, 1])
    result = fastcc(data, [1, 1, 0, 0], 4, 1)[0]
    assert result[0] == pytest.approx(8.0)
    assert result[2] == 1.0
    assert result[3] == 10000.0
    assert result[4] == 10000.0


def test_fastcc_all_missing():
    data = packed([0, 0, 0, 0])
    result = fastcc(data, [1, 0, 1, 0], 4, 1)[0]
    assert list(result[:6]) == [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0]


def test_fastcc_label_swap_symmetry():
    data = packed([1, 2, 3, 3, 1, 1, 2, 3], [2, 2, 1, 3, 3, 1, 1, 0])
    cc = [1, 0, 1, 1, 0, 0, 1, 0]
    flipped = [1 - c for c in cc]
    a = fastcc(data, cc, 8, 2)
    b = fastcc(data, flipped, 8, 2)
    assert a.shape == (2, 7)
    np.testing.assert_allclose(a[:, :3], b[:, :3])


def test_fastcc_length_mismatch():
    with pytest.raises(ValueError):
        fastcc(packed([1, 2]), [1], 2, 1)


def test_fastcc_new_no_association():
    data = packed([1, 2, 3, 1, 2, 3])
    result = fastcc_new(data, [1, 1, 1, 0, 0, 0], 6, 1)[0]
    np.testing.assert_allclose(result[:3], [0.0, 0.0, 0.0], atol=1e-12)


def test_fastcc_new_only_cases():
    data = packed([1, 2, 3])
    result = fastcc_new(data, [1, 1, 1], 3, 1)[0]
    assert list(result) == [-1.0] * 6


def test_fastcc_new_rejects_bad_status():
    with pytest.raises(ValueError):
        fastcc_new(packed([1, 2]), [0, 2], 2, 1)


def test_qtscore_no_association():
    data = packed([1, 2, 3, 1, 2, 3])
    result = qtscore(data, [1, 2, 3, 3, 2, 1], 0, 6, 1, None)[0]
    assert result[0] == pytest.approx(0.0, abs=1e-12)
    assert result[6] == 6.0


def test_qtscore_affine_invariance_and_sign():
    data = packed(CODES)
    a = qtscore(data, PHENO, 0, 8, 1, None)[0]
    b = qtscore(data, [2 * y + 5 for y in PHENO], 0, 8, 1, None)[0]
    assert a[0] > 0
    assert a[3] > 0
    assert a[0] == pytest.approx(b[0])
    assert a[1] == pytest.approx(b[1])


def test_qtscore_binary_matches_quantitative_for_zero_one_trait():
    data = packed(CODES)
    trait = [0, 0, 1, 0, 1, 1, 0, 1]
    quantitative = qtscore(data, trait, 0, 8, 1, None)
    binary = qtscore(data, trait, 1, 8, 1, None)
    np.testing.assert_allclose(quantitative, binary)


def test_qtscore_single_stratum_equals_none():
    data = packed(CODES)
    np.testing.assert_allclose(
        qtscore(data, PHENO, 0, 8, 1, [0] * 8),
        qtscore(data, PHENO, 0, 8, 1, None),
    )


def test_qtscore_all_missing():
    result = qtscore(packed([0, 0, 0]), [1.0, 2.0, 3.0], 0, 3, 1, None)[0]
    assert list(result) == [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, 0.0]


def test_qtscore_errors():
    data = packed(CODES)
    with pytest.raises(ValueError):
        qtscore(data, PHENO[:3], 0, 8, 1, None)
    with pytest.raises(ValueError):
        qtscore(data, PHENO, 0, 8, 1, [0, 0, 0, 0, -1, 0, 0, 0])


def test_egscore_affine_invariance():
    data = packed(CODES)
    axes = [[0.1, -0.3, 0.2, 0.5, -0.1, 0.4, -0.2, 0.0]]
    a = egscore(data, PHENO, axes, 8, 1, None)[0]
    b = egscore(data, [3 * y - 1 for y in PHENO], axes, 8, 1, None)[0]
    assert a[0] >= 0
    assert math.isfinite(a[0])
    assert a[0] == pytest.approx(b[0])
    assert a[6] == 8.0


def test_egscore_all_missing_and_bad_axis():
    result = egscore(packed([0, 0, 0]), [1.0, 2.0, 3.0], [[1.0, 2.0, 3.0]], 3, 1, None)[0]
    assert list(result[:6]) == [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0]
    with pytest.raises(ValueError):
        egscore(packed(CODES), PHENO, [[1.0, 2.0]], 8, 1, None)


def test_qtscore_glob_matches_qtscore_chi2():
    data = packed(CODES)
    glob = qtscore_glob(data, PHENO, 0, 8, 1, None)[0]
    plain = qtscore(data, PHENO, 0, 8, 1, None)[0]
    assert glob[0] == pytest.approx(plain[0])
    assert glob[6] == 8.0
    assert glob[2] == 2.0


def test_qtscore_glob_group_effects():
    data = packed([1, 1, 3, 3, 2, 2])
    result = qtscore_glob(data, [1, 1, 5, 5, 3, 3], 0, 6, 1, None)[0]
    assert result[5] == pytest.approx(4.0)
    assert result[4] == pytest.approx(2.0)


def test_qtscore_glob_all_missing():
    result = qtscore_glob(packed([0, 0]), [1.0, 2.0], 0, 2, 1, None)[0]
    assert result[6] == 0.0
    assert [result[k] for k in (0, 1, 2, 3, 4, 5, 7, 8, 9)] == [-999.99] * 9


def test_qtscore_single_equals_glob_row():
    data = packed(CODES, [2, 1, 3, 0, 3, 1, 2, 2])
    glob = qtscore_glob(data, PHENO, 0, 8, 2, None)
    np.testing.assert_allclose(qtscore_single(CODES, PHENO, 0, None), glob[0])
    np.testing.assert_allclose(
        qtscore_single([2, 1, 3, 0, 3, 1, 2, 2], PHENO, 0, None), glob[1]
    )


def test_qtscore_single_length_mismatch():
    with pytest.raises(ValueError):
        qtscore_single([1, 2, 3], [1.0, 2.0], 0, None)