import numpy as np
import pytest

from gwascan.genotypes import pack_genotypes
from gwascan.mixed import grammar, mmscore, mmscore_centered, mmscore_symmetric


def _pack(rows):
    return b"".join(pack_genotypes(row) for row in rows)


@pytest.fixture
def random_case():
    rng = np.random.default_rng(7)
    nids, nsnps = 20, 5
    rows = [list(rng.integers(1, 4, size=nids)) for _ in range(nsnps)]
    pheno = rng.normal(size=nids)
    base = rng.normal(size=(nids, nids))
    matrix = base @ base.T + nids * np.eye(nids)
    return _pack(rows), pheno, matrix, nids, nsnps


def test_perfect_dosage_relation():
    data = _pack([[1, 2, 3]])
    out = mmscore_centered(data, [0.0, 1.0, 2.0], np.eye(3), 3, 1, None)
    assert out.shape == (1, 7)
    assert out[0, 0] == pytest.approx(2.0)
    assert out[0, 3] == pytest.approx(1.0)
    assert out[0, 6] == 3


@pytest.mark.parametrize("func", [mmscore, mmscore_centered, mmscore_symmetric, grammar])
def test_all_missing_row(func):
    data = _pack([[0, 0, 0, 0]])
    out = func(data, [1.0, 2.0, 3.0, 4.0], np.eye(4), 4, 1, None)
    assert list(out[0]) == [0.0, 0.0, 0.0001, 0.0, 0.0, 0.0, 0.0]


@pytest.mark.parametrize("func", [mmscore, mmscore_centered, mmscore_symmetric, grammar])
def test_monomorphic_snp_gives_zero(func):
    data = _pack([[2, 2, 2, 2]])
    out = func(data, [1.0, 5.0, 3.0, 4.0], np.eye(4), 4, 1, None)
    assert out[0, 0] == 0.0
    assert out[0, 3] == 0.0
    assert out[0, 6] == 4


def test_measured_count_ignores_missing():
    data = _pack([[1, 0, 3, 2, 0]])
    out = mmscore(data, [1.0, 2.0, 3.0, 4.0, 5.0], np.eye(5), 5, 1, None)
    assert out[0, 6] == 3


def test_symmetric_matches_full_product_for_symmetric_matrix(random_case):
    data, pheno, matrix, nids, nsnps = random_case
    full = mmscore_centered(data, pheno, matrix, nids, nsnps, None)
    upper = mmscore_symmetric(data, pheno, matrix, nids, nsnps, None)
    np.testing.assert_allclose(upper, full)


def test_symmetric_reads_upper_triangle_only(random_case):
    data, pheno, matrix, nids, nsnps = random_case
    disturbed = matrix.copy()
    disturbed[np.tril_indices(nids, -1)] += 100.0
    upper = mmscore_symmetric(data, pheno, disturbed, nids, nsnps, None)
    full = mmscore_centered(data, pheno, matrix, nids, nsnps, None)
    np.testing.assert_allclose(upper, full)


def test_centered_chi2_invariant_to_trait_scale_and_shift(random_case):
    data, pheno, matrix, nids, nsnps = random_case
    plain = mmscore_centered(data, pheno, matrix, nids, nsnps, None)
    moved = mmscore_centered(data, 3.0 * pheno + 7.0, matrix, nids, nsnps, None)
    np.testing.assert_allclose(moved[:, 0], plain[:, 0])
    np.testing.assert_allclose(moved[:, 3], 3.0 * plain[:, 3])


def test_tests_agree_with_identity_matrix(random_case):
    data, pheno, _, nids, nsnps = random_case
    identity = np.eye(nids)
    centered = mmscore_centered(data, pheno, identity, nids, nsnps, None)
    old = mmscore(data, pheno, identity, nids, nsnps, None)
    gram = grammar(data, pheno, identity, nids, nsnps, None)
    np.testing.assert_allclose(old[:, 0], centered[:, 0])
    np.testing.assert_allclose(gram[:, 0], centered[:, 0])
    np.testing.assert_allclose(gram[:, 3], old[:, 3])


def test_flat_matrix_accepted(random_case):
    data, pheno, matrix, nids, nsnps = random_case
    flat = mmscore(data, pheno, matrix.ravel(), nids, nsnps, None)
    square = mmscore(data, pheno, matrix, nids, nsnps, None)
    np.testing.assert_array_equal(flat, square)


def test_strata_given_explicitly_as_single_group(random_case):
    data, pheno, matrix, nids, nsnps = random_case
    implicit = mmscore_centered(data, pheno, matrix, nids, nsnps, None)
    explicit = mmscore_centered(data, pheno, matrix, nids, nsnps, [0] * nids)
    np.testing.assert_array_equal(implicit, explicit)


def test_wrong_pheno_length():
    with pytest.raises(ValueError):
        mmscore(_pack([[1, 2, 3]]), [1.0, 2.0], np.eye(3), 3, 1, None)


def test_wrong_matrix_shape():
    with pytest.raises(ValueError):
        grammar(_pack([[1, 2, 3]]), [1.0, 2.0, 3.0], np.eye(2), 3, 1, None)


def test_negative_strata_rejected():
    with pytest.raises(ValueError):
        mmscore_centered(_pack([[1, 2, 3]]), [1.0, 2.0, 3.0], np.eye(3), 3, 1, [0, -1, 0])