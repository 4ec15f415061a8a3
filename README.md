# gwascan

Tools for genome-wide association scans on SNP genotypes stored in a compact
two-bit-per-genotype layout. Results come back as Python lists or NumPy
arrays.

## Genotype storage

Each genotype is one of four codes: `0` means missing, and `1`, `2` and `3`
stand for the genotypes with 0, 1 and 2 copies of the coded allele. Four
genotypes are packed into each byte, with the first genotype in the two most
significant bits. Each SNP takes `packed_size(nids)` bytes, and the SNPs are
stored one after another.

```python
from gwascan.genotypes import pack_genotypes, unpack_genotypes, packed_size

row = pack_genotypes([1, 2, 3, 0, 2])
assert len(row) == packed_size(5)
assert unpack_genotypes(row, 5) == [1, 2, 3, 0, 2]
```

## Modules

- `gwascan.genotypes`: `packed_size`, `pack_genotypes`, `unpack_genotypes`,
  `unpack_rows` (several packed rows at once), `subset_ids` (keep chosen
  individuals, given by 1-based position, in every SNP row), and
  `read_packed` / `read_real`, which read a window of rows or columns from a
  packed or a flat real-valued matrix (packed genotypes are returned as
  dosages 0.0, 1.0, 2.0 with NaN for missing).
- `gwascan.association`: case-control tests `fastcc` (allelic and genotypic
  chi-square with odds ratios) and `fastcc_new` (additive, dominant and
  recessive trend tests); stratified score tests `qtscore`, `qtscore_glob`
  and `egscore` (adjusting genotypes for principal axes); and
  `qtscore_single`, the `qtscore_glob` statistics for one SNP given as codes.
  Each returns one row of statistics per SNP.
- `gwascan.mixed`: score tests using an inverse covariance matrix between
  individuals: `mmscore`, `mmscore_centered`, `mmscore_symmetric` (reads
  only the upper triangle of the matrix) and `grammar`.
- `gwascan.regression`: `snp_vector` (dosages of one SNP, -1 for missing),
  `GeneticModel` and `convert_genotypes` for additive, dominant, recessive
  and overdominant recoding, `RegressionData` (outcomes and a design matrix
  restricted to genotyped individuals, with a monomorphism flag) and
  `CoxPHData` (survival data sorted by follow-up time).
- `gwascan.relatedness`: per-individual homozygosity (`hom`, `homold`) and
  pairwise similarity by identity by state or standardised genotypes
  (`ibs`, `ibsnew`, `ibspar`).
- `gwascan.ld`: linkage disequilibrium between SNP pairs (`r2`, `r2_pairs`,
  `rho`, `dprime`, `allld`) and the two-locus helpers `calculate_r2` and
  `estimate_haplotype_counts`, which use expectation-maximisation when double
  heterozygotes leave the phase unknown.
- `gwascan.matrices`: `int_snp_matrix` (dosages with `None` for missing) and
  `impute_snp_matrix` (three 0/1 indicator columns per individual).
- `gwascan.markers`: `replace_slash` turns every `/` into a space;
  `replace_arrow` turns the first `->` into a space.

## Example: a quick association scan

```python
from gwascan.genotypes import pack_genotypes
from gwascan.association import fastcc

snps = [[1, 2, 3, 2], [3, 3, 1, 2]]
data = b"".join(pack_genotypes(s) for s in snps)
case_control = [1, 1, 0, 0]
result = fastcc(data, case_control, nids=4, nsnps=2)
# result.shape == (2, 7): allelic chi2, genotypic chi2, df,
# allelic OR, heterozygote OR, homozygote OR, number measured
```

## Example: linkage disequilibrium

```python
from gwascan.ld import r2

matrix = r2(data, nids=4, nsnps=2)
# matrix[0, 1] is r2 between the two SNPs,
# matrix[1, 0] the number of individuals measured at both
```

## What the package does not do

- It has no per-SNP quality summary: no call rates, allele frequency tables
  or Hardy-Weinberg equilibrium tests over a data set, and no detection of
  redundant SNPs or q-value computation.
- `gwascan.regression` prepares inputs only; it does not fit linear,
  logistic or Cox regression models.
- There is no generic routine for applying a summary function across the
  rows or columns of a matrix, and no reading or writing of genotype files
  on disk. Data are passed in as `bytes` and sequences.
- There is no command-line program.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```