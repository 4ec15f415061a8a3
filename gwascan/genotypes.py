"""Packed genotype storage: four two-bit genotype codes per byte.

Codes are 0 (missing), 1, 2 and 3 (the number of copies of the coded
allele plus one).  Within a byte the first genotype occupies the two most
significant bits.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

_SHIFTS = (6, 4, 2, 0)
_MARGINS = (1, 2)


def packed_size(count: int) -> int:
    """Number of bytes needed to hold ``count`` genotypes."""
    if count < 0:
        raise ValueError(f"genotype count must be non-negative, got {count}")
    return (count + 3) // 4


def _decode_byte(byte: int) -> tuple[int, int, int, int]:
    return tuple((byte >> shift) & 3 for shift in _SHIFTS)  # type: ignore[return-value]


def pack_genotypes(genotypes: Iterable[int]) -> bytes:
    """Pack genotype codes (0-3) into bytes, four per byte."""
    values = list(genotypes)
    for value in values:
        if not 0 <= value <= 3:
            raise ValueError(f"genotype code must be in 0..3, got {value}")
    out = bytearray()
    for start in range(0, len(values), 4):
        byte = 0
        for shift, value in zip(_SHIFTS, values[start:start + 4]):
            byte |= value << shift
        out.append(byte)
    return bytes(out)


def unpack_genotypes(data: bytes, count: int) -> list[int]:
    """Unpack the first ``count`` genotype codes from ``data``."""
    nbytes = packed_size(count)
    if len(data) < nbytes:
        raise ValueError(
            f"{count} genotypes need {nbytes} bytes, only {len(data)} given"
        )
    codes = [code for byte in data[:nbytes] for code in _decode_byte(byte)]
    return codes[:count]


def unpack_rows(data: bytes, ncols: int, nrows: int) -> list[list[int]]:
    """Unpack ``nrows`` consecutive packed rows of ``ncols`` genotypes each."""
    nbytes = packed_size(ncols)
    if len(data) < nbytes * nrows:
        raise ValueError(
            f"{nrows} rows of {ncols} genotypes need {nbytes * nrows} bytes, "
            f"only {len(data)} given"
        )
    return [
        unpack_genotypes(data[row * nbytes:(row + 1) * nbytes], ncols)
        for row in range(nrows)
    ]


def subset_ids(data: bytes, nsnps: int, nids: int, keep: Sequence[int]) -> bytes:
    """Keep the individuals at the 1-based positions ``keep`` in every SNP row."""
    for position in keep:
        if not 1 <= position <= nids:
            raise IndexError(f"individual {position} is outside 1..{nids}")
    return b"".join(
        pack_genotypes(row[position - 1] for position in keep)
        for row in unpack_rows(data, nids, nsnps)
    )


def _as_dosage(code: int) -> float:
    return math.nan if code == 0 else float(code - 1)


def _check_window(step: int, margin: int) -> None:
    if step < 1:
        raise ValueError(f"step must be at least 1, got {step}")
    if margin not in _MARGINS:
        raise ValueError(f"margin must be 1 or 2, got {margin}")


def read_packed(
    data: bytes,
    row_length: int,
    datasize: int,
    step: int,
    index: int,
    margin: int,
) -> list[float]:
    """Read ``step`` rows (margin 2) or columns (margin 1) of packed genotypes.

    The data hold rows of ``row_length`` genotypes.  Values are returned as
    allele dosages 0.0, 1.0, 2.0, with NaN for missing genotypes.  With
    margin 2 each of rows ``index .. index+step-1`` is read whole; with
    margin 1 columns ``index .. index+step-1`` are read over ``datasize`` rows.
    """
    _check_window(step, margin)
    nbytes = packed_size(row_length)
    if margin == 2:
        values: list[float] = []
        for row in range(index, index + step):
            chunk = data[row * nbytes:(row + 1) * nbytes]
            values.extend(_as_dosage(code) for code in unpack_genotypes(chunk, row_length))
        return values

    values = []
    for column in range(index, index + step):
        byte_offset, pair = divmod(column, 4)
        for row in range(datasize):
            position = row * nbytes + byte_offset
            if position >= len(data):
                raise ValueError(f"byte {position} is beyond the end of the data")
            values.append(_as_dosage((data[position] >> _SHIFTS[pair]) & 3))
    return values


def read_real(
    data: Sequence[float],
    row_length: int,
    datasize: int,
    step: int,
    index: int,
    margin: int,
) -> list[float]:
    """Read ``step`` slices of ``datasize`` values from a flat real matrix.

    With margin 2 the slices are consecutive blocks starting at
    ``index * row_length``; with margin 1 value ``j`` of slice ``i`` is
    taken from ``data[(index + i) + j * row_length]``.
    """
    _check_window(step, margin)
    if margin == 2:
        start = index * row_length
        stop = start + step * datasize
        if stop > len(data):
            raise ValueError(f"value {stop - 1} is beyond the end of the data")
        return [float(value) for value in data[start:stop]]
    return [
        float(data[(index + i) + j * row_length])
        for i in range(step)
        for j in range(datasize)
    ]