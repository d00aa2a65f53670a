import pytest
from hypothesis import given
from hypothesis import strategies as st

from tlsfheap.bits import (
    ALIGN_SIZE,
    BLOCK_SIZE_MAX,
    BLOCK_SIZE_MIN,
    FL_INDEX_COUNT,
    SL_INDEX_COUNT,
    SMALL_BLOCK_SIZE,
    adjust_request_size,
    align_down,
    align_up,
    ffs,
    fls,
    fls_sizet,
    mapping_insert,
    mapping_search,
)


@pytest.mark.parametrize(
    "word, expected",
    [(0, -1), (1, 0), (0x80000000, 31), (0x80008000, 15)],
)
def test_ffs_known_values(word, expected):
    assert ffs(word) == expected


@pytest.mark.parametrize(
    "word, expected",
    [(0, -1), (1, 0), (0x80000008, 31), (0x7FFFFFFF, 30)],
)
def test_fls_known_values(word, expected):
    assert fls(word) == expected


@pytest.mark.parametrize(
    "size, expected",
    [(0x80000000, 31), (0x100000000, 32), (0xFFFFFFFFFFFFFFFF, 63)],
)
def test_fls_sizet_known_values(size, expected):
    assert fls_sizet(size) == expected


@given(st.integers(min_value=1, max_value=0xFFFFFFFF))
def test_ffs_fls_bracket_set_bits(word):
    low, high = ffs(word), fls(word)
    assert 0 <= low <= high <= 31
    assert word >> low & 1
    assert word >> high & 1
    assert word & ((1 << low) - 1) == 0
    assert word >> (high + 1) == 0


@given(st.integers(min_value=0, max_value=0xFFFFFFFF))
def test_fls_sizet_agrees_with_fls_on_words(word):
    assert fls_sizet(word) == fls(word)


@given(
    st.integers(min_value=0, max_value=1 << 40),
    st.sampled_from([1, 2, 4, 8, 16, 64, 4096]),
)
def test_alignment_rounding(x, align):
    up = align_up(x, align)
    down = align_down(x, align)
    assert up % align == 0 and down % align == 0
    assert down <= x <= up
    assert up - x < align and x - down < align


@pytest.mark.parametrize("align", [0, 3, 12, -8])
def test_alignment_rejects_non_power_of_two(align):
    with pytest.raises(ValueError):
        align_up(10, align)
    with pytest.raises(ValueError):
        align_down(10, align)


def test_adjust_request_size_edges():
    assert adjust_request_size(0, ALIGN_SIZE) == 0
    assert adjust_request_size(1, ALIGN_SIZE) == BLOCK_SIZE_MIN
    assert adjust_request_size(BLOCK_SIZE_MAX, ALIGN_SIZE) == 0
    assert adjust_request_size(BLOCK_SIZE_MAX - ALIGN_SIZE, ALIGN_SIZE) == (
        BLOCK_SIZE_MAX - ALIGN_SIZE
    )


@given(st.integers(min_value=1, max_value=BLOCK_SIZE_MAX - ALIGN_SIZE))
def test_adjust_request_size_invariants(size):
    adjusted = adjust_request_size(size, ALIGN_SIZE)
    assert adjusted >= size
    assert adjusted >= BLOCK_SIZE_MIN
    assert adjusted % ALIGN_SIZE == 0


def test_mapping_insert_first_large_class():
    assert mapping_insert(SMALL_BLOCK_SIZE) == (1, 0)
    assert mapping_insert(SMALL_BLOCK_SIZE - 1) == (0, SL_INDEX_COUNT - 1)
    assert mapping_insert(0) == (0, 0)


@given(st.integers(min_value=0, max_value=BLOCK_SIZE_MAX - 1))
def test_mapping_insert_in_range(size):
    fl, sl = mapping_insert(size)
    assert 0 <= fl < FL_INDEX_COUNT
    assert 0 <= sl < SL_INDEX_COUNT
    if size < SMALL_BLOCK_SIZE:
        assert fl == 0


@given(
    st.integers(min_value=0, max_value=BLOCK_SIZE_MAX - 2),
    st.integers(min_value=1, max_value=1 << 20),
)
def test_mapping_insert_is_monotonic(size, delta):
    bigger = min(size + delta, BLOCK_SIZE_MAX - 1)
    assert mapping_insert(size) <= mapping_insert(bigger)


@given(st.integers(min_value=0, max_value=BLOCK_SIZE_MAX // 2))
def test_mapping_search_rounds_up(size):
    assert mapping_search(size) >= mapping_insert(size)


@given(st.integers(min_value=0, max_value=SMALL_BLOCK_SIZE - 1))
def test_mapping_search_exact_for_small_sizes(size):
    assert mapping_search(size) == mapping_insert(size)