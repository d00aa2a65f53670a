import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tlsfheap.memory import Heap

HEAP_SIZE = 64 * 1024


@pytest.fixture
def heap():
    return Heap(HEAP_SIZE)


def test_fresh_heap_stats(heap):
    stats = heap.stats()
    assert stats.count == 0
    assert stats.size == 0
    assert stats.total == HEAP_SIZE
    assert stats.available == HEAP_SIZE


def test_malloc_tracks_requested_size(heap):
    heap.malloc(100)
    heap.malloc(40)
    stats = heap.stats()
    assert stats.count == 2
    assert stats.size == 140
    assert stats.available == HEAP_SIZE - 140
    assert stats.peak == 140


def test_free_returns_counters_and_keeps_peak(heap):
    a = heap.malloc(100)
    b = heap.malloc(50)
    heap.free(a)
    heap.free(b)
    stats = heap.stats()
    assert stats.count == 0
    assert stats.size == 0
    assert stats.peak == 150


def test_free_none_is_ignored(heap):
    heap.malloc(10)
    heap.free(None)
    assert heap.stats().count == 1


def test_write_read_round_trip(heap):
    ptr = heap.malloc(11)
    heap.write(ptr, b"hello world")
    assert heap.read(ptr, 11) == b"hello world"


def test_calloc_zero_fills_reused_memory(heap):
    ptr = heap.malloc(64)
    heap.write(ptr, b"\xff" * 64)
    heap.free(ptr)
    zeroed = heap.calloc(8, 8)
    assert heap.read(zeroed, 64) == bytes(64)
    assert heap.stats().size == 64


def test_realloc_keeps_contents_and_updates_size(heap):
    ptr = heap.malloc(16)
    heap.write(ptr, b"0123456789abcdef")
    heap.malloc(16)  # force the grown block to move
    grown = heap.realloc(ptr, 4096)
    assert heap.read(grown, 16) == b"0123456789abcdef"
    stats = heap.stats()
    assert stats.count == 2
    assert stats.size == 4096 + 16


def test_realloc_none_allocates(heap):
    ptr = heap.realloc(None, 32)
    heap.write(ptr, b"x" * 32)
    assert heap.read(ptr, 32) == b"x" * 32
    assert heap.stats().count == 1


def test_free_unknown_pointer_raises(heap):
    ptr = heap.malloc(32)
    with pytest.raises(ValueError):
        heap.free(ptr + 8)
    heap.free(ptr)
    with pytest.raises(ValueError):
        heap.free(ptr)


def test_realloc_unknown_pointer_raises(heap):
    ptr = heap.malloc(32)
    heap.free(ptr)
    with pytest.raises(ValueError):
        heap.realloc(ptr, 64)


def test_zero_sizes_raise(heap):
    with pytest.raises(ValueError):
        heap.malloc(0)
    ptr = heap.malloc(8)
    with pytest.raises(ValueError):
        heap.realloc(ptr, 0)
    assert heap.stats().count == 1


def test_exhaustion_raises_memory_error(heap):
    with pytest.raises(MemoryError):
        heap.malloc(HEAP_SIZE * 4)
    assert heap.stats().count == 0


def test_untracked_heap_has_no_stats():
    untracked = Heap(HEAP_SIZE, track=False)
    ptr = untracked.malloc(24)
    untracked.write(ptr, b"abc")
    assert untracked.read(ptr, 3) == b"abc"
    untracked.free(ptr)
    assert untracked.stats() is None


def test_concurrent_allocations_are_distinct(heap):
    results = [[] for _ in range(4)]

    def worker(out):
        for _ in range(50):
            out.append(heap.malloc(16))

    threads = [threading.Thread(target=worker, args=(out,)) for out in results]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    pointers = [ptr for out in results for ptr in out]
    assert len(set(pointers)) == 200
    assert heap.stats().count == 200
    for ptr in pointers:
        heap.free(ptr)
    assert heap.stats().count == 0


@settings(max_examples=50)
@given(st.lists(st.integers(min_value=1, max_value=512), min_size=1, max_size=30))
def test_stats_follow_sequence_of_allocations(sizes):
    heap = Heap(HEAP_SIZE)
    pointers = [heap.malloc(size) for size in sizes]
    stats = heap.stats()
    assert stats.count == len(sizes)
    assert stats.size == sum(sizes)
    assert stats.available + stats.size == stats.total
    for ptr in pointers[::2]:
        heap.free(ptr)
    assert heap.stats().size == sum(sizes[1::2])
    assert heap.stats().peak == sum(sizes)