# tlsfheap

A Two-Level Segregated Fit (TLSF) memory allocator that manages a
simulated heap held in a `bytearray`, a thread-safe heap wrapper that
keeps allocation statistics, and a set of easing functions.

## Install

```
pip install .
pip install ".[test]"   # with the test dependencies
```

## The allocator: `tlsfheap.tlsf`

`Tlsf(size)` creates a heap of `size` bytes. The first `CONTROL_SIZE`
bytes are reserved for bookkeeping and the rest becomes the initial
pool, so `size` must be larger than `CONTROL_SIZE`. Pointers are
integer offsets into the heap; block headers live inside the heap with
a 64-bit layout (8-byte alignment, blocks up to `1 << 32` bytes).

```python
from tlsfheap.tlsf import Tlsf

heap = Tlsf(64 * 1024)
ptr = heap.malloc(100)
heap.write(ptr, b"hello")
assert heap.read(ptr, 5) == b"hello"

ptr = heap.realloc(ptr, 400)     # contents kept, may move
aligned = heap.memalign(64, 32)  # address is a multiple of 64
print(heap.block_size(ptr))      # internal block size, not the request

heap.free(aligned)
heap.free(ptr)
assert heap.check() == 0
assert heap.check_pool(heap.get_pool()) == 0
```

Behaviour worth knowing:

- `malloc(0)` and `memalign(align, 0)` return `None`; a request that
  cannot be met raises `MemoryError`; a negative size raises
  `ValueError`.
- `memalign` raises `ValueError` unless `align` is a power of two.
- `realloc(None, size)` allocates; `realloc(ptr, 0)` frees and returns
  `None`. If the request cannot be met, `MemoryError` is raised and the
  original allocation is left as it was.
- `free(None)` does nothing; freeing an invalid or already free pointer
  raises `ValueError`.
- `read` and `write` raise `IndexError` for ranges outside the heap.
- `add_pool(offset, size)` hands a further region of the same heap to
  the allocator and returns the pool; `remove_pool(pool)` withdraws a
  pool and raises `ValueError` if it still holds allocations.
- `walk_pool(pool, walker)` calls `walker(ptr, size, used)` for each
  physical block of a pool; with no walker it prints each block.
- `check()` verifies the free lists and bitmaps and `check_pool(pool)`
  the physical block chain; each returns 0 when consistent, otherwise
  minus the number of failed checks.

The module also exports `CONTROL_SIZE`, `POOL_OVERHEAD` and
`ALLOC_OVERHEAD`.

## Size-class helpers: `tlsfheap.bits`

`ffs`, `fls` (lowest and highest set bit of a 32-bit word, -1 for
zero), `fls_sizet` (highest set bit of a 64-bit size), `align_up`,
`align_down`, `adjust_request_size`, and `mapping_insert` /
`mapping_search`, which return the `(first_level, second_level)` list
indices for a block size or a request.

## The tracked heap: `tlsfheap.memory`

`Heap(size, track=True)` wraps a `Tlsf` behind a lock. With tracking
on, it records each live allocation and its requested size.

```python
from tlsfheap.memory import Heap

heap = Heap(1024 * 1024, track=True)
a = heap.malloc(128)
b = heap.calloc(4, 16)      # zero-filled
a = heap.realloc(a, 256)
heap.free(b)

stats = heap.stats()
print(stats.count, stats.size, stats.available, stats.total, stats.peak)
```

- `malloc`, `calloc` and `realloc` raise `ValueError` for a size that
  is not positive, and `MemoryError` when the heap is exhausted.
- `realloc(None, size)` allocates; `free(None)` does nothing.
- With tracking on, freeing or resizing a pointer the heap did not hand
  out raises `ValueError`.
- `stats()` returns an `AllocationStats` with `count`, `size`,
  `available`, `total` and `peak`, or `None` when tracking is off. Only
  requested sizes are counted, not the allocator's overhead.

## Easing: `tlsfheap.tween`

```python
from tlsfheap.tween import Ease, tween

tween(Ease.QUAD_IN, 0.5)          # 0.25
tween(Ease.ELASTIC_IN_OUT, 0.3)
```

`Ease` lists `LINEAR` and the sine, quad, cubic, quart, quint, expo,
circ, back, bounce and elastic curves, each in `_IN`, `_OUT` and
`_IN_OUT` forms. `tween` also accepts the plain integer value of an
`Ease`. The input runs from 0 to 1.

## What it does not do

The heap is simulated: it hands out offsets into its own `bytearray`,
not addresses of real memory, and it cannot be used to back other
Python objects. There is no command-line tool.

## Tests

```
pytest
```