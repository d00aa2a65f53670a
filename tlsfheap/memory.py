"""A thread-safe heap on top of the TLSF allocator, with allocation tracking."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from .tlsf import Tlsf


@dataclass(frozen=True)
class AllocationStats:
    """Counters over requested sizes; allocator overhead is not included."""

    count: int
    size: int
    available: int
    total: int
    peak: int


class Heap:
    """``malloc``-style allocation from a fixed block of ``size`` bytes.

    With ``track`` set, every live allocation and its requested size is
    recorded, and freeing or resizing an unknown pointer raises.
    """

    def __init__(self, size: int, track: bool = True) -> None:
        self._tlsf = Tlsf(size)
        self._lock = threading.Lock()
        self._total = size
        self._allocs: Optional[dict[int, int]] = {} if track else None
        self._allocated = 0
        self._peak = 0

    def _record(self, ptr: int, size: int) -> None:
        if self._allocs is None:
            return
        self._allocs[ptr] = size
        self._allocated += size
        self._peak = max(self._peak, self._allocated)

    def malloc(self, size: int) -> int:
        """Allocate ``size`` bytes and return the pointer."""
        if size <= 0:
            raise ValueError(f"allocation size must be positive, got {size}")
        with self._lock:
            ptr = self._tlsf.malloc(size)
            self._record(ptr, size)
        return ptr

    def free(self, ptr: Optional[int]) -> None:
        """Release an allocation; ``None`` is ignored."""
        if ptr is None:
            return
        with self._lock:
            if self._allocs is not None:
                if ptr not in self._allocs:
                    raise ValueError(f"pointer {ptr:#x} was not allocated")
                self._allocated -= self._allocs.pop(ptr)
            self._tlsf.free(ptr)

    def calloc(self, n: int, size: int) -> int:
        """Allocate ``n`` items of ``size`` bytes each, zero-filled."""
        total = n * size
        ptr = self.malloc(total)
        with self._lock:
            self._tlsf.write(ptr, bytes(total))
        return ptr

    def realloc(self, ptr: Optional[int], size: int) -> int:
        """Resize an allocation, keeping its contents; may move it."""
        if ptr is None:
            return self.malloc(size)
        if size <= 0:
            raise ValueError(f"allocation size must be positive, got {size}")
        with self._lock:
            if self._allocs is not None and ptr not in self._allocs:
                raise ValueError(f"pointer {ptr:#x} was not allocated")
            new_ptr = self._tlsf.realloc(ptr, size)
            if self._allocs is not None:
                self._allocated -= self._allocs.pop(ptr)
                self._record(new_ptr, size)
        return new_ptr

    def read(self, ptr: int, size: int) -> bytes:
        """Copy ``size`` bytes out of the heap starting at ``ptr``."""
        with self._lock:
            return self._tlsf.read(ptr, size)

    def write(self, ptr: int, data: bytes) -> None:
        """Copy ``data`` into the heap starting at ``ptr``."""
        with self._lock:
            self._tlsf.write(ptr, data)

    def stats(self) -> Optional[AllocationStats]:
        """Current allocation counters, or ``None`` when tracking is off."""
        if self._allocs is None:
            return None
        with self._lock:
            return AllocationStats(
                count=len(self._allocs),
                size=self._allocated,
                available=self._total - self._allocated,
                total=self._total,
                peak=self._peak,
            )