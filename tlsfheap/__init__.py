"""TLSF allocator over a simulated heap, a tracked thread-safe heap, and easing functions."""

__version__ = "0.1.0"
__all__ = ["bits", "tlsf", "tween", "memory"]