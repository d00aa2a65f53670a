"""Easing functions mapping linear progress in 0..1 to eased progress."""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Callable

DEFAULT_OVERSHOOT = 1.70158

_HALF_PI = math.pi / 2.0
_TWO_PI = 2.0 * math.pi


class Ease(IntEnum):
    """Available ease functions."""

    LINEAR = 0
    SINE_IN = 1
    SINE_OUT = 2
    SINE_IN_OUT = 3
    QUAD_IN = 4
    QUAD_OUT = 5
    QUAD_IN_OUT = 6
    CUBIC_IN = 7
    CUBIC_OUT = 8
    CUBIC_IN_OUT = 9
    QUART_IN = 10
    QUART_OUT = 11
    QUART_IN_OUT = 12
    QUINT_IN = 13
    QUINT_OUT = 14
    QUINT_IN_OUT = 15
    EXPO_IN = 16
    EXPO_OUT = 17
    EXPO_IN_OUT = 18
    CIRC_IN = 19
    CIRC_OUT = 20
    CIRC_IN_OUT = 21
    BACK_IN = 22
    BACK_OUT = 23
    BACK_IN_OUT = 24
    BOUNCE_IN = 25
    BOUNCE_OUT = 26
    BOUNCE_IN_OUT = 27
    ELASTIC_IN = 28
    ELASTIC_OUT = 29
    ELASTIC_IN_OUT = 30


def _sine_in(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    return 1.0 - math.cos(k * _HALF_PI)


def _sine_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    return math.sin(k * _HALF_PI)


def _sine_in_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    return -0.5 * (math.cos(math.pi * k) - 1.0)


def _quad_in(k: float) -> float:
    return k * k


def _quad_out(k: float) -> float:
    return -k * (k - 2.0)


def _quad_in_out(k: float) -> float:
    if k < 0.5:
        return 2.0 * k * k
    return -2.0 * ((k - 1.0) * (k - 1.0)) + 1.0


def _cubic_in(k: float) -> float:
    return k * k * k


def _cubic_out(k: float) -> float:
    k -= 1.0
    return k * k * k + 1.0


def _cubic_in_out(k: float) -> float:
    k *= 2.0
    if k < 1.0:
        return 0.5 * k * k * k
    k -= 2.0
    return 0.5 * (k * k * k + 2.0)


def _quart_in(k: float) -> float:
    k *= k
    return k * k


def _quart_out(k: float) -> float:
    k -= 1.0
    k *= k
    return 1.0 - k * k


def _quart_in_out(k: float) -> float:
    k *= 2.0
    if k < 1.0:
        return 0.5 * (k * k) * (k * k)
    k -= 2.0
    k *= k
    return -0.5 * (k * k - 2.0)


def _quint_in(k: float) -> float:
    return k * (k * k) * (k * k)


def _quint_out(k: float) -> float:
    k -= 1.0
    return k * (k * k) * (k * k) + 1.0


def _quint_in_out(k: float) -> float:
    k *= 2.0
    if k < 1.0:
        return 0.5 * k * (k * k) * (k * k)
    k -= 2.0
    return 0.5 * k * (k * k) * (k * k) + 1.0


def _expo_in(k: float) -> float:
    return 0.0 if k == 0.0 else math.pow(2.0, 10.0 * (k - 1.0))


def _expo_out(k: float) -> float:
    return 1.0 if k == 1.0 else 1.0 - math.pow(2.0, -10.0 * k)


def _expo_in_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    k *= 2.0
    if k < 1.0:
        return 0.5 * math.pow(2.0, 10.0 * (k - 1.0))
    k -= 1.0
    return 0.5 * (2.0 - math.pow(2.0, -10.0 * k))


def _circ_in(k: float) -> float:
    return -(math.sqrt(1.0 - k * k) - 1.0)


def _circ_out(k: float) -> float:
    return math.sqrt(1.0 - (k - 1.0) * (k - 1.0))


def _circ_in_out(k: float) -> float:
    if k <= 0.5:
        return (math.sqrt(1.0 - k * k * 4.0) - 1.0) / -2.0
    t = k * 2.0 - 2.0
    return (math.sqrt(1.0 - t * t) + 1.0) / 2.0


def _back_in(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    s = DEFAULT_OVERSHOOT
    return k * k * ((s + 1.0) * k - s)


def _back_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    s = DEFAULT_OVERSHOOT
    k -= 1.0
    return k * k * ((s + 1.0) * k + s) + 1.0


def _back_in_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    s = DEFAULT_OVERSHOOT * 1.525
    k *= 2.0
    if k < 1.0:
        return 0.5 * (k * k * ((s + 1.0) * k - s))
    k -= 2.0
    return 0.5 * (k * k * ((s + 1.0) * k + s) + 2.0)


def _bounce_out(k: float) -> float:
    if k < 1.0 / 2.75:
        return 7.5625 * k * k
    if k < 2.0 / 2.75:
        k -= 1.5 / 2.75
        return 7.5625 * k * k + 0.75
    if k < 2.5 / 2.75:
        k -= 2.25 / 2.75
        return 7.5625 * k * k + 0.9375
    k -= 2.625 / 2.75
    return 7.5625 * k * k + 0.984375


def _bounce_in(k: float) -> float:
    return 1.0 - _bounce_out(1.0 - k)


def _bounce_in_out(k: float) -> float:
    if k < 0.5:
        return _bounce_in(k * 2.0) * 0.5
    return _bounce_out(k * 2.0 - 1.0) * 0.5 + 0.5


# Amplitude and period of the elastic curves; an amplitude below 1 is
# raised to 1, which fixes the phase shift at a quarter period.
_ELASTIC_AMPLITUDE = 1.0
_ELASTIC_PERIOD = 0.4
_ELASTIC_SHIFT = _ELASTIC_PERIOD / 4.0


def _elastic_wave(k: float) -> float:
    return math.sin((k - _ELASTIC_SHIFT) * _TWO_PI / _ELASTIC_PERIOD)


def _elastic_in(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    k -= 1.0
    return -(_ELASTIC_AMPLITUDE * math.pow(2.0, 10.0 * k) * _elastic_wave(k))


def _elastic_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    return _ELASTIC_AMPLITUDE * math.pow(2.0, -10.0 * k) * _elastic_wave(k) + 1.0


def _elastic_in_out(k: float) -> float:
    if k in (0.0, 1.0):
        return k
    k *= 2.0
    if k < 1.0:
        k -= 1.0
        return -0.5 * (_ELASTIC_AMPLITUDE * math.pow(2.0, 10.0 * k) * _elastic_wave(k))
    k -= 1.0
    return _ELASTIC_AMPLITUDE * math.pow(2.0, -10.0 * k) * _elastic_wave(k) * 0.5 + 1.0


# Linear easing is the identity on progress, so the float conversion serves.
_FUNCTIONS: dict[Ease, Callable[[float], float]] = {
    Ease.LINEAR: float,
    Ease.SINE_IN: _sine_in,
    Ease.SINE_OUT: _sine_out,
    Ease.SINE_IN_OUT: _sine_in_out,
    Ease.QUAD_IN: _quad_in,
    Ease.QUAD_OUT: _quad_out,
    Ease.QUAD_IN_OUT: _quad_in_out,
    Ease.CUBIC_IN: _cubic_in,
    Ease.CUBIC_OUT: _cubic_out,
    Ease.CUBIC_IN_OUT: _cubic_in_out,
    Ease.QUART_IN: _quart_in,
    Ease.QUART_OUT: _quart_out,
    Ease.QUART_IN_OUT: _quart_in_out,
    Ease.QUINT_IN: _quint_in,
    Ease.QUINT_OUT: _quint_out,
    Ease.QUINT_IN_OUT: _quint_in_out,
    Ease.EXPO_IN: _expo_in,
    Ease.EXPO_OUT: _expo_out,
    Ease.EXPO_IN_OUT: _expo_in_out,
    Ease.CIRC_IN: _circ_in,
    Ease.CIRC_OUT: _circ_out,
    Ease.CIRC_IN_OUT: _circ_in_out,
    Ease.BACK_IN: _back_in,
    Ease.BACK_OUT: _back_out,
    Ease.BACK_IN_OUT: _back_in_out,
    Ease.BOUNCE_IN: _bounce_in,
    Ease.BOUNCE_OUT: _bounce_out,
    Ease.BOUNCE_IN_OUT: _bounce_in_out,
    Ease.ELASTIC_IN: _elastic_in,
    Ease.ELASTIC_OUT: _elastic_out,
    Ease.ELASTIC_IN_OUT: _elastic_in_out,
}


def tween(ease: Ease | int, k: float) -> float:
    """Evaluate the ease function ``ease`` at linear progress ``k``."""
    return _FUNCTIONS[Ease(ease)](float(k))