"""Generic helpers (error transform, colors, DOT text, profiling)."""

from __future__ import annotations

import functools
import logging
import math
import re
import time
from typing import Union

import numpy as np

from diffgraph.config import CHANNEL_MAX, ERROR_ROOT

ArrayLike = Union[float, np.ndarray]

_DOT_BARE_ID_RE = re.compile(r"^[A-Za-z0-9_]*$")


def fifth_root(value: float) -> float:
    return math.copysign(abs(value) ** (1.0 / ERROR_ROOT), value)


def fifth_power(value: float) -> float:
    return value**ERROR_ROOT


def round_half_away(value: ArrayLike) -> ArrayLike:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return np.sign(value) * np.floor(np.abs(value) + 0.5)


def clamp_channel(value: ArrayLike) -> ArrayLike:
    return np.clip(value, 0, CHANNEL_MAX)


def channel_hex(value: int) -> str:
    value = int(clamp_channel(value))
    return f"{value:02x}"


def node_fill_color(color: int) -> str:
    channel = channel_hex(color)
    return f"#ff{channel}{channel}"


def cluster_pen_color(color: int) -> str:
    return f"#{channel_hex(color)}0000"


def format_float(value: float) -> str:
    return repr(float(value))


def dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def dot_cluster_id(name: str) -> str:
    if _DOT_BARE_ID_RE.match(name):
        return f"cluster_{name}"
    return f'"cluster_{dot_escape(name)}"'


def profile_time(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        elapsed = time.time() - start_time
        logging.info("[PROFILE] Function '%s' executed in %.3f seconds", func.__name__, elapsed)
        return result

    return wrapper
