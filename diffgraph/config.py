"""Constants and render configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

GRAPH_NAME = "trace"
DEFAULT_FONT_SIZE = 14
CLUSTER_PEN_WIDTH = 6

# Full intensity of one color channel.
CHANNEL_MAX = 0xFF

# Relative errors are stored as their fifth root.
ERROR_ROOT = 5

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class LabelSource(str, Enum):
    """Which node field is shown as the display label."""

    LABEL = "label"
    DISAS = "disas"


@dataclass(frozen=True)
class RenderConfig:
    verbose: bool = False
    collapse: bool = False
    label_source: LabelSource = LabelSource.LABEL
    font_size: int = DEFAULT_FONT_SIZE
