"""
Centralized Board Configuration Module

This module defines the fixed board geometry and the tunable values used by
the frame classifier and the evaluation session. Every other module reads its
defaults from here so a board variant (or a recalibrated camera setup) only
needs edits in one place.

Color thresholds are expressed on the [0, 1] RGB scale produced by
board_vision.average_color():
- blocker_brightness: mean of R, G and B below this is a dark blocker peg
- piece_channel: any single channel above this counts as a colored piece
- anything in between is treated as the bare (empty) board
"""

from typing import Dict, Literal

# Type alias for the three observable cell kinds
CellKind = Literal["empty", "blocker", "piece"]


# Board geometry
GRID_SIZE = 6

# Sentinel reported before the first frame has been evaluated
NOT_EVALUATED = -1

# Frames arriving faster than this are dropped by BoardEvaluator.submit_frame
ANALYSIS_INTERVAL_S = 1.0

# Side length (pixels) of the square patch sampled around each cell center
CELL_SAMPLE_SIZE = 20


# Board detection: the board is the largest near-square quadrilateral
# whose shorter side covers at least min_size of the frame's shorter side
BOARD_DETECTION: Dict[str, float] = {
    "min_aspect": 0.8,
    "max_aspect": 1.2,
    "min_size": 0.3,
}


# Color classifier thresholds (RGB scaled to 0.0 - 1.0)
COLOR_THRESHOLDS: Dict[str, float] = {
    "blocker_brightness": 0.3,
    "piece_channel": 0.4,
}


# Characters used by the board text format
CELL_CHARS: Dict[CellKind, str] = {
    "empty": ".",
    "blocker": "#",
}


def get_color_threshold(name: str) -> float:
    """
    Get a color classifier threshold by name.

    Args:
        name: Threshold name (must be key in COLOR_THRESHOLDS)

    Returns:
        Threshold value on the 0.0 - 1.0 scale

    Raises:
        ValueError: If name is not in COLOR_THRESHOLDS
    """
    if name not in COLOR_THRESHOLDS:
        raise ValueError(
            f"Unknown color threshold: {name}. "
            f"Valid thresholds: {list(COLOR_THRESHOLDS.keys())}"
        )

    return COLOR_THRESHOLDS[name]
