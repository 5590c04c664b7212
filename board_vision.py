"""
Frame classifier for the physical board.

Locates the board in a camera frame (detect_board_corners), then turns the
frame plus the four board corners into a 6x6 grid of CellState values by
sampling the average color around each cell center:

- dark patches are blockers
- patches with a strong color channel are pieces (id guessed from the hue)
- everything else is the empty board

This is a best-effort heuristic. No perspective correction is done; cell
centers are interpolated inside the corner quadrilateral, and piece ids from
color are frequently wrong. The matcher is built to tolerate that.
"""

import base64
import logging
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from board_matcher import BLOCKER, EMPTY, CellState
from genius_config import BOARD_DETECTION, CELL_SAMPLE_SIZE, GRID_SIZE, get_color_threshold

# Configure module logger
logger = logging.getLogger(__name__)

Point = Tuple[float, float]  # normalized (x, y), origin top-left


def decode_image(base64_str: str) -> np.ndarray:
    """Decode base64 image to OpenCV format"""
    # Strip data URL prefix if present
    if "base64," in base64_str:
        base64_str = base64_str.split("base64,")[1]

    try:
        img_bytes = base64.b64decode(base64_str)
    except ValueError as e:
        logger.warning(f"Dropping frame: invalid base64 image data ({e})")
        raise ValueError(f"Invalid base64 image data: {e}")

    img_array = np.frombuffer(img_bytes, dtype=np.uint8)
    img = cv2.imdecode(img_array, cv2.IMREAD_COLOR) if img_array.size else None

    if img is None:
        logger.warning(f"Dropping frame: could not decode {len(img_bytes)} bytes as an image")
        raise ValueError("Failed to decode image")

    return img


def order_corners(points: np.ndarray) -> np.ndarray:
    """Sort four (x, y) points into top-left, top-right, bottom-right, bottom-left."""
    pts = points.reshape(4, 2).astype(np.float32)
    sums = pts.sum(axis=1)
    diffs = pts[:, 1] - pts[:, 0]
    return np.array([
        pts[np.argmin(sums)],
        pts[np.argmin(diffs)],
        pts[np.argmax(sums)],
        pts[np.argmax(diffs)],
    ], dtype=np.float32)


def detect_board_corners(image: np.ndarray) -> Optional[List[Point]]:
    """
    Find the board as the most prominent near-square quadrilateral in a frame.

    Candidates come from external contours of the dilated edge map, simplified
    with approxPolyDP. A candidate must have 4 vertices, a bounding-box aspect
    ratio within BOARD_DETECTION's limits, and a shorter side of at least
    min_size of the image's shorter side. The largest one wins.

    Returns:
        [top_left, top_right, bottom_right, bottom_left] as normalized (x, y)
        points, or None if no board-like shape is found
    """
    height, width = image.shape[:2]
    min_aspect = BOARD_DETECTION["min_aspect"]
    max_aspect = BOARD_DETECTION["max_aspect"]
    min_side = BOARD_DETECTION["min_size"] * min(height, width)

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    blur = cv2.GaussianBlur(gray, (5, 5), 0)
    edges = cv2.Canny(blur, 50, 150)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
    edges = cv2.dilate(edges, kernel, iterations=1)

    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best = None
    best_area = 0.0
    for contour in contours:
        perimeter = cv2.arcLength(contour, True)
        approx = cv2.approxPolyDP(contour, 0.04 * perimeter, True)
        if len(approx) != 4:
            continue

        x, y, w, h = cv2.boundingRect(approx)
        if h == 0 or min(w, h) < min_side:
            continue
        if not (min_aspect <= w / h <= max_aspect):
            continue

        area = cv2.contourArea(approx)
        if area > best_area:
            best = approx
            best_area = area

    if best is None:
        logger.debug(f"No board found among {len(contours)} contours")
        return None

    corners = order_corners(best)
    return [(float(x) / width, float(y) / height) for x, y in corners]


def cell_center(row: int, col: int, corners: Sequence[Point], size: int = GRID_SIZE) -> Point:
    """
    Normalized center of a cell, by bilinear interpolation.

    Args:
        row, col: Cell coordinates
        corners: [top_left, top_right, bottom_right, bottom_left] as
            normalized (x, y) points
        size: Grid side length

    Returns:
        (x, y) in the same normalized space as the corners
    """
    top_left, top_right, bottom_right, bottom_left = corners

    x_frac = (col + 0.5) / size
    y_frac = (row + 0.5) / size

    top_x = top_left[0] + (top_right[0] - top_left[0]) * x_frac
    top_y = top_left[1] + (top_right[1] - top_left[1]) * x_frac
    bottom_x = bottom_left[0] + (bottom_right[0] - bottom_left[0]) * x_frac
    bottom_y = bottom_left[1] + (bottom_right[1] - bottom_left[1]) * x_frac

    return (
        top_x + (bottom_x - top_x) * y_frac,
        top_y + (bottom_y - top_y) * y_frac,
    )


def average_color(
    image: np.ndarray,
    point: Point,
    sample_size: int = CELL_SAMPLE_SIZE,
) -> Optional[np.ndarray]:
    """
    Mean RGB color (0.0 - 1.0) of a square patch centered on a normalized point.

    The patch is clipped to the image. Returns None if nothing is left.
    """
    height, width = image.shape[:2]
    cx = point[0] * width
    cy = point[1] * height
    half = sample_size / 2

    x0 = max(int(round(cx - half)), 0)
    y0 = max(int(round(cy - half)), 0)
    x1 = min(int(round(cx + half)), width)
    y1 = min(int(round(cy + half)), height)

    patch = image[y0:y1, x0:x1]
    if patch.size == 0:
        return None

    rgb = cv2.cvtColor(patch, cv2.COLOR_BGR2RGB)
    return rgb.reshape(-1, 3).mean(axis=0) / 255.0


def identify_piece_by_color(rgb: Sequence[float]) -> int:
    """Guess a piece id from its dominant color. Uncalibrated."""
    red, green, blue = (float(v) for v in rgb)

    if red > green and red > blue:
        return 0  # red
    elif green > red and green > blue:
        return 1  # green
    elif blue > red and blue > green:
        return 2  # blue
    elif red > 0.5 and green > 0.5:
        return 3  # yellow
    elif red > 0.5 and blue > 0.5:
        return 4  # magenta
    elif green > 0.5 and blue > 0.5:
        return 5  # cyan
    elif red > 0.6 and green > 0.4:
        return 6  # orange
    elif red > 0.4 and green < 0.3 and blue > 0.3:
        return 7  # purple
    return 8


def classify_color(rgb: Sequence[float]) -> CellState:
    red, green, blue = (float(v) for v in rgb)
    brightness = (red + green + blue) / 3

    if brightness < get_color_threshold("blocker_brightness"):
        return BLOCKER

    channel = get_color_threshold("piece_channel")
    if red > channel or green > channel or blue > channel:
        return CellState.occupied(identify_piece_by_color((red, green, blue)))

    return EMPTY


def analyze_board(
    image: np.ndarray,
    corners: Sequence[Point],
    size: int = GRID_SIZE,
    sample_size: int = CELL_SAMPLE_SIZE,
) -> List[List[CellState]]:
    """
    Classify every cell of the board visible in a BGR frame.

    Returns an all-empty grid when the corners are not exactly four points.
    """
    if len(corners) != 4:
        logger.warning(f"Expected 4 board corners, got {len(corners)}; reporting empty board")
        return [[EMPTY] * size for _ in range(size)]

    grid: List[List[CellState]] = []
    for row in range(size):
        states = []
        for col in range(size):
            center = cell_center(row, col, corners, size)
            color = average_color(image, center, sample_size)
            states.append(EMPTY if color is None else classify_color(color))
        grid.append(states)

    n_blockers = sum(1 for states in grid for s in states if s.is_blocker)
    n_pieces = sum(1 for states in grid for s in states if s.is_piece)
    logger.debug(f"Classified frame: {n_blockers} blockers, {n_pieces} piece cells")
    return grid
