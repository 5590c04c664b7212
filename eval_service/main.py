"""
Board Evaluation Service
Exposes the tiling solver and observation scorer via FastAPI for the camera app
"""

import logging
import threading
import time
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

# Import solver modules from the repository root
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))
from board_evaluator import BoardEvaluator
from board_matcher import best_match, blockers_of, grid_to_observation, parse_board_ascii, render_board
from board_vision import analyze_board, decode_image, detect_board_corners
from genius_config import GRID_SIZE
from genius_pieces import CATALOG
from solve_genius import Tiling, find_all_tilings

logger = logging.getLogger(__name__)

app = FastAPI(title="Genius Square Evaluation Service", version="1.0.0")

# Enable CORS for mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Live camera session: caches tilings per blocker set and throttles frames.
# Handlers run in the threadpool, so access goes through the lock.
evaluator = BoardEvaluator(catalog=CATALOG, size=GRID_SIZE)
evaluator_lock = threading.Lock()


class SolveRequest(BaseModel):
    blockers: List[List[int]]  # [[row, col], ...]
    max_tilings: Optional[int] = None  # cap on tilings returned, not on the search


class PlacementModel(BaseModel):
    piece_id: int
    cells: List[List[int]]


class SolveResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    tiling_count: int = 0
    tilings: List[List[PlacementModel]] = []
    solve_ms: int = 0


class ScoreRequest(BaseModel):
    grid: List[str]  # board text rows: '.', '#', or piece digit


class ScoreResponse(BaseModel):
    success: bool
    error: Optional[str] = None

    correct_pieces: int = 0
    piece_count: int = 0
    tiling_count: int = 0
    best_tiling_index: Optional[int] = None
    matched_piece_ids: List[int] = []

    # Frame analysis (analyze-frame only)
    grid: List[str] = []
    corners: Optional[List[List[float]]] = None
    analyzed: bool = True  # False when the frame was throttled and the last score is repeated

    solve_ms: int = 0


class AnalyzeFrameRequest(BaseModel):
    image: str  # base64 encoded
    corners: Optional[List[List[float]]] = None  # normalized [x, y]: TL, TR, BR, BL; detected if omitted


def tiling_to_model(tiling: Tiling) -> List[PlacementModel]:
    return [
        PlacementModel(piece_id=p.piece_id, cells=[[r, c] for r, c in sorted(p.cells)])
        for p in tiling
    ]


def _score(observed, start: float) -> ScoreResponse:
    tilings = find_all_tilings(blockers_of(observed), catalog=CATALOG, size=GRID_SIZE)
    result = best_match(tilings, observed)
    return ScoreResponse(
        success=True,
        correct_pieces=result.correct,
        piece_count=len(CATALOG),
        tiling_count=len(tilings),
        best_tiling_index=result.tiling_index,
        matched_piece_ids=list(result.matched_piece_ids),
        solve_ms=int((time.time() - start) * 1000),
    )


@app.post("/solve", response_model=SolveResponse)
def solve(request: SolveRequest):
    """
    Enumerate every tiling for a blocker set.
    """
    start = time.time()

    try:
        tilings = find_all_tilings(
            [tuple(cell) for cell in request.blockers],
            catalog=CATALOG,
            size=GRID_SIZE,
        )
        shown = tilings if request.max_tilings is None else tilings[:max(request.max_tilings, 0)]

        return SolveResponse(
            success=True,
            tiling_count=len(tilings),
            tilings=[tiling_to_model(t) for t in shown],
            solve_ms=int((time.time() - start) * 1000),
        )

    except ValueError as e:
        return SolveResponse(
            success=False,
            error=str(e),
            solve_ms=int((time.time() - start) * 1000),
        )
    except Exception as e:
        logger.exception("Unexpected error in /solve")
        return SolveResponse(
            success=False,
            error=f"Unexpected error: {str(e)}",
            solve_ms=int((time.time() - start) * 1000),
        )


@app.post("/score", response_model=ScoreResponse)
def score(request: ScoreRequest):
    """
    Score a board given as text rows against all tilings for its blockers.
    """
    start = time.time()

    try:
        observed = parse_board_ascii("\n".join(request.grid), size=GRID_SIZE)
        return _score(observed, start)

    except ValueError as e:
        return ScoreResponse(
            success=False,
            error=str(e),
            solve_ms=int((time.time() - start) * 1000),
        )
    except Exception as e:
        logger.exception("Unexpected error in /score")
        return ScoreResponse(
            success=False,
            error=f"Unexpected error: {str(e)}",
            solve_ms=int((time.time() - start) * 1000),
        )


@app.post("/analyze-frame", response_model=ScoreResponse)
def analyze_frame(request: AnalyzeFrameRequest):
    """
    Classify a camera frame into cell states, then score it through the
    live session. Board corners are detected when the client sends none.
    Frames within the session's throttle interval are not analyzed; the
    previous score is returned with analyzed=False.
    """
    start = time.time()

    try:
        if request.corners is not None:
            if len(request.corners) != 4 or any(len(p) != 2 for p in request.corners):
                raise ValueError("corners must be four [x, y] points: TL, TR, BR, BL")
            corners = [tuple(p) for p in request.corners]
        else:
            corners = None

        img = decode_image(request.image)
        if corners is None:
            corners = detect_board_corners(img)
            if corners is None:
                raise ValueError("No board detected in frame")

        grid = analyze_board(img, corners, size=GRID_SIZE)
        observed = grid_to_observation(grid)

        with evaluator_lock:
            analyzed = evaluator.submit_frame(observed) is not None
            result = evaluator.last_match
            tiling_count = len(evaluator.tilings)
            piece_count = len(evaluator.catalog)

        return ScoreResponse(
            success=True,
            correct_pieces=result.correct,
            piece_count=piece_count,
            tiling_count=tiling_count,
            best_tiling_index=result.tiling_index,
            matched_piece_ids=list(result.matched_piece_ids),
            grid=render_board(observed, size=GRID_SIZE).split("\n"),
            corners=[[float(x), float(y)] for x, y in corners],
            analyzed=analyzed,
            solve_ms=int((time.time() - start) * 1000),
        )

    except ValueError as e:
        return ScoreResponse(
            success=False,
            error=str(e),
            solve_ms=int((time.time() - start) * 1000),
        )
    except Exception as e:
        logger.exception("Unexpected error in /analyze-frame")
        return ScoreResponse(
            success=False,
            error=f"Unexpected error: {str(e)}",
            solve_ms=int((time.time() - start) * 1000),
        )


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "genius-square-eval"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
