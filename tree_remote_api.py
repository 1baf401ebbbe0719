# tree_remote_api.py
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import List, Optional
import logging
import uvicorn

import config
from board import (
    InvalidBoardError,
    Move,
    analyze_board,
    describe_move,
    empty_cells,
    place,
    validate_board,
)

logger = logging.getLogger(__name__)

app = FastAPI()


class BoardReq(BaseModel):
    board: str   # ".........", "X...O...."


class AnalysisResp(BaseModel):
    board: str
    winner: Optional[str]
    winning_line: List[int]
    is_terminal: bool
    is_draw: bool
    next_player: Optional[str]
    open_moves: int
    status: str


class ContinuationResp(BaseModel):
    player: str
    index: int
    board: str
    description: str


def _checked_board(raw: str) -> str:
    try:
        return validate_board(raw)
    except InvalidBoardError as e:
        logger.warning("plateau refusé: %s", e)
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/analyze", response_model=AnalysisResp)
def analyze(req: BoardReq):
    board = _checked_board(req.board)
    a = analyze_board(board)
    return AnalysisResp(
        board=board,
        winner=a.winner,
        winning_line=list(a.winning_line),
        is_terminal=a.is_terminal,
        is_draw=a.is_draw,
        next_player=a.next_player,
        open_moves=a.open_moves,
        status=a.status_text,
    )


@app.post("/moves", response_model=List[ContinuationResp])
def moves(req: BoardReq):
    board = _checked_board(req.board)
    a = analyze_board(board)
    if a.is_terminal:
        return []

    player = a.next_player
    return [
        ContinuationResp(
            player=player,
            index=i,
            board=place(board, i, player),
            description=describe_move(Move(player, i)),
        )
        for i in empty_cells(board)
    ]


if __name__ == "__main__":
    config.setup_logging()
    uvicorn.run(app, host=config.REMOTE_HOST, port=config.REMOTE_PORT)
