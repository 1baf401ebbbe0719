# board.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

# board: chaîne de 9 cases, "." = vide, "X" / "O" = marques

EMPTY = "."
PLAYERS = ("X", "O")
CELLS = (EMPTY,) + PLAYERS
EMPTY_BOARD = EMPTY * 9

# ordre fixe : lignes, colonnes, diagonales (départage des plateaux impossibles)
WINS: List[Tuple[int, int, int]] = [
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
]

BoardLike = Union[str, Iterable[str]]


class InvalidBoardError(ValueError):
    pass


@dataclass(frozen=True)
class Move:
    player: str
    index: int

    @property
    def row(self) -> int:
        return self.index // 3 + 1

    @property
    def col(self) -> int:
        return self.index % 3 + 1


@dataclass(frozen=True)
class Analysis:
    winner: Optional[str]
    winning_line: Tuple[int, ...]
    is_terminal: bool
    is_draw: bool
    next_player: Optional[str]
    open_moves: int
    status_text: str


def validate_board(board: BoardLike) -> str:
    """
    Normalise un plateau (chaîne ou séquence de 9 cases) en chaîne.
    Lève InvalidBoardError si la longueur ou une case est invalide.
    """
    if board is None:
        raise InvalidBoardError("Plateau manquant")
    if not isinstance(board, str):
        try:
            cells = list(board)
        except TypeError:
            raise InvalidBoardError(f"Plateau illisible: {board!r}") from None
        if not all(isinstance(c, str) for c in cells):
            raise InvalidBoardError(f"Cases non textuelles: {cells!r}")
        board = "".join(cells)

    if len(board) != 9:
        raise InvalidBoardError(f"Le plateau doit avoir 9 cases, reçu {len(board)}: {board!r}")
    for i, c in enumerate(board):
        if c not in CELLS:
            raise InvalidBoardError(f"Case {i} invalide: {c!r} (attendu '.', 'X' ou 'O')")
    return board


def check_winner(board: str) -> Tuple[Optional[str], Tuple[int, ...]]:
    for line in WINS:
        a, b, c = line
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a], line
    return None, ()


def empty_cells(board: str) -> List[int]:
    return [i for i, c in enumerate(board) if c == EMPTY]


def place(board: str, index: int, player: str) -> str:
    return board[:index] + player + board[index + 1:]


def status_text(winner: Optional[str], is_draw: bool, next_player: Optional[str], open_moves: int) -> str:
    if winner:
        return f"{winner} wins"
    if is_draw:
        return "Draw"
    plural = "" if open_moves == 1 else "s"
    return f"{next_player} to move — {open_moves} open move{plural}"


def analyze_board(board: str) -> Analysis:
    """
    Analyse pure d'un plateau déjà validé : gagnant, fin de partie,
    joueur suivant (X joue quand le nombre de cases remplies est pair).
    """
    winner, line = check_winner(board)
    filled = sum(1 for c in board if c != EMPTY)
    open_moves = 9 - filled
    is_terminal = winner is not None or filled == 9
    is_draw = is_terminal and winner is None
    next_player = None if is_terminal else ("X" if filled % 2 == 0 else "O")

    return Analysis(
        winner=winner,
        winning_line=line,
        is_terminal=is_terminal,
        is_draw=is_draw,
        next_player=next_player,
        open_moves=open_moves,
        status_text=status_text(winner, is_draw, next_player, open_moves),
    )


def node_label(analysis: Analysis) -> str:
    if analysis.is_terminal:
        return f"{analysis.winner} wins" if analysis.winner else "Draw"
    return f"{analysis.next_player} to move"


def describe_move(move: Optional[Move]) -> str:
    if move is None:
        return ""
    return f"{move.player} → row {move.row}, col {move.col}"
