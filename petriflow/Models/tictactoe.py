"""
Tic-tac-toe move scoring on a continuous Petri net.

Layout (30 places, 34 transitions):

* ``P{r}{c}``: cell is empty; ``X{r}{c}`` / ``O{r}{c}``: cell holds a piece.
* ``Next``: turn token (0: X to move, 1: O to move).
* ``WinX`` / ``WinO``: accumulated win pressure.
* ``PlayX{r}{c}``: ``P`` -> ``X`` + ``Next``;
  ``PlayO{r}{c}``: ``Next`` + ``P`` -> ``O``.
* ``X{line}`` / ``O{line}`` for the 8 lines: read arcs on the three piece
  places, producing into ``WinX`` / ``WinO``.

With ``win_consumes_turn=True`` every win transition also consumes the
``Next`` token, which stops play once a line is detected.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from ..Analysis.heatmap import recommend, score_hypothetical_moves
from ..Net.core import Arc, Net, Place, Transition, build
from ..Net.rates import RatePolicy
from ..ODE.solver import FixedStep

Board = Sequence[Sequence[str]]
Cell = Tuple[int, int]

HORIZON = 2.0
DT = 0.2

WIN_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)
LINE_NAMES: Tuple[str, ...] = ("Row0", "Row1", "Row2", "Col0", "Col1", "Col2", "Dg0", "Dg1")

EMPTY_BOARD: Tuple[Tuple[str, ...], ...] = (("", "", ""),) * 3


def _cells() -> List[Cell]:
    return [(r, c) for r in range(3) for c in range(3)]


def _check_board(board: Board) -> None:
    if len(board) != 3 or any(len(row) != 3 for row in board):
        raise ValueError("Board must be 3x3.")
    for row in board:
        for v in row:
            if v not in ("", "X", "O"):
                raise ValueError(f"Invalid cell value {v!r}; expected '', 'X' or 'O'.")


def current_player(board: Board) -> str:
    """``"X"`` unless X has more pieces on the board."""
    _check_board(board)
    xs = sum(v == "X" for row in board for v in row)
    os_ = sum(v == "O" for row in board for v in row)
    return "O" if xs > os_ else "X"


def empty_cells(board: Board) -> List[Cell]:
    return [(r, c) for r, c in _cells() if board[r][c] == ""]


def build_tictactoe_net(
    board: Optional[Board] = None,
    player: str = "X",
    move: Optional[Cell] = None,
    *,
    win_consumes_turn: bool = False,
) -> Net:
    """
    Net for ``board`` after ``player`` hypothetically plays ``move``.

    :param board: 3x3 board of ``""``, ``"X"``, ``"O"``; empty if ``None``.
    :type board: Optional[Board]
    :param player: Player making the hypothetical move.
    :type player: str
    :param move: ``(row, col)`` of the hypothetical move, or ``None``.
    :type move: Optional[Cell]
    :param win_consumes_turn: Win transitions also consume ``Next``.
    :type win_consumes_turn: bool
    :rtype: Net
    :raises ValueError: On a malformed board, player, or occupied move.
    """
    board = EMPTY_BOARD if board is None else board
    _check_board(board)
    if player not in ("X", "O"):
        raise ValueError(f"Player must be 'X' or 'O', got {player!r}.")
    if move is not None and board[move[0]][move[1]] != "":
        raise ValueError(f"Cell {move} is already occupied.")

    def piece(r: int, c: int) -> str:
        if move == (r, c):
            return player
        return board[r][c]

    places: List[Place] = []
    for r, c in _cells():
        places.append(Place(f"P{r}{c}", 1.0 if piece(r, c) == "" else 0.0))
    for mark in ("X", "O"):
        for r, c in _cells():
            places.append(Place(f"{mark}{r}{c}", 1.0 if piece(r, c) == mark else 0.0))
    # after the hypothetical move it is the opponent's turn
    places.append(Place("Next", 1.0 if player == "X" else 0.0))
    places.append(Place("WinX", 0.0))
    places.append(Place("WinO", 0.0))

    transitions: List[Transition] = []
    arcs: List[Arc] = []
    for r, c in _cells():
        tid = f"PlayX{r}{c}"
        transitions.append(Transition(tid))
        arcs += [Arc(f"P{r}{c}", tid), Arc(tid, f"X{r}{c}"), Arc(tid, "Next")]
    for r, c in _cells():
        tid = f"PlayO{r}{c}"
        transitions.append(Transition(tid))
        arcs += [Arc("Next", tid), Arc(f"P{r}{c}", tid), Arc(tid, f"O{r}{c}")]

    for mark in ("X", "O"):
        for line, name in zip(WIN_LINES, LINE_NAMES):
            tid = f"{mark}{name}"
            transitions.append(Transition(tid))
            for idx in line:
                pid = f"{mark}{idx // 3}{idx % 3}"
                arcs += [Arc(pid, tid), Arc(tid, pid)]
            arcs.append(Arc(tid, f"Win{mark}"))
            if win_consumes_turn:
                arcs.append(Arc("Next", tid))

    return build(places, transitions, arcs)


def move_heatmap(
    board: Optional[Board] = None,
    *,
    horizon: float = HORIZON,
    dt: float = DT,
    win_consumes_turn: bool = False,
    parallel: bool = False,
    cancel=None,
) -> Dict[Cell, float]:
    """
    Score every cell from the current player's perspective.

    Each empty cell is scored as ``Win{me} - Win{them}`` at the end of the
    horizon after a hypothetical move there; occupied cells score ``0.0``.

    :returns: Mapping ``(row, col)`` -> score for all nine cells.
    :rtype: Dict[Cell, float]
    """
    board = EMPTY_BOARD if board is None else board
    player = current_player(board)
    other = "O" if player == "X" else "X"

    scores = score_hypothetical_moves(
        lambda cell: build_tictactoe_net(
            board, player, cell, win_consumes_turn=win_consumes_turn
        ),
        empty_cells(board),
        outcome=f"Win{player}",
        opponent=f"Win{other}",
        policy=RatePolicy.UNIFORM,
        time_span=(0.0, horizon),
        step=FixedStep(dt),
        parallel=parallel,
        cancel=cancel,
    )
    return {cell: scores.get(cell, 0.0) for cell in _cells()}


def best_move(board: Optional[Board] = None, **kwargs) -> Optional[Cell]:
    """Empty cell with the highest heatmap score (``None`` on a full board)."""
    board = EMPTY_BOARD if board is None else board
    return recommend(move_heatmap(board, **kwargs), eligible=set(empty_cells(board)))
