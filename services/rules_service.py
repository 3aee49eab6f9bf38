"""
規則服務：井字遊戲的規則引擎

純計算邏輯，不涉及 I/O 也不保存狀態：
- 落子
- 判斷勝負 / 平手
- 計算下一手
"""
import random
from typing import List, NamedTuple, Optional, Sequence, Tuple

from models import Mark, RestartRule
from core.exceptions import InvalidMove

Board = List[Optional[Mark]]

# 掃描順序固定：橫列（上到下）、直行（左到右）、兩條對角線
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),
    (0, 3, 6), (1, 4, 7), (2, 5, 8),
    (0, 4, 8), (2, 4, 6),
)


class Outcome(NamedTuple):
    winner: Optional[Mark]
    line: List[int]
    is_draw: bool


def _check_board(board: Sequence[Optional[Mark]]) -> None:
    if len(board) != 9:
        raise ValueError(f"Board must have 9 cells, got {len(board)}")


def empty_board() -> Board:
    return [None] * 9


def count_marks(board: Sequence[Optional[Mark]], mark: Mark) -> int:
    return sum(1 for cell in board if cell == mark)


def apply_move(board: Sequence[Optional[Mark]], index: int, mark: Mark) -> Board:
    """
    在 index 落下 mark，返回新的棋盤（不修改原棋盤）

    異常：
        InvalidMove: index 超出 0-8，或格子不是空的
        ValueError: 棋盤長度不是 9（程式錯誤）
    """
    _check_board(board)
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < 9:
        raise InvalidMove(f"Cell index {index!r} is out of range")
    if board[index] is not None:
        raise InvalidMove(f"Cell {index} is already taken by {board[index].value}")

    new_board = list(board)
    new_board[index] = mark
    return new_board


def detect_outcome(board: Sequence[Optional[Mark]]) -> Outcome:
    """
    判斷棋盤結果

    規則：
    - 依固定順序掃描 8 條線，回報第一條三格相同的線
    - 同一手完成兩條線時，只回報掃描順序中的第一條
    - 沒有贏家且沒有空格 => 平手

    範例：
        detect_outcome([X, X, X, O, O, None, None, None, None])
        -> Outcome(winner=Mark.X, line=[0, 1, 2], is_draw=False)
    """
    _check_board(board)
    for a, b, c in WINNING_LINES:
        if board[a] is not None and board[a] == board[b] == board[c]:
            return Outcome(winner=board[a], line=[a, b, c], is_draw=False)

    is_full = all(cell is not None for cell in board)
    return Outcome(winner=None, line=[], is_draw=is_full)


def next_turn(current: Mark) -> Mark:
    return Mark.O if current == Mark.X else Mark.X


def opening_turn(rule: RestartRule, prev_winner: Optional[Mark], rng: random.Random = None) -> Mark:
    """
    再來一局時決定先手

    規則：
    - WINNER_STARTS：上一局贏家先手；平手（prev_winner=None）時 X 先手
    - RANDOM：隨機
    """
    if rule == RestartRule.RANDOM:
        return (rng or random).choice([Mark.X, Mark.O])
    return prev_winner or Mark.X
