import itertools
import random

import pytest

from models import Mark, RestartRule
from core.exceptions import InvalidMove
from services.rules_service import (
    WINNING_LINES,
    apply_move,
    count_marks,
    detect_outcome,
    empty_board,
    next_turn,
    opening_turn,
)

X, O, _ = Mark.X, Mark.O, None


def test_apply_move_returns_new_board():
    board = empty_board()
    new_board = apply_move(board, 4, X)
    assert new_board[4] == X
    assert board[4] is None


@pytest.mark.parametrize("index", [-1, 9, 42])
def test_apply_move_rejects_out_of_range(index):
    with pytest.raises(InvalidMove):
        apply_move(empty_board(), index, X)


def test_apply_move_rejects_taken_cell():
    board = apply_move(empty_board(), 0, X)
    with pytest.raises(InvalidMove):
        apply_move(board, 0, O)


def test_malformed_board_is_a_programming_error():
    with pytest.raises(ValueError):
        detect_outcome([_] * 8)
    with pytest.raises(ValueError):
        apply_move([_] * 10, 0, X)


@pytest.mark.parametrize("line", WINNING_LINES)
@pytest.mark.parametrize("mark", [X, O])
def test_every_line_is_detected(line, mark):
    board = empty_board()
    for idx in line:
        board[idx] = mark
    outcome = detect_outcome(board)
    assert outcome.winner == mark
    assert outcome.line == list(line)
    assert outcome.is_draw is False


def test_double_line_reports_first_in_scan_order():
    board = [
        X, X, X,
        X, O, O,
        X, O, O,
    ]
    # row 0 and column 0 are both complete; rows come first
    assert detect_outcome(board).line == [0, 1, 2]


def test_full_board_without_line_is_draw():
    board = [
        X, O, X,
        X, O, O,
        O, X, X,
    ]
    outcome = detect_outcome(board)
    assert outcome.winner is None
    assert outcome.line == []
    assert outcome.is_draw is True


def test_in_progress_board_is_not_draw():
    outcome = detect_outcome(apply_move(empty_board(), 0, X))
    assert outcome == (None, [], False)


def test_no_winner_with_fewer_than_three_marks():
    for xs in itertools.combinations(range(9), 2):
        rest = [i for i in range(9) if i not in xs]
        for os_ in itertools.combinations(rest, 2):
            board = empty_board()
            for i in xs:
                board = apply_move(board, i, X)
            for i in os_:
                board = apply_move(board, i, O)
            assert count_marks(board, X) == 2
            assert detect_outcome(board).winner is None


def test_next_turn_flips():
    assert next_turn(X) == O
    assert next_turn(O) == X


def test_winner_starts_after_win():
    assert opening_turn(RestartRule.WINNER_STARTS, O) == O
    assert opening_turn(RestartRule.WINNER_STARTS, X) == X


def test_x_starts_after_draw():
    assert opening_turn(RestartRule.WINNER_STARTS, None) == X


def test_random_start_uses_rng():
    picks = {opening_turn(RestartRule.RANDOM, X, random.Random(seed)) for seed in range(50)}
    assert picks == {X, O}
