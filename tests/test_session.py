from models import Mark, RestartRule, RoomStatus
from core.exceptions import StoreUnavailable
from core.room_manager import RoomManager
from core.session import SessionState
from core.sync_loop import RoomSyncFailed


def _host_and_guest(make_session):
    host = make_session("p1", "Alice")
    guest = make_session("p2", "Bob")
    host.create_room(is_public=True)
    host.pump()
    guest.join_room(host.room.code.lower())
    guest.pump()
    host.poller.poll_once()
    host.pump()
    return host, guest


def test_create_room_enters_lobby(make_session):
    host = make_session("p1", "Alice")
    assert host.create_room(is_public=False) is True
    assert host.busy is True

    host.pump()
    assert host.busy is False
    assert host.state == SessionState.LOBBY
    assert host.side == Mark.X
    assert host.room.status == RoomStatus.WAITING
    assert host.poller.running


def test_guest_join_moves_both_sides_into_game(make_session):
    host, guest = _host_and_guest(make_session)
    assert guest.state == SessionState.GAME
    assert guest.side == Mark.O
    assert host.state == SessionState.GAME
    assert host.room.player_o_name == "Bob"
    assert host.my_turn and not guest.my_turn


def test_join_unknown_room_shows_error(make_session):
    guest = make_session("p2", "Bob")
    guest.join_room("ZZZZ")
    guest.pump()
    assert guest.state == SessionState.MENU
    assert guest.error == "Room ZZZZ not found"


def test_only_one_mutation_at_a_time(make_session):
    host, guest = _host_and_guest(make_session)
    assert host.play(0) is True
    assert host.play(1) is False

    host.pump()
    assert host.room.board[0] == Mark.X
    assert host.room.turn == Mark.O


def test_input_disabled_outside_own_turn(make_session):
    host, guest = _host_and_guest(make_session)
    assert guest.play(0) is False
    host.play(4)
    host.pump()
    # guest has not polled yet, its cache still says X to move
    assert guest.play(0) is False

    guest.poller.poll_once()
    guest.pump()
    assert guest.play(4) is False
    assert guest.play(0) is True


def test_full_game_and_restart(make_session):
    host, guest = _host_and_guest(make_session)
    for player, cell in [(host, 0), (guest, 3), (host, 1), (guest, 4), (host, 2)]:
        player.poller.poll_once()
        player.pump()
        assert player.play(cell) is True
        player.pump()

    assert host.room.status == RoomStatus.FINISHED
    assert host.room.winner == Mark.X

    guest.poller.poll_once()
    guest.pump()
    assert guest.room.winning_line == [0, 1, 2]

    assert host.restart(RestartRule.WINNER_STARTS) is True
    host.pump()
    assert host.room.status == RoomStatus.PLAYING
    assert host.room.turn == Mark.X
    assert host.room.score_x == 1


def test_leave_discards_in_flight_results(make_session, store):
    host, guest = _host_and_guest(make_session)
    code = host.room.code
    host.play(0)
    # the move result is still queued when the host leaves
    assert host.leave() is True
    assert host.state == SessionState.MENU
    host.pump()
    assert host.room is None
    assert host.error is None
    assert store.get(code) is None


def test_host_leaving_sends_guest_back_to_menu(make_session, store):
    host, guest = _host_and_guest(make_session)
    code = host.room.code
    host.leave()
    host.pump()
    assert store.get(code) is None

    guest.poller.poll_once()
    guest.pump()
    assert guest.state == SessionState.MENU
    assert guest.room is None
    assert guest.error == f"Room {code} was closed"


def test_guest_leaving_returns_host_to_lobby(make_session, store):
    host, guest = _host_and_guest(make_session)
    guest.leave()
    guest.pump()
    assert guest.state == SessionState.MENU

    host.poller.poll_once()
    host.pump()
    assert host.state == SessionState.LOBBY
    assert host.room.player_o_id == ""


def test_stale_poll_after_leave_is_ignored(make_session):
    host, guest = _host_and_guest(make_session)
    old_poller = guest.poller
    guest.leave()
    # 已經停止的輪詢器不會再送出事件
    assert old_poller.poll_once() is False
    guest.pump()
    assert guest.state == SessionState.MENU


def test_sync_failure_is_transient(make_session):
    host, guest = _host_and_guest(make_session)
    host.events.put((host.generation, RoomSyncFailed(host.room.code, StoreUnavailable("timeout"))))
    host.pump()
    assert host.sync_error == "timeout"
    assert host.state == SessionState.GAME

    host.poller.poll_once()
    host.pump()
    assert host.sync_error is None


def test_public_room_listing(make_session, store):
    RoomManager.create_room(store, "AAAA", "p7", "Zed", True)
    RoomManager.create_room(store, "BBBB", "p8", "Yan", True)
    RoomManager.join_room(store, "AAAA", "p9", "Xia")
    RoomManager.create_room(store, "CCCC", "p6", "Wes", False)

    viewer = make_session("p1", "Alice")
    viewer.refresh_public_rooms()
    viewer.pump()
    assert [room.code for room in viewer.public_rooms] == ["AAAA", "BBBB"]
    # rooms that can still be joined come first
    assert [room.code for room in viewer.visible_public_rooms()] == ["BBBB", "AAAA"]
    assert [room.code for room in viewer.visible_public_rooms("zed")] == ["AAAA"]


def test_missing_participant_id_is_generated(make_session):
    session = make_session("", "Alice")
    assert session.participant_id.startswith("user_")


def test_restart_after_unseen_guest_leave_is_rejected(make_session, store):
    host, guest = _host_and_guest(make_session)
    for player, cell in [(host, 0), (guest, 3), (host, 1), (guest, 4), (host, 2)]:
        player.poller.poll_once()
        player.pump()
        player.play(cell)
        player.pump()
    code = host.room.code
    guest.leave()
    guest.pump()

    # 房主的快取還是 FINISHED
    assert host.restart() is True
    host.pump()
    assert host.error is not None
    room = store.get(code)
    assert room.status == RoomStatus.WAITING
    assert room.player_o_id == ""

    host.poller.poll_once()
    host.pump()
    assert host.state == SessionState.LOBBY
