import pytest

from frontdesk.navigation import (
    CheckInCompleted,
    CheckoutCancelled,
    CheckoutConfirmed,
    Navigate,
    NavigationState,
    RoomReopened,
    Screen,
    SelectRoom,
    StartCheckIn,
    StartCheckout,
    action_from_payload,
    reduce,
    resolve,
)


def test_initial_state_is_home():
    assert NavigationState().screen == Screen.HOME
    assert NavigationState.from_dict({"screen": "nowhere"}).screen == Screen.HOME


def test_check_in_flow():
    state = reduce(NavigationState(), StartCheckIn(room_number="101"))
    assert (state.screen, state.check_in_room_number) == (Screen.REGISTER_ROOM, "101")

    state = reduce(state, CheckInCompleted())
    assert (state.screen, state.check_in_room_number) == (Screen.CHECK_ROOM, None)


def test_checkout_flow():
    state = reduce(NavigationState(), SelectRoom(room_id="room_1"))
    state = reduce(state, StartCheckout(room_id="room_1"))
    assert (state.screen, state.checkout_room_id) == (Screen.CHECKOUT, "room_1")

    cancelled = reduce(state, CheckoutCancelled())
    assert (cancelled.screen, cancelled.selected_room_id, cancelled.checkout_room_id) == (
        Screen.ROOM_DETAIL,
        "room_1",
        None,
    )

    confirmed = reduce(state, CheckoutConfirmed())
    assert (confirmed.screen, confirmed.selected_room_id, confirmed.checkout_room_id) == (Screen.HISTORY, None, None)


def test_reopen_selects_room():
    state = reduce(NavigationState(screen=Screen.HISTORY), RoomReopened(room_id="room_9"))
    assert (state.screen, state.selected_room_id) == (Screen.ROOM_DETAIL, "room_9")


def test_navigate_rejects_unknown_screen():
    with pytest.raises(ValueError):
        reduce(NavigationState(), Navigate(screen="settings"))


def test_reduce_does_not_mutate_state():
    state = NavigationState()
    reduce(state, Navigate(screen=Screen.HISTORY))
    assert state == NavigationState()


@pytest.mark.parametrize(
    "state",
    [
        NavigationState(screen=Screen.ROOM_DETAIL, selected_room_id="room_gone"),
        NavigationState(screen=Screen.CHECKOUT, checkout_room_id="room_gone"),
        NavigationState(screen=Screen.REGISTER_ROOM, check_in_room_number="101"),
        NavigationState(screen=Screen.ROOM_DETAIL),
    ],
)
def test_resolve_falls_back_to_board(state):
    resolved = resolve(state, active_room_ids=["room_1"], available_room_numbers=["102"])
    assert resolved.screen == Screen.CHECK_ROOM


def test_resolve_keeps_valid_selection():
    state = NavigationState(screen=Screen.ROOM_DETAIL, selected_room_id="room_1")
    assert resolve(state, active_room_ids=["room_1"], available_room_numbers=[]) == state


def test_action_from_payload():
    assert action_from_payload({"action": "select_room", "roomId": "room_1"}) == SelectRoom(room_id="room_1")
    with pytest.raises(ValueError):
        action_from_payload({"action": "select_room"})
    with pytest.raises(ValueError):
        action_from_payload({"action": ["navigate"]})
