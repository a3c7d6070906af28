"""RuntimeState patching."""

import logging

from iotransit_cp.state import RuntimeState


def test_initial_fields():
    state = RuntimeState()
    assert state.connected is False
    assert state["sn"] == ""
    assert state["authenticated"] is False
    assert set(state) == {"connected", "authDevice", "authDomain", "authenticated", "sn", "s2"}


def test_patch_sets_fields_and_skips_cmd():
    state = RuntimeState()
    applied = state.apply_patch({"cmd": "setconfig", "sn": "XYZ", "newField": {"a": 1}})
    assert applied == {"sn": "XYZ", "newField": {"a": 1}}
    assert state["sn"] == "XYZ"
    assert state["newField"] == {"a": 1}
    assert "cmd" not in state


def test_patch_overwrites():
    state = RuntimeState()
    state.apply_patch({"sn": "1"})
    state.apply_patch({"sn": "2"})
    assert state["sn"] == "2"


def test_repeated_patch_converges():
    state = RuntimeState()
    patch = {"cmd": "setconfig", "sn": "XYZ", "s2": "abc"}
    state.apply_patch(patch)
    first = state.snapshot()
    for _ in range(3):
        state.apply_patch(patch)
    assert state.snapshot() == first


def test_connected_is_not_patchable(caplog):
    state = RuntimeState()
    with caplog.at_level(logging.WARNING, logger="iotransit_cp.state"):
        applied = state.apply_patch({"connected": True})
    assert applied == {}
    assert state.connected is False
    assert "connected" in caplog.text


def test_patchable_keys_whitelist():
    state = RuntimeState(patchable_keys=frozenset({"sn"}))
    state.apply_patch({"sn": "XYZ", "authenticated": True})
    assert state["sn"] == "XYZ"
    assert state["authenticated"] is False


def test_snapshot_is_a_copy():
    state = RuntimeState()
    snap = state.snapshot()
    snap["sn"] = "changed"
    assert state["sn"] == ""


def test_set_connected():
    state = RuntimeState()
    state.set_connected(True)
    assert state.connected is True
    assert state["connected"] is True
