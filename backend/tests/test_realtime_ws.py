# backend/tests/test_realtime_ws.py

import pytest


def test_announce_over_websocket(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "user-connected", "data": "emp1"})

        assert ws.receive_json() == {"event": "users-updated", "data": {"user_id": "emp1", "status": "online"}}
        assert ws.receive_json() == {"event": "active-users-list", "data": ["emp1"]}

        ws.send_json({"event": "get-active-users"})
        assert ws.receive_json() == {"event": "active-users-list", "data": ["emp1"]}


def test_token_announces_user(client, employee):
    with client.websocket_connect(f"/ws?token={employee['token']}") as ws:
        assert ws.receive_json()["data"] == {"user_id": employee["id"], "status": "online"}
        assert ws.receive_json() == {"event": "active-users-list", "data": [employee["id"]]}


@pytest.mark.parametrize("raw,expected", [
    ("not json", "Malformed message"),
    ('{"event": "dance"}', "Unknown event: dance"),
])
def test_bad_messages_get_error_reply(client, raw, expected):
    with client.websocket_connect("/ws") as ws:
        ws.send_text(raw)
        assert ws.receive_json() == {"event": "error", "data": {"message": expected}}


def test_invalid_token_is_reported(client):
    with client.websocket_connect("/ws?token=garbage") as ws:
        assert ws.receive_json() == {"event": "error", "data": {"message": "Invalid token"}}


def test_anonymous_socket_cannot_relay_task_events(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "task-updated", "data": {"id": "t1", "title": "forged", "assignee_id": "emp1"}})
        assert ws.receive_json() == {"event": "error", "data": {"message": "Not authorized"}}


def test_admin_token_may_relay_task_events(client, admin):
    task = {"id": "t1", "title": "Audit", "assignee_id": admin["id"]}
    with client.websocket_connect(f"/ws?token={admin['token']}") as ws:
        ws.receive_json()
        ws.receive_json()

        ws.send_json({"event": "task-updated", "data": task})
        assert ws.receive_json() == {"event": "task-updated", "data": task}
        assert ws.receive_json()["event"] == "task-update-notification"
