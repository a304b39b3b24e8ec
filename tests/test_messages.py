import asyncio
import json

import pytest
from starlette.websockets import WebSocketDisconnect

from partner_app.core.config import settings
from partner_app.services import chat

MESSAGES = f"{settings.API_V1_STR}/messages"


@pytest.fixture
def pair(session, make_user):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    alice.partner_id = bob.id
    bob.partner_id = alice.id
    session.add(alice)
    session.add(bob)
    session.commit()
    return alice, bob


def post(client, sender, receiver, text, auth_headers, **extra):
    return client.post(
        f"{MESSAGES}/",
        headers=auth_headers(sender),
        json={"receiver_id": receiver.id, "message": text, **extra},
    )


def test_send_and_read_conversation(client, pair, make_user, auth_headers):
    alice, bob = pair
    carol = make_user("carol@example.com")

    resp = post(client, alice, bob, "  morning run done  ", auth_headers, type="update")
    assert resp.status_code == 201
    assert resp.json()["message"] == "morning run done"
    assert resp.json()["type"] == "update"
    assert resp.json()["sender_name"] == "Alice"

    post(client, bob, alice, "nice!", auth_headers)
    post(client, carol, alice, "hi alice", auth_headers)

    resp = client.get(f"{MESSAGES}/{bob.id}", headers=auth_headers(alice))
    assert resp.status_code == 200
    assert [m["message"] for m in resp.json()["messages"]] == ["morning run done", "nice!"]

    resp = client.get(f"{MESSAGES}/{alice.id}", headers=auth_headers(carol))
    assert [m["message"] for m in resp.json()["messages"]] == ["hi alice"]


def test_send_message_errors(client, pair, auth_headers):
    alice, bob = pair

    resp = post(client, alice, bob, "   ", auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"

    resp = post(client, alice, alice, "talking to myself", auth_headers)
    assert resp.status_code == 400

    resp = client.post(
        f"{MESSAGES}/", headers=auth_headers(alice), json={"receiver_id": "missing", "message": "hi"}
    )
    assert resp.status_code == 404

    resp = post(client, alice, bob, "x" * 1001, auth_headers)
    assert resp.status_code == 422


def test_conversations_list_partner_first(client, pair, make_user, auth_headers):
    alice, bob = pair
    aaron = make_user("aaron@example.com")
    post(client, aaron, alice, "hey", auth_headers)

    resp = client.get(f"{MESSAGES}/conversations", headers=auth_headers(alice))
    assert resp.status_code == 200
    partners = resp.json()["partners"]
    assert [p["id"] for p in partners] == [bob.id, aaron.id]
    assert partners[0]["is_partner"] is True
    assert partners[1]["is_partner"] is False


def test_only_sender_can_delete(client, pair, auth_headers):
    alice, bob = pair
    message_id = post(client, alice, bob, "oops", auth_headers).json()["id"]

    resp = client.delete(f"{MESSAGES}/{message_id}", headers=auth_headers(bob))
    assert resp.status_code == 404

    resp = client.delete(f"{MESSAGES}/{message_id}", headers=auth_headers(alice))
    assert resp.status_code == 200

    resp = client.get(f"{MESSAGES}/{bob.id}", headers=auth_headers(alice))
    assert resp.json()["messages"] == []


def test_websocket_history_and_live_messages(client, pair, auth_headers):
    alice, bob = pair
    post(client, bob, alice, "earlier", auth_headers)
    token = auth_headers(alice)["Authorization"].split(" ", 1)[1]

    with client.websocket_connect(f"{MESSAGES}/ws/{bob.id}?token={token}") as ws:
        history = ws.receive_json()
        assert history["type"] == "history"
        assert [m["message"] for m in history["messages"]] == ["earlier"]
        assert chat.hub.subscribers(chat.conversation_key(alice.id, bob.id)) == 1

        ws.send_text(json.dumps({"message": "hello bob"}))
        frame = ws.receive_json()
        assert frame["type"] == "message"
        assert frame["message"] == "hello bob"
        assert frame["sender_id"] == alice.id
        assert frame["receiver_id"] == bob.id

        ws.send_text(json.dumps({"message": ""}))
        assert ws.receive_json()["type"] == "error"

    resp = client.get(f"{MESSAGES}/{alice.id}", headers=auth_headers(bob))
    assert [m["message"] for m in resp.json()["messages"]] == ["earlier", "hello bob"]


def test_websocket_rejects_bad_token(client, pair):
    _, bob = pair
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{MESSAGES}/ws/{bob.id}?token=garbage"):
            pass
    assert exc.value.code == 1008


def test_websocket_rejects_unknown_peer(client, pair, auth_headers):
    alice, _ = pair
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{MESSAGES}/ws/missing", headers=auth_headers(alice)):
            pass
    assert exc.value.code == 1008


def test_websocket_reports_blank_message(client, pair, auth_headers):
    alice, bob = pair
    with client.websocket_connect(f"{MESSAGES}/ws/{bob.id}", headers=auth_headers(alice)) as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"message": "   "}))
        frame = ws.receive_json()
        assert frame["type"] == "error"
        assert frame["code"] == "validation_error"


def test_closing_socket_releases_subscription(client, pair, auth_headers):
    alice, bob = pair
    key = chat.conversation_key(alice.id, bob.id)

    with client.websocket_connect(f"{MESSAGES}/ws/{bob.id}", headers=auth_headers(alice)) as ws:
        ws.receive_json()
        assert chat.hub.subscribers(key) == 1

    assert chat.hub.subscribers(key) == 0
    assert key not in chat.hub.active


def test_message_is_stored_off_the_event_loop(client, pair, auth_headers, monkeypatch):
    alice, bob = pair
    threads = []
    send_message = chat.send_message

    def recording_send_message(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            threads.append("event-loop")
        except RuntimeError:
            threads.append("worker")
        return send_message(*args, **kwargs)

    monkeypatch.setattr(chat, "send_message", recording_send_message)
    assert post(client, alice, bob, "hi", auth_headers).status_code == 201
    assert threads == ["worker"]
