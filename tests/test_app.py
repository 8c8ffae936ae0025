"""
End-to-end tests through the FastAPI app: HTTP routes and the /ws channel.
"""

from app import create_app


def drain_join(ws):
    """Read the welcome notice and the first state a new socket receives."""
    welcome = ws.receive_json()
    state = ws.receive_json()
    assert welcome["type"] == "message"
    assert state["type"] == "state"
    return welcome, state


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_catch_all_serves_document(client):
    res = client.get("/some/deep/link")
    assert res.status_code == 200
    assert "text/html" in res.headers["content-type"]


def test_static_assets_are_served(client):
    res = client.get("/assets/app.js")
    assert res.status_code == 200
    assert "WebSocket" in res.text


def test_catch_all_without_static_dir(tmp_path):
    from fastapi.testclient import TestClient

    app = create_app(static_dir=str(tmp_path))
    with TestClient(app) as c:
        res = c.get("/")
    assert res.status_code == 200
    assert "Connect to /ws" in res.text


def test_rooms_empty(client):
    assert client.get("/rooms").json() == []


def test_rooms_listing_with_trailing_slash(client):
    res = client.get("/rooms/")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/json")
    assert res.json() == []

    with client.websocket_connect("/ws?room=alpha&name=Ann") as ann:
        drain_join(ann)
        assert [r["room_id"] for r in client.get("/rooms/").json()] == ["alpha"]


def test_room_key_that_cleans_to_nothing_is_404(client):
    with client.websocket_connect("/ws?name=Ann") as ann:
        drain_join(ann)
        assert client.get("/rooms/lobby").status_code == 200
        res = client.get("/rooms/!!!")
        assert res.status_code == 404
        assert res.json() == {"detail": "Room not found"}


def test_unknown_room_is_404_and_not_created(client, server_app):
    res = client.get("/rooms/nowhere")
    assert res.status_code == 404
    assert "nowhere" not in server_app.state.registry


def test_two_players_and_spectator_over_websocket(client):
    with client.websocket_connect("/ws?room=alpha&name=Ann") as ann:
        welcome, state = drain_join(ann)
        assert welcome["text"] == "Joined alpha as ODD player."
        assert state["youAre"] == "odd"

        with client.websocket_connect("/ws?room=alpha&name=Bob") as bob:
            welcome, state = drain_join(bob)
            assert welcome["text"] == "Joined alpha as EVEN player."
            assert state["players"] == {"odd": "Ann", "even": "Bob"}
            assert ann.receive_json()["players"]["even"] == "Bob"

            with client.websocket_connect("/ws?room=alpha&name=Cid") as cid:
                welcome, state = drain_join(cid)
                assert welcome["text"].startswith("Joined alpha as Spectator")
                assert state["spectatorCount"] == 1
                ann.receive_json()
                bob.receive_json()

                ann.send_json({"type": "increment", "row": 0, "col": 0})
                for ws, role in ((ann, "odd"), (bob, "even"), (cid, "spectator")):
                    update = ws.receive_json()
                    assert update["board"][0][0] == 1
                    assert update["youAre"] == role

                listing = client.get("/rooms").json()
                assert listing == [
                    {
                        "room_id": "alpha",
                        "players": {"odd": "Ann", "even": "Bob"},
                        "spectatorCount": 1,
                        "gameOver": False,
                        "winner": None,
                        "connected": 3,
                    }
                ]
                details = client.get("/rooms/alpha").json()
                assert details["board"][0][0] == 1
                assert details["created_at"]


def test_full_game_over_websocket(client):
    with client.websocket_connect("/ws?room=duel&name=Ann") as ann:
        drain_join(ann)
        with client.websocket_connect("/ws?room=duel&name=Bob") as bob:
            drain_join(bob)
            ann.receive_json()

            for col, sender in enumerate((ann, bob, ann, bob, ann)):
                sender.send_json({"type": "increment", "row": 0, "col": col})
                last_ann = ann.receive_json()
                bob.receive_json()
            assert last_ann["gameOver"] is True
            assert last_ann["winner"] == "odd"

            bob.send_json({"type": "increment", "row": 4, "col": 4})
            assert bob.receive_json() == {
                "type": "message",
                "text": "Game is over. Press Restart to begin a new round.",
            }

            bob.send_json({"type": "restart"})
            fresh = ann.receive_json()
            assert fresh["gameOver"] is False
            assert fresh["winner"] is None
            assert bob.receive_json()["board"][0] == [0, 0, 0, 0, 0]


def test_malformed_frames_are_ignored(client):
    with client.websocket_connect("/ws?room=noise&name=Ann") as ann:
        drain_join(ann)
        ann.send_text("not json")
        ann.send_json({"type": "increment", "row": "0", "col": 0})
        ann.send_json({"type": "explode"})
        ann.send_json({"type": "increment", "row": 1, "col": 1})
        # First thing back is the state from the one valid command
        update = ann.receive_json()
        assert update["type"] == "state"
        assert update["board"][1][1] == 1
        assert sum(sum(row) for row in update["board"]) == 1


def test_binary_frames_are_handled_like_text(client, server_app):
    with client.websocket_connect("/ws?room=bin&name=Ann") as ann:
        drain_join(ann)
        with client.websocket_connect("/ws?room=bin&name=Bob") as bob:
            drain_join(bob)
            ann.receive_json()
            with client.websocket_connect("/ws?room=bin&name=Cid") as cid:
                drain_join(cid)
                ann.receive_json()
                bob.receive_json()

                ann.send_bytes(b"\xff\x00 not json")
                ann.send_bytes(b'{"type": "increment", "row": 0, "col": 0}')

                # Ann still holds the odd seat, so the spectator sees a move and no promotion
                update = cid.receive_json()
                assert update["type"] == "state"
                assert update["board"][0][0] == 1
                assert update["players"] == {"odd": "Ann", "even": "Bob"}
                assert update["youAre"] == "spectator"
                assert ann.receive_json()["board"][0][0] == 1
                assert server_app.state.gateway.connection_count("bin") == 3


def test_promotion_notice_over_websocket(client):
    with client.websocket_connect("/ws?room=seat&name=Ann") as ann:
        drain_join(ann)
        with client.websocket_connect("/ws?room=seat&name=Bob") as bob:
            drain_join(bob)
            ann.receive_json()
            with client.websocket_connect("/ws?room=seat&name=Cid") as cid:
                drain_join(cid)
                bob.receive_json()
                ann.close()

                assert cid.receive_json() == {"type": "message", "text": "Cid is now ODD player."}
                state = cid.receive_json()
                assert state["youAre"] == "odd"
                assert state["players"] == {"odd": "Cid", "even": "Bob"}
                assert bob.receive_json()["text"] == "Cid is now ODD player."


def test_name_and_room_are_sanitised(client):
    with client.websocket_connect("/ws?room=%3Cb%3Ehall&name=%20%20") as ws:
        welcome, state = drain_join(ws)
        assert welcome["text"] == "Joined bhall as ODD player."
        assert state["players"]["odd"].startswith("Guest-")


def test_default_lobby(client):
    with client.websocket_connect("/ws") as ws:
        welcome, _state = drain_join(ws)
        assert welcome["text"] == "Joined lobby as ODD player."


def test_entrypoint_enables_transport_ping(monkeypatch):
    import entrypoint

    calls = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    entrypoint.main()

    (args, kwargs), = calls
    assert args == ("app:app",)
    assert kwargs["ws_ping_interval"] == 30
    assert kwargs["ws_ping_timeout"] == 30
