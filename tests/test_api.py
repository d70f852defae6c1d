"""HTTP tests for the wheel and admin blueprints."""

WHEEL = "/api/wheel/default-wheel"

TICKETED = [
    {"displayName": "Sam", "ticketNumber": "T1"},
    {"displayName": "Sam", "ticketNumber": "T2"},
    {"displayName": "Ali", "ticketNumber": "T3"},
]


def _spin_and_finish(client, clock, url=WHEEL):
    response = client.post(f"{url}/spin")
    assert response.status_code == 201
    clock.advance(1.0)
    response = client.post(f"{url}/spin/complete")
    assert response.status_code == 200
    return response.get_json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"


def test_metrics_endpoint(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert b"http_request_latency_seconds" in response.data


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_get_default_wheel_after_spin(client, clock):
    _spin_and_finish(client, clock)
    data = client.get(WHEEL).get_json()
    assert len(data["entries"]) == 8
    assert data["spinCount"] == 1
    assert "ticketToIndexMap" in data


def test_unknown_wheel_is_404(client):
    response = client.get("/api/wheel/nope")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_unknown_route_is_json_404(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.get_json()["error"]


def test_save_and_update_wheel(client):
    response = client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"]
    assert body["wheel"]["ticketToIndexMap"] == {"T1": 0, "T2": 1, "T3": 2}

    response = client.put("/api/wheel/w1", json={"entries": ["Zoe"]})
    assert response.get_json()["wheel"]["entries"] == [{"displayName": "Zoe", "ticketNumber": None}]


def test_save_wheel_rejects_bad_body(client):
    assert client.post("/api/wheel", json=["not", "an", "object"]).status_code == 400
    assert client.post("/api/wheel", json={"entries": []}).status_code == 400


def test_delete_wheel(client):
    client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    assert client.delete("/api/wheel/w1").get_json()["success"]
    assert client.get("/api/wheel/w1").status_code == 404


def test_second_spin_while_spinning_is_409(client):
    assert client.post(f"{WHEEL}/spin").status_code == 201
    response = client.post(f"{WHEEL}/spin")
    assert response.status_code == 409
    assert client.post(f"{WHEEL}/spin/complete").status_code == 409


def test_spin_complete_is_repeatable(client, clock):
    first = _spin_and_finish(client, clock)
    second = client.post(f"{WHEEL}/spin/complete").get_json()
    assert first["winner"] == second["winner"]
    assert first["spinNumber"] == 1


def test_rotation_endpoint(client, clock):
    data = client.get(f"{WHEEL}/rotation").get_json()
    assert data["state"] == "idle"

    _spin_and_finish(client, clock)
    data = client.get(f"{WHEEL}/rotation").get_json()
    assert data["state"] == "completed"
    assert data["winnerPending"]

    data = client.post(f"{WHEEL}/winner/dismiss").get_json()
    assert data["state"] == "idle"


def test_remove_winner(client, clock):
    winner = _spin_and_finish(client, clock)["winner"]
    response = client.post(f"{WHEEL}/winner/remove")
    assert response.status_code == 200
    assert response.get_json()["removed"]["displayName"] == winner["displayName"]
    assert len(client.get(WHEEL).get_json()["entries"]) == 7

    assert client.post(f"{WHEEL}/winner/remove").status_code == 404


def test_admin_routes_require_login(client):
    response = client.get("/admin/wheels/default-wheel/rigging")
    assert response.status_code == 401
    assert response.get_json()["error"]


def test_login_rejects_wrong_password(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401


def test_login_and_logout(admin_client):
    assert admin_client.get("/admin/me").get_json() == {"username": "admin"}
    assert admin_client.post("/admin/logout").status_code == 200
    assert admin_client.get("/admin/me").status_code == 401


def test_rigged_spin_through_api(admin_client, clock):
    admin_client.get(WHEEL)
    response = admin_client.put(
        "/admin/wheels/default-wheel/rigging/1", json={"displayName": "Diya"}
    )
    assert response.status_code == 200
    assert response.get_json()["mode"] == "fixed"

    spins = admin_client.get("/admin/wheels/default-wheel/rigging").get_json()["spins"]
    assert spins[0]["target"]["displayName"] == "Diya"

    result = _spin_and_finish(admin_client, clock)
    assert result["winner"]["displayName"] == "Diya"
    assert result["riggingStatus"] == "hit"

    winners = admin_client.get("/admin/wheels/default-wheel/winners").get_json()["winners"]
    assert [w["displayName"] for w in winners] == ["Diya"]


def test_rigging_ambiguous_name_is_rejected(admin_client):
    admin_client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    response = admin_client.put("/admin/wheels/w1/rigging/1", json={"displayName": "Sam"})
    assert response.status_code == 400


def test_spin_modes_round_trip(admin_client):
    admin_client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    response = admin_client.put(
        "/admin/wheels/w1/spin-modes", json={"spinModes": {"1": "fixed", "2": "random"}}
    )
    assert response.get_json() == {"spinModes": {"1": "fixed", "2": "random"}}
    assert admin_client.put("/admin/wheels/w1/spin-modes", json={"spinModes": []}).status_code == 400


def test_remove_entry_by_shared_name_conflicts(admin_client):
    admin_client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    response = admin_client.post("/admin/wheels/w1/entries/remove", json={"displayName": "Sam"})
    assert response.status_code == 409
    assert response.get_json()["occurrences"] == 2

    response = admin_client.post("/admin/wheels/w1/entries/remove", json={"ticketNumber": "T2"})
    assert response.get_json()["removed"] == {"displayName": "Sam", "ticketNumber": "T2"}

    ledger = admin_client.get("/admin/wheels/w1/removed-entries").get_json()["removedEntries"]
    assert [r["ticketNumber"] for r in ledger] == ["T2"]


def test_import_entries_skips_removed(admin_client):
    admin_client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    admin_client.post("/admin/wheels/w1/entries/remove", json={"ticketNumber": "T1"})

    response = admin_client.post(
        "/admin/wheels/w1/entries/import",
        json={"rows": [{"First Name": "Sam", "Ticket Number": "T1"}, {"First Name": "Zoe"}]},
    )
    entries = response.get_json()["wheel"]["entries"]
    assert [e["displayName"] for e in entries] == ["Zoe"]


def test_clear_winners_and_reset(admin_client, clock):
    _spin_and_finish(admin_client, clock)

    response = admin_client.delete("/admin/wheels/default-wheel/winners")
    assert response.get_json()["cleared"] == 1

    response = admin_client.post("/admin/wheels/default-wheel/reset")
    assert response.get_json()["wheel"]["spinCount"] == 0


def test_save_wheel_while_spinning_is_409(client):
    client.post("/api/wheel", json={"wheelId": "w1", "entries": TICKETED})
    assert client.post("/api/wheel/w1/spin").status_code == 201

    response = client.put("/api/wheel/w1", json={"entries": ["Zoe"]})
    assert response.status_code == 409
    assert len(client.get("/api/wheel/w1").get_json()["entries"]) == 3
