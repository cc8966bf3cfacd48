from datetime import datetime

NOTIFICATIONS = "/api/v1/notifications"
ITEMS = "/api/v1/agenda/items"


def create_timed(client, title="Unload container", due_time="14:30", offset=30, due_date="2025-03-10"):
    res = client.post(
        ITEMS,
        json={"title": title, "due_date": due_date, "due_time": due_time, "notification_offset": offset},
    )
    assert res.status_code == 201, res.text
    return res.json()


class TestPendingQueue:
    def test_empty_queue(self, client):
        assert client.get(f"{NOTIFICATIONS}/").json() == []
        res = client.get(f"{NOTIFICATIONS}/current")
        assert res.status_code == 200
        assert res.json() is None

    def test_item_created_inside_window_is_queued(self, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        item = create_timed(client)
        pending = client.get(f"{NOTIFICATIONS}/").json()
        assert [p["item"]["id"] for p in pending] == [item["id"]]
        assert pending[0]["fired_at"] == "2025-03-10T14:10:00"
        assert client.get(f"{NOTIFICATIONS}/current").json()["item"]["id"] == item["id"]

    def test_scan_endpoint(self, client, clock):
        item = create_timed(client)
        assert client.post(f"{NOTIFICATIONS}/scan").json() == []
        clock.set(datetime(2025, 3, 10, 14, 0))
        fired = client.post(f"{NOTIFICATIONS}/scan").json()
        assert [i["id"] for i in fired] == [item["id"]]
        assert client.post(f"{NOTIFICATIONS}/scan").json() == []

    def test_current_is_head_of_queue(self, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        first = create_timed(client, title="First")
        second = create_timed(client, title="Second", due_time="14:20")
        assert client.get(f"{NOTIFICATIONS}/current").json()["item"]["id"] == first["id"]
        client.post(f"{NOTIFICATIONS}/{first['id']}/dismiss")
        assert client.get(f"{NOTIFICATIONS}/current").json()["item"]["id"] == second["id"]


class TestResolution:
    def test_dismiss(self, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        item = create_timed(client)
        res = client.post(f"{NOTIFICATIONS}/{item['id']}/dismiss")
        assert res.status_code == 204
        assert client.get(f"{NOTIFICATIONS}/").json() == []
        # still inside the window, but already handled this session
        clock.set(datetime(2025, 3, 10, 14, 25))
        assert client.post(f"{NOTIFICATIONS}/scan").json() == []
        # the item itself is untouched
        assert client.get(f"{ITEMS}/{item['id']}").json()["is_completed"] is False
        assert client.post(f"{NOTIFICATIONS}/{item['id']}/dismiss").status_code == 404

    def test_complete(self, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        item = create_timed(client)
        res = client.post(f"{NOTIFICATIONS}/{item['id']}/complete")
        assert res.status_code == 200
        assert res.json()["is_completed"] is True
        assert client.get(f"{ITEMS}/{item['id']}").json()["is_completed"] is True
        assert client.get(f"{NOTIFICATIONS}/current").json() is None

    def test_complete_requires_pending_notification(self, client):
        item = create_timed(client)
        assert client.post(f"{NOTIFICATIONS}/{item['id']}/complete").status_code == 404

    def test_deleted_item_leaves_queue(self, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        item = create_timed(client)
        client.delete(f"{ITEMS}/{item['id']}")
        assert client.get(f"{NOTIFICATIONS}/").json() == []

    def test_restart_resurfaces_dismissed_reminder(self, app, client, clock):
        clock.set(datetime(2025, 3, 10, 14, 10))
        item = create_timed(client)
        client.post(f"{NOTIFICATIONS}/{item['id']}/dismiss")
        app.state.scheduler.reset()
        fired = client.post(f"{NOTIFICATIONS}/scan").json()
        assert [i["id"] for i in fired] == [item["id"]]
