# SPDX-License-Identifier: MIT

import unittest

from fastapi.testclient import TestClient

from fakes import FakeRuntime
from repin_app.main import create_app
from repin_app.settings import AppSettings
from repin_library.order_store import MemoryOrderStore


def make_client(desired=None, api_key=None, apply_on_start=False, windows=None):
    runtime = FakeRuntime()
    for window_id, entities in (windows or {1: []}).items():
        runtime.add_window(window_id, entities)
    store = MemoryOrderStore({"storedTabs": dict(desired or {})})
    settings = AppSettings(api_key=api_key, apply_on_start=apply_on_start)
    app = create_app(settings, runtime=runtime, store=store)
    return TestClient(app), runtime, store


class ApiTest(unittest.TestCase):
    def test_window_event_projects_pins(self):
        client, runtime, _ = make_client({"https://a": 1, "https://b": 2})
        with client:
            response = client.post(
                "/events?wait=true", json={"kind": "window_created", "window_id": 1}
            )
            self.assertEqual(response.status_code, 202)
            self.assertEqual(response.json(), {"accepted": True, "kind": "window_created"})

            status = client.get("/status").json()
            self.assertTrue(status["started"])
            self.assertEqual(
                sorted(status["protected"].values()), ["https://a", "https://b"]
            )
        self.assertEqual(len(runtime.windows[1]), 2)

    def test_unknown_event_is_rejected(self):
        client, _, _ = make_client()
        with client:
            response = client.post("/events", json={"kind": "tab_exploded"})
        self.assertEqual(response.status_code, 422)

    def test_apply_reports_projection(self):
        client, _, _ = make_client(
            {"https://a": 1}, windows={1: [("https://stray", True)]}
        )
        with client:
            body = client.post("/commands/apply").json()
        self.assertTrue(body["applied"])
        self.assertEqual(body["report"]["window_id"], 1)
        self.assertEqual(len(body["report"]["created"]), 1)
        self.assertEqual(len(body["report"]["unpinned"]), 1)

    def test_apply_with_empty_set_is_noop(self):
        client, runtime, _ = make_client({}, windows={1: [("https://kept", True)]})
        with client:
            body = client.post("/commands/apply").json()
        self.assertFalse(body["applied"])
        self.assertTrue(body["report"]["noop"])
        self.assertEqual(runtime.pinned_urls(1), ["https://kept"])

    def test_apply_on_start(self):
        client, runtime, _ = make_client({"https://a": 1}, apply_on_start=True)
        with client:
            pass
        self.assertIn(("create", 1, "https://a", True, False, 0), runtime.commands)

    def test_pins_listing_and_removal(self):
        client, _, store = make_client({"https://b": 2, "https://a": 1})
        with client:
            self.assertEqual(
                client.get("/pins").json(),
                [{"url": "https://a", "rank": 1}, {"url": "https://b", "rank": 2}],
            )
            response = client.request("DELETE", "/pins", json={"url": "https://a"})
            self.assertEqual(response.json(), {"url": "https://a", "removed": True})
            missing = client.request("DELETE", "/pins", json={"url": "https://zzz"})
            self.assertFalse(missing.json()["removed"])
            self.assertEqual(client.get("/pins").json(), [{"url": "https://b", "rank": 1}])

    def test_settings_round_trip(self):
        client, _, store = make_client()
        with client:
            self.assertEqual(client.get("/settings").json(), {"auto_track_pinned": False})
            response = client.put("/settings", json={"auto_track_pinned": True})
            self.assertEqual(response.json(), {"auto_track_pinned": True})
            self.assertEqual(client.get("/settings").json(), {"auto_track_pinned": True})

    def test_close_once_message_and_override_command(self):
        client, runtime, _ = make_client(
            {"https://a": 1},
            windows={1: [("https://a", True), ("https://b", True)]},
        )
        a_id, b_id = [e.id for e in runtime.windows[1]]
        with client:
            response = client.post(
                "/messages?wait=true", json={"type": "repin-close-once", "entity_id": a_id}
            )
            self.assertEqual(response.status_code, 202)

            response = client.post("/commands/allow-close-once", json={"entity_id": b_id})
            self.assertEqual(response.json(), {"entity_id": b_id, "override": True})
            status = client.get("/status").json()
        self.assertIn(("remove", (a_id,)), runtime.commands)
        self.assertIn(b_id, status["overrides"])

    def test_reset_to_origin_untracked(self):
        client, _, _ = make_client()
        with client:
            response = client.post("/commands/reset-to-origin", json={"entity_id": 42})
        self.assertEqual(response.json(), {"entity_id": 42, "reset": False})

    def test_api_key_is_enforced(self):
        client, _, _ = make_client(api_key="sekrit")
        with client:
            self.assertEqual(client.get("/pins").status_code, 401)
            self.assertEqual(
                client.get("/pins", headers={"X-Repin-Key": "wrong"}).status_code, 401
            )
            self.assertEqual(
                client.get("/pins", headers={"X-Repin-Key": "sekrit"}).status_code, 200
            )


if __name__ == "__main__":
    unittest.main()
