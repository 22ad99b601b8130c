from __future__ import annotations

from django.test import TestCase


class ErrorViewTests(TestCase):
    def test_unknown_route_returns_json_envelope(self):
        response = self.client.get("/definitely-not-a-route/")
        self.assertEqual(response.status_code, 404)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error"]["message"], "Not found.")
