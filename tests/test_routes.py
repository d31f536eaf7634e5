"""
Tests for the FastAPI routes and the development proxy.
"""
import json
import unittest
import sys
import os

import httplib2
import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from api.dependencies import get_adapter
from api.proxy import build_proxy_router
from config import Config
from main import create_app
from services.adapter import PlaylistAdapter
from services.internal_api import InternalApiClient
from services.official_api import OfficialApiClient

SESSION_BLOCK = "authorization: SAPISIDHASH 1700000000_abcdef\ncookie: SID=abc\n"
BEARER_BLOCK = "authorization: Bearer ya29.token\ncookie: SID=abc\n"


class ScriptedHttp:
    """httplib2-compatible transport replaying canned (status, body) pairs."""

    def __init__(self):
        self.responses = []
        self.follow_redirects = True

    def request(self, uri, method="GET", body=None, headers=None, redirections=5, connection_type=None):
        status, payload = self.responses.pop(0)
        return httplib2.Response({"status": str(status)}), json.dumps(payload).encode("utf-8")


class RouteTestCase(unittest.TestCase):
    """Runs the app with an adapter whose backends are scripted."""

    def setUp(self):
        self.settings = Config(load_from_env=False)
        self.upstream_requests = []
        self.upstream_responses = []

        def handle(request):
            self.upstream_requests.append(request)
            return self.upstream_responses.pop(0)

        self.http = ScriptedHttp()
        self.adapter = PlaylistAdapter(
            official=OfficialApiClient(self.settings, http_factory=lambda: self.http),
            internal=InternalApiClient(self.settings, transport=httpx.MockTransport(handle)),
            settings=self.settings,
        )
        self.app = create_app(self.settings)
        self.app.dependency_overrides[get_adapter] = lambda: self.adapter
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)


class TestServiceRoutes(RouteTestCase):
    """Test cases for the public endpoints."""

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["config"]["header_delivery"], "direct")
        self.assertIn("total_requests", data["statistics"])
        self.assertEqual(response.headers["Cache-Control"], "no-store")

    def test_inspect_headers(self):
        response = self.client.post("/headers/inspect", json={"headers": "authorization: SAPISIDHASH 1_a\nbogus line"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["backend"], "internal")
        self.assertEqual(data["header_names"], ["Authorization"])
        self.assertEqual(data["missing_required"], ["Cookie"])
        self.assertEqual(data["parse_errors"], ['Line 2: Missing ":" separator.'])
        self.assertFalse(data["ready"])
        self.assertEqual(self.upstream_requests, [])

    def test_inspect_ready_headers(self):
        response = self.client.post("/headers/inspect", json={"headers": {"Authorization": "Bearer t"}})
        data = response.json()
        self.assertEqual(data["backend"], "official")
        self.assertTrue(data["ready"])

    def test_empty_headers_rejected(self):
        response = self.client.post("/headers/inspect", json={"headers": "   "})
        self.assertEqual(response.status_code, 422)

    def test_list_playlists(self):
        self.upstream_responses.append(httpx.Response(200, json={"contents": [
            {"playlistRenderer": {"playlistId": "PL9", "title": {"simpleText": "Road trip"}, "videoCount": "12"}},
        ]}))
        response = self.client.post("/playlists", json={"headers": SESSION_BLOCK})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["backend"], "internal")
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["playlists"][0]["id"], "PL9")
        self.assertEqual(data["playlists"][0]["item_count"], 12)

    def test_list_playlists_reports_fallback_backend(self):
        self.http.responses.append((403, {"error": {"message": "Insufficient Permission"}}))
        self.upstream_responses.append(httpx.Response(200, json={"contents": [
            {"playlistRenderer": {"playlistId": "PL1"}},
        ]}))
        response = self.client.post("/playlists", json={"headers": BEARER_BLOCK})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["backend"], "internal")
        self.assertEqual([p["id"] for p in data["playlists"]], ["PL1"])

    def test_list_playlists_invalid_headers(self):
        response = self.client.post("/playlists", json={"headers": {"Authorization": "SAPISIDHASH 1_a"}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.headers["X-Error-Code"], "INVALID_HEADERS")
        self.assertEqual(response.json()["detail"], "Missing required header: Cookie")

    def test_list_playlists_upstream_error(self):
        self.upstream_responses.append(httpx.Response(401, json={"error": {"message": "Unauthorized"}}))
        response = self.client.post("/playlists", json={"headers": SESSION_BLOCK})
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.headers["X-Error-Code"], "UPSTREAM_ERROR")
        self.assertIn("(401)", response.json()["detail"])

    def test_delete_playlists(self):
        self.upstream_responses.extend([
            httpx.Response(200, json={}),
            httpx.Response(404, json={"error": {"message": "Not found"}}),
        ])
        response = self.client.post("/playlists/delete", json={
            "headers": SESSION_BLOCK,
            "playlist_ids": ["PL1", " PL2 ", "PL1", "PL3"],
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "failed")
        self.assertEqual(data["total"], 3)
        self.assertEqual(data["completed"], 1)
        self.assertEqual(data["deleted_ids"], ["PL1"])
        self.assertEqual(data["failed_id"], "PL2")
        self.assertEqual(data["error_code"], "UPSTREAM_ERROR")

    def test_delete_requires_ids(self):
        response = self.client.post("/playlists/delete", json={"headers": SESSION_BLOCK, "playlist_ids": ["  "]})
        self.assertEqual(response.status_code, 422)

    def test_oversized_body_rejected(self):
        app = create_app(Config(load_from_env=False, MAX_CONTENT_LENGTH=64))
        with TestClient(app) as client:
            response = client.post("/headers/inspect", json={"headers": "Authorization: Bearer " + "x" * 200})
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json()["error_code"], "CONTENT_TOO_LARGE")

    def test_proxy_routes_disabled_by_default(self):
        response = self.client.post("/yt-inner/youtubei/v1/browse")
        self.assertEqual(response.status_code, 404)


class TestDevProxy(unittest.TestCase):
    """Test cases for the carrier-restoring development proxy."""

    def setUp(self):
        self.settings = Config(load_from_env=False)
        self.forwarded = []

        def handle(request):
            self.forwarded.append(request)
            return httpx.Response(200, json={"ok": True})

        app = FastAPI()
        app.include_router(build_proxy_router(self.settings, transport=httpx.MockTransport(handle)))
        self.client = TestClient(app)

    def test_internal_route_restores_carrier_headers(self):
        response = self.client.post(
            "/yt-inner/youtubei/v1/browse?prettyPrint=false",
            content=json.dumps({"browseId": "FEplaylist_aggregation"}),
            headers={
                "Content-Type": "application/json",
                "Authorization": "SAPISIDHASH 1_a",
                "X-YouTube-Proxy-Cookie": "SID=abc",
                "X-YouTube-Proxy-User-Agent": "Mozilla/5.0",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})

        upstream = self.forwarded[0]
        self.assertEqual(str(upstream.url), "https://www.youtube.com/youtubei/v1/browse?prettyPrint=false")
        self.assertEqual(upstream.headers["cookie"], "SID=abc")
        self.assertEqual(upstream.headers["user-agent"], "Mozilla/5.0")
        self.assertEqual(upstream.headers["origin"], "https://www.youtube.com")
        self.assertEqual(upstream.headers["referer"], "https://www.youtube.com/feed/playlists")
        self.assertEqual(upstream.headers["authorization"], "SAPISIDHASH 1_a")
        self.assertNotIn("x-youtube-proxy-cookie", upstream.headers)
        self.assertEqual(json.loads(upstream.content), {"browseId": "FEplaylist_aggregation"})

    def test_official_route_does_not_add_browser_defaults(self):
        response = self.client.get("/yt-api/youtube/v3/playlists?mine=true",
                                   headers={"Authorization": "Bearer t"})
        self.assertEqual(response.status_code, 200)
        upstream = self.forwarded[0]
        self.assertEqual(str(upstream.url), "https://www.googleapis.com/youtube/v3/playlists?mine=true")
        self.assertNotIn("referer", upstream.headers)
        self.assertEqual(upstream.method, "GET")


if __name__ == '__main__':
    unittest.main()
