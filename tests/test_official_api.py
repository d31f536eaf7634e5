"""
Tests for the YouTube Data API client.
"""
import json
import unittest
import sys
import os

import httplib2

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config
from exceptions import UpstreamError
from services.headers import prepare_headers
from services.official_api import OfficialApiClient, best_thumbnail, playlist_from_resource


class ScriptedHttp:
    """httplib2-compatible transport replaying canned (status, body) pairs."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.follow_redirects = True

    def request(self, uri, method="GET", body=None, headers=None, redirections=5, connection_type=None):
        self.requests.append({"uri": uri, "method": method, "headers": dict(headers or {}), "body": body})
        status, payload = self.responses.pop(0)
        content = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        return httplib2.Response({"status": str(status)}), content


def resource(playlist_id, title="Title", **snippet):
    return {
        "id": playlist_id,
        "snippet": dict({"title": title, "channelTitle": "Me", "publishedAt": "2024-01-01T00:00:00Z"}, **snippet),
        "status": {"privacyStatus": "private"},
        "contentDetails": {"itemCount": 3},
    }


class TestResourceConversion(unittest.TestCase):
    """Test cases for mapping Data API resources."""

    def test_thumbnail_preference(self):
        thumbnails = {"default": {"url": "d"}, "high": {"url": "h"}, "medium": {"url": "m"}}
        self.assertEqual(best_thumbnail(thumbnails), "h")
        self.assertEqual(best_thumbnail({"standard": {"url": "s"}, "high": {"url": "h"}}), "s")
        self.assertIsNone(best_thumbnail(None))

    def test_playlist_from_resource(self):
        playlist = playlist_from_resource(resource("PL1", "Road trip", description="Summer"))
        self.assertEqual(playlist.id, "PL1")
        self.assertEqual(playlist.title, "Road trip")
        self.assertEqual(playlist.description, "Summer")
        self.assertEqual(playlist.channel_title, "Me")
        self.assertEqual(playlist.privacy_status, "private")
        self.assertEqual(playlist.item_count, 3)
        self.assertEqual(playlist.updated_at, "2024-01-01T00:00:00Z")

    def test_missing_fields_use_defaults(self):
        playlist = playlist_from_resource({"id": "PL2"})
        self.assertEqual(playlist.title, "Untitled playlist")
        self.assertEqual(playlist.privacy_status, "unknown")
        self.assertEqual(playlist.item_count, 0)
        self.assertIsNone(playlist.thumbnail_url)

    def test_resource_without_id_is_skipped(self):
        self.assertIsNone(playlist_from_resource({"snippet": {"title": "x"}}))


class TestOfficialApiClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for listing and deleting through the Data API."""

    def setUp(self):
        self.settings = Config(load_from_env=False)
        self.prepared = prepare_headers({"Authorization": "Bearer ya29.token"}, self.settings)

    def client_for(self, http):
        return OfficialApiClient(self.settings, http_factory=lambda: http)

    async def test_three_pages_issue_three_requests(self):
        http = ScriptedHttp([
            (200, {"items": [resource("PL1"), resource("PL2")], "nextPageToken": "T2"}),
            (200, {"items": [resource("PL3")], "nextPageToken": "T3"}),
            (200, {"items": [resource("PL4")]}),
        ])
        playlists = await self.client_for(http).list_playlists(self.prepared)

        self.assertEqual([p.id for p in playlists], ["PL1", "PL2", "PL3", "PL4"])
        self.assertEqual(len(http.requests), 3)
        first, second, third = (r["uri"] for r in http.requests)
        self.assertTrue(first.startswith("https://www.googleapis.com/youtube/v3/playlists?"))
        self.assertIn("mine=true", first)
        self.assertIn("maxResults=50", first)
        self.assertIn("part=snippet%2CcontentDetails%2Cstatus", first)
        self.assertNotIn("pageToken", first)
        self.assertIn("pageToken=T2", second)
        self.assertIn("pageToken=T3", third)

    async def test_prepared_headers_are_sent(self):
        http = ScriptedHttp([(200, {"items": []})])
        await self.client_for(http).list_playlists(self.prepared)
        headers = http.requests[0]["headers"]
        self.assertEqual(headers["Authorization"], "Bearer ya29.token")
        self.assertEqual(headers["X-Goog-Authuser"], "0")

    async def test_error_status_raises_upstream_error(self):
        body = {"error": {"code": 403, "message": "Request had insufficient authentication scopes."}}
        http = ScriptedHttp([(403, body)])
        with self.assertRaises(UpstreamError) as ctx:
            await self.client_for(http).list_playlists(self.prepared)
        error = ctx.exception
        self.assertEqual(error.status, 403)
        self.assertEqual(error.backend, "official")
        self.assertEqual(error.pages_fetched, 0)
        self.assertEqual(error.upstream_message, "Request had insufficient authentication scopes.")
        self.assertTrue(error.is_auth_failure)

    async def test_error_after_first_page_records_pages_fetched(self):
        http = ScriptedHttp([
            (200, {"items": [resource("PL1")], "nextPageToken": "T2"}),
            (401, {"error": {"message": "Invalid Credentials"}}),
        ])
        with self.assertRaises(UpstreamError) as ctx:
            await self.client_for(http).list_playlists(self.prepared)
        self.assertEqual(ctx.exception.pages_fetched, 1)

    async def test_non_json_error_body(self):
        http = ScriptedHttp([(500, b"Backend Error")])
        with self.assertRaises(UpstreamError) as ctx:
            await self.client_for(http).list_playlists(self.prepared)
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.upstream_message, "Backend Error")

    async def test_delete_playlist(self):
        http = ScriptedHttp([(204, b"")])
        await self.client_for(http).delete_playlist("PLdel", self.prepared)
        self.assertEqual(len(http.requests), 1)
        self.assertEqual(http.requests[0]["method"], "DELETE")
        self.assertIn("id=PLdel", http.requests[0]["uri"])

    async def test_delete_failure(self):
        http = ScriptedHttp([(404, {"error": {"message": "Playlist not found"}})])
        with self.assertRaises(UpstreamError) as ctx:
            await self.client_for(http).delete_playlist("PLgone", self.prepared)
        self.assertEqual(ctx.exception.status, 404)


if __name__ == '__main__':
    unittest.main()
