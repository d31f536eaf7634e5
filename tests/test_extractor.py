"""
Tests for playlist extraction from browse responses.
"""
import unittest
import sys
import os

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services.extractor import (continuation_token, dig, extract_browse_page, get_text, parse_count,
                                privacy_from_rows, walk)


def lockup(playlist_id, title, rows, badge="", content_type="LOCKUP_CONTENT_TYPE_PLAYLIST", sources=None):
    """Build a lockupViewModel wrapper as the web client sends it."""
    return {
        "lockupViewModel": {
            "contentId": playlist_id,
            "contentType": content_type,
            "contentImage": {
                "collectionThumbnailViewModel": {
                    "primaryThumbnail": {
                        "thumbnailViewModel": {
                            "image": {"sources": sources or []},
                            "overlays": [{
                                "thumbnailOverlayBadgeViewModel": {
                                    "thumbnailBadges": [{"thumbnailBadgeViewModel": {"text": badge}}]
                                }
                            }],
                        }
                    }
                }
            },
            "metadata": {
                "lockupMetadataViewModel": {
                    "title": {"content": title},
                    "metadata": {
                        "contentMetadataViewModel": {
                            "metadataRows": [
                                {"metadataParts": [{"text": {"content": part}} for part in row]}
                                for row in rows
                            ]
                        }
                    },
                }
            },
        }
    }


def continuation_item(token):
    return {
        "continuationItemRenderer": {
            "continuationEndpoint": {"continuationCommand": {"token": token}}
        }
    }


class TestHelpers(unittest.TestCase):
    """Test cases for the small text helpers."""

    def test_get_text_variants(self):
        self.assertEqual(get_text("plain"), "plain")
        self.assertEqual(get_text({"simpleText": "simple"}), "simple")
        self.assertEqual(get_text({"content": "content"}), "content")
        self.assertEqual(get_text({"runs": [{"text": "Road"}, {"text": " trip"}]}), "Road trip")
        self.assertIsNone(get_text({"runs": []}))
        self.assertIsNone(get_text(None))

    def test_parse_count(self):
        self.assertEqual(parse_count("12"), 12)
        self.assertEqual(parse_count("1,204 videos"), 1204)
        self.assertEqual(parse_count(7), 7)
        self.assertEqual(parse_count("No videos"), 0)
        self.assertEqual(parse_count(None), 0)

    def test_dig(self):
        node = {"a": [{"b": "x"}]}
        self.assertEqual(dig(node, ("a", 0, "b")), "x")
        self.assertIsNone(dig(node, ("a", 3, "b")))
        self.assertIsNone(dig(node, ("a", "b")))

    def test_continuation_token_paths(self):
        self.assertEqual(continuation_token({"nextContinuationData": {"continuation": "N"}}), "N")
        self.assertEqual(continuation_token({"reloadContinuationData": {"continuation": "R"}}), "R")
        self.assertEqual(continuation_token(continuation_item("C")), "C")
        self.assertIsNone(continuation_token({"continuationItemRenderer": {}}))


class TestLegacyRenderers(unittest.TestCase):
    """Test cases for playlistRenderer-style records."""

    def test_playlist_renderer_round_trip(self):
        page = extract_browse_page({
            "playlistRenderer": {"playlistId": "PL9", "title": {"simpleText": "Road trip"}, "videoCount": "12"}
        })
        self.assertEqual(len(page.playlists), 1)
        playlist = page.playlists[0]
        self.assertEqual(playlist.id, "PL9")
        self.assertEqual(playlist.title, "Road trip")
        self.assertEqual(playlist.item_count, 12)
        self.assertIsNone(page.continuation)

    def test_grid_renderer_fields(self):
        page = extract_browse_page({"items": [{
            "gridPlaylistRenderer": {
                "playlistId": "PLg",
                "title": {"runs": [{"text": "Workout"}]},
                "videoCountText": {"runs": [{"text": "1,204"}, {"text": " videos"}]},
                "shortBylineText": {"runs": [{"text": "Some Channel"}]},
                "publishedTimeText": {"simpleText": "Updated today"},
                "isEditable": True,
                "thumbnail": {"thumbnails": [{"url": "small.jpg"}, {"url": "large.jpg"}]},
            }
        }]})
        playlist = page.playlists[0]
        self.assertEqual(playlist.title, "Workout")
        self.assertEqual(playlist.item_count, 1204)
        self.assertEqual(playlist.channel_title, "Some Channel")
        self.assertEqual(playlist.updated_at, "Updated today")
        self.assertEqual(playlist.privacy_status, "private")
        self.assertEqual(playlist.thumbnail_url, "large.jpg")

    def test_id_from_navigation_endpoint(self):
        page = extract_browse_page({"compactPlaylistRenderer": {
            "navigationEndpoint": {"watchEndpoint": {"playlistId": "PLnav"}},
        }})
        playlist = page.playlists[0]
        self.assertEqual(playlist.id, "PLnav")
        self.assertEqual(playlist.title, "Untitled playlist")
        self.assertEqual(playlist.channel_title, "Unknown channel")
        self.assertEqual(playlist.privacy_status, "unknown")

    def test_renderer_without_id_is_skipped(self):
        page = extract_browse_page({"playlistRenderer": {"title": {"simpleText": "No id"}}})
        self.assertEqual(page.playlists, [])


class TestLockupViewModel(unittest.TestCase):
    """Test cases for the lockupViewModel layout."""

    def test_english_lockup(self):
        page = extract_browse_page({"contents": [lockup(
            "PLen", "Favourites",
            rows=[["Private", "Playlist"], ["Updated 3 days ago"]],
            badge="24 videos",
            sources=[{"url": "s.jpg"}, {"url": "l.jpg"}],
        )]})
        playlist = page.playlists[0]
        self.assertEqual(playlist.id, "PLen")
        self.assertEqual(playlist.title, "Favourites")
        self.assertEqual(playlist.privacy_status, "private")
        self.assertEqual(playlist.updated_at, "Updated 3 days ago")
        self.assertEqual(playlist.item_count, 24)
        self.assertEqual(playlist.thumbnail_url, "l.jpg")
        self.assertEqual(playlist.channel_title, "Unknown channel")

    def test_german_lockup(self):
        page = extract_browse_page({"contents": [
            lockup("PLde1", "Urlaub", rows=[["Öffentlich", "Playlist"], ["Aktualisiert vor 2 Tagen"]], badge="3 Videos"),
            lockup("PLde2", "Entwürfe", rows=[["Nicht gelistet"]]),
        ]})
        by_id = {playlist.id: playlist for playlist in page.playlists}
        self.assertEqual(by_id["PLde1"].privacy_status, "public")
        self.assertEqual(by_id["PLde1"].updated_at, "Aktualisiert vor 2 Tagen")
        self.assertEqual(by_id["PLde1"].item_count, 3)
        self.assertEqual(by_id["PLde2"].privacy_status, "unlisted")

    def test_video_lockup_is_ignored(self):
        page = extract_browse_page({"contents": [
            lockup("dQw4w9WgXcQ", "A video", rows=[], content_type="LOCKUP_CONTENT_TYPE_VIDEO"),
        ]})
        self.assertEqual(page.playlists, [])

    def test_podcast_lockup_is_listed(self):
        page = extract_browse_page({"contents": [
            {"lockupViewModel": {
                "contentId": "PLpod",
                "contentType": "LOCKUP_CONTENT_TYPE_PODCAST",
                "metadata": {"lockupMetadataViewModel": {"title": {"content": "My podcast"}}},
            }},
        ]})
        self.assertEqual([playlist.id for playlist in page.playlists], ["PLpod"])
        self.assertEqual(page.playlists[0].title, "My podcast")

    def test_lockup_without_metadata_needs_playlist_type(self):
        page = extract_browse_page({"contents": [
            {"lockupViewModel": {"contentId": "PLbare", "contentType": "LOCKUP_CONTENT_TYPE_PLAYLIST"}},
            {"lockupViewModel": {"contentId": "PLmix", "contentType": "LOCKUP_CONTENT_TYPE_ALBUM"}},
        ]})
        self.assertEqual([playlist.id for playlist in page.playlists], ["PLbare"])

    def test_privacy_from_rows(self):
        self.assertEqual(privacy_from_rows(["Some Channel", "Public"]), "public")
        self.assertEqual(privacy_from_rows(["Playlist"]), "unknown")


class TestTraversal(unittest.TestCase):
    """Test cases for walking the response graph."""

    def test_discovery_order_and_deduplication(self):
        document = {"contents": [
            {"playlistRenderer": {"playlistId": "PL1", "title": {"simpleText": "First"}}},
            {"gridPlaylistRenderer": {"playlistId": "PL2"}},
            {"playlistRenderer": {"playlistId": "PL1", "title": {"simpleText": "Duplicate"}}},
        ]}
        page = extract_browse_page(document)
        self.assertEqual([p.id for p in page.playlists], ["PL1", "PL2"])
        self.assertEqual(page.playlists[0].title, "First")

    def test_self_referential_graph_terminates(self):
        document = {"contents": [{"playlistRenderer": {"playlistId": "PLc"}}]}
        document["contents"].append(document)
        document["self"] = document
        page = extract_browse_page(document)
        self.assertEqual([p.id for p in page.playlists], ["PLc"])

    def test_shared_subtree_visited_once(self):
        shared = {"playlistRenderer": {"playlistId": "PLs"}}
        document = {"a": shared, "b": [shared, shared]}
        self.assertEqual(sum(1 for node in walk(document) if node is shared), 1)

    def test_deep_nesting_does_not_hit_recursion_limit(self):
        document = {"playlistRenderer": {"playlistId": "PLdeep"}}
        for _ in range(5000):
            document = {"child": document}
        page = extract_browse_page(document)
        self.assertEqual([p.id for p in page.playlists], ["PLdeep"])

    def test_first_continuation_wins(self):
        # Known limitation: a second shelf's token is never followed
        document = {"contents": [
            {"itemSectionRenderer": {"contents": [
                {"playlistRenderer": {"playlistId": "PLa"}},
                continuation_item("FIRST"),
            ]}},
            {"itemSectionRenderer": {"contents": [continuation_item("SECOND")]}},
        ]}
        page = extract_browse_page(document)
        self.assertEqual(page.continuation, "FIRST")

    def test_unknown_shapes_are_ignored(self):
        page = extract_browse_page({"responseContext": {"visitorData": "x"}, "alerts": [1, "two", None]})
        self.assertEqual(page.playlists, [])
        self.assertIsNone(page.continuation)

    def test_non_container_document(self):
        page = extract_browse_page("<html>not json</html>")
        self.assertEqual(page.playlists, [])


if __name__ == '__main__':
    unittest.main()
