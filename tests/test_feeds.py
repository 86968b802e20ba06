"""
Tests for the read views (services.feed_service) and the QueryComposer.

Tests cover:
- The like scenario on v1 across viewers
- Video feed search, ownership visibility, sorting and pagination
- Comments, tweets, channel profile, subscriptions
- Liked videos, watch history and playlist views
"""

import uuid

import pytest

from conftest import at, like, make_comment, make_tweet, make_video, subscribe
from engine import recipes
from engine.composer import QueryComposer
from engine.pipeline import Flatten
from engine.result import ErrorKind
from engine.toggle import RelationToggleEngine, ToggleState
from store.base import Collection, Filter, RelationKind, TargetKind


# =============================================================================
# Like Scenario
# =============================================================================

class TestLikeScenario:
    """Toggle a like on v1 and read it back through the feed."""

    def _video_view(self, services, viewer, video):
        return services.feeds.get_video(viewer, video["id"]).value

    def test_like_is_visible_per_viewer(self, store, services, bob, carol, v1):
        toggle = RelationToggleEngine(store)

        added = toggle.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)
        assert added.value.state == ToggleState.ADDED

        as_bob = self._video_view(services, bob["id"], v1)
        as_carol = self._video_view(services, carol["id"], v1)
        assert as_bob["likes_count"] == 1
        assert as_bob["is_liked"] is True
        assert as_carol["likes_count"] == 1
        assert as_carol["is_liked"] is False

        removed = toggle.toggle_relation(RelationKind.LIKE, bob["id"], v1["id"], TargetKind.VIDEO)
        assert removed.value.state == ToggleState.REMOVED
        assert self._video_view(services, bob["id"], v1)["likes_count"] == 0

    def test_viewer_as_string_matches(self, store, services, bob, v1):
        like(store, bob, v1, TargetKind.VIDEO)
        assert self._video_view(services, str(bob["id"]), v1)["is_liked"] is True

    def test_anonymous_viewer_is_never_liked(self, store, services, bob, v1):
        like(store, bob, v1, TargetKind.VIDEO)
        view = self._video_view(services, None, v1)
        assert view["likes_count"] == 1
        assert view["is_liked"] is False

    def test_raw_like_list_is_not_returned(self, services, v1):
        view = self._video_view(services, None, v1)
        assert "likes" not in view
        assert view["owner"]["username"] == "alice"
        assert "password_hash" not in view["owner"]


# =============================================================================
# Query Composer
# =============================================================================

class TestQueryComposer:

    def test_query_feed_returns_empty_page_when_nothing_matches(self, store, alice):
        result = QueryComposer(store).query_feed(
            Collection.VIDEOS, filter=Filter().eq("owner_id", alice["id"]))
        assert result.success
        assert result.value.items == []
        assert result.value.total == 0

    def test_get_by_id_not_found(self, store, alice):
        result = QueryComposer(store).get_by_id(Collection.VIDEOS, alice["id"], label="video")
        assert result.error == ErrorKind.NOT_FOUND
        assert result.message == "Video not found"

    def test_get_by_id_invalid_identifier(self, store):
        result = QueryComposer(store).get_by_id(Collection.VIDEOS, "v1", label="video")
        assert result.error == ErrorKind.INVALID_IDENTIFIER

    def test_get_by_id_with_joins(self, store, bob, v1):
        like(store, bob, v1, TargetKind.VIDEO)
        result = QueryComposer(store).get_by_id(
            Collection.VIDEOS,
            v1["id"],
            joins=(recipes.owner_join(), recipes.likes_join(TargetKind.VIDEO)),
            flattens=(Flatten("owner"),),
            computed=(recipes.likes_count(), recipes.is_liked(bob["id"])),
            exclude=("likes",),
        )
        assert result.value["likes_count"] == 1
        assert result.value["is_liked"] is True

    def test_unknown_filter_field_is_validation_failure(self, store):
        result = QueryComposer(store).query_feed(Collection.VIDEOS, filter=Filter().eq("nope", 1))
        assert result.error == ErrorKind.VALIDATION_FAILURE

    def test_configured_default_limit(self, store, alice):
        for i in range(7):
            make_video(store, alice, f"video-{i}", minutes=i)
        page = QueryComposer(store, default_limit=5).query_feed(Collection.VIDEOS).value
        assert len(page.items) == 5
        assert page.total_pages == 2


# =============================================================================
# Video Feed
# =============================================================================

class TestVideoFeed:

    @pytest.fixture
    def catalogue(self, store, alice, bob):
        return {
            "cats": make_video(store, alice, "Funny Cats", views=30, minutes=1),
            "dogs": make_video(store, alice, "Loyal dogs", views=10, minutes=2),
            "draft": make_video(store, alice, "Cats draft", views=0, published=False, minutes=3),
            "bobs": make_video(store, bob, "CATS again", views=20, minutes=4),
        }

    def test_only_published_videos_newest_first(self, services, catalogue):
        page = services.feeds.list_videos().value
        assert [v["title"] for v in page.items] == ["CATS again", "Loyal dogs", "Funny Cats"]

    def test_search_is_case_insensitive_regex(self, services, catalogue):
        page = services.feeds.list_videos(query="^cats|funny").value
        assert {v["title"] for v in page.items} == {"Funny Cats", "CATS again"}

    def test_invalid_regex_is_validation_failure(self, services, catalogue):
        result = services.feeds.list_videos(query="([")
        assert result.error == ErrorKind.VALIDATION_FAILURE

    def test_owner_sees_own_unpublished(self, services, alice, catalogue):
        page = services.feeds.list_videos(viewer_id=alice["id"], owner_id=alice["id"]).value
        assert page.total == 3

    def test_others_do_not_see_unpublished(self, services, alice, bob, catalogue):
        page = services.feeds.list_videos(viewer_id=bob["id"], owner_id=str(alice["id"])).value
        assert page.total == 2

    def test_sort_by_views_ascending(self, services, catalogue):
        page = services.feeds.list_videos(sort_by="view_count", sort_type="asc").value
        assert [v["view_count"] for v in page.items] == [10, 20, 30]

    def test_sort_by_likes_count(self, store, services, bob, carol, catalogue):
        like(store, bob, catalogue["dogs"], TargetKind.VIDEO)
        like(store, carol, catalogue["dogs"], TargetKind.VIDEO)
        like(store, carol, catalogue["bobs"], TargetKind.VIDEO)

        page = services.feeds.list_videos(sort_by="likes_count").value

        assert [v["title"] for v in page.items] == ["Loyal dogs", "CATS again", "Funny Cats"]

    def test_unknown_sort_field(self, services, catalogue):
        result = services.feeds.list_videos(sort_by="password_hash")
        assert result.error == ErrorKind.VALIDATION_FAILURE

    def test_bad_sort_type(self, services, catalogue):
        result = services.feeds.list_videos(sort_by="title", sort_type="sideways")
        assert result.error == ErrorKind.VALIDATION_FAILURE

    def test_pagination(self, services, catalogue):
        page = services.feeds.list_videos(page=2, limit=2).value
        assert page.total == 3
        assert page.total_pages == 2
        assert [v["title"] for v in page.items] == ["Funny Cats"]

    def test_invalid_owner_id(self, services):
        assert services.feeds.list_videos(owner_id="alice").error == ErrorKind.INVALID_IDENTIFIER

    def test_unpublished_video_hidden_from_others(self, services, alice, bob, catalogue):
        draft = catalogue["draft"]["id"]
        assert services.feeds.get_video(bob["id"], draft).error == ErrorKind.NOT_FOUND
        assert services.feeds.get_video(None, draft).error == ErrorKind.NOT_FOUND
        assert services.feeds.get_video(alice["id"], draft).success

    def test_channel_videos_include_drafts_with_likes(self, store, services, alice, bob, catalogue):
        like(store, bob, catalogue["draft"], TargetKind.VIDEO)

        page = services.feeds.channel_videos(alice["id"]).value

        assert page.total == 3
        assert page.items[0]["title"] == "Cats draft"
        assert page.items[0]["likes_count"] == 1


# =============================================================================
# Comments and Tweets
# =============================================================================

class TestCommentsAndTweets:

    def test_video_comments_newest_first_with_likes(self, store, services, alice, bob, carol, v1):
        old = make_comment(store, bob, v1, "first!", minutes=20)
        make_comment(store, carol, v1, "second", minutes=21)
        like(store, alice, old, TargetKind.COMMENT)

        page = services.feeds.video_comments(alice["id"], v1["id"]).value

        assert [c["content"] for c in page.items] == ["second", "first!"]
        assert page.items[1]["likes_count"] == 1
        assert page.items[1]["is_liked"] is True
        assert page.items[1]["owner"]["username"] == "bob"
        assert page.items[0]["is_liked"] is False

    def test_comments_for_unknown_video_are_empty(self, services, alice):
        page = services.feeds.video_comments(None, alice["id"]).value
        assert page.items == []

    def test_user_tweets(self, store, services, alice, bob):
        make_tweet(store, alice, "hello", minutes=1)
        second = make_tweet(store, alice, "world", minutes=2)
        make_tweet(store, bob, "not mine", minutes=3)
        like(store, bob, second, TargetKind.TWEET)

        page = services.feeds.user_tweets(bob["id"], alice["id"]).value

        assert [t["content"] for t in page.items] == ["world", "hello"]
        assert page.items[0]["likes_count"] == 1
        assert page.items[0]["is_liked"] is True


# =============================================================================
# Channels and Subscriptions
# =============================================================================

class TestChannels:

    def test_channel_profile_counts(self, store, services, alice, bob, carol):
        subscribe(store, bob, alice)
        subscribe(store, carol, alice)
        subscribe(store, alice, carol)

        profile = services.feeds.channel_profile(bob["id"], "ALICE").value

        assert profile["username"] == "alice"
        assert profile["subscribers_count"] == 2
        assert profile["subscribed_to_count"] == 1
        assert profile["is_subscribed"] is True
        assert "password_hash" not in profile
        assert "email" not in profile

    def test_channel_profile_not_subscribed(self, services, alice, carol):
        profile = services.feeds.channel_profile(carol["id"], "alice").value
        assert profile["subscribers_count"] == 0
        assert profile["is_subscribed"] is False

    def test_unknown_channel(self, services, users):
        assert services.feeds.channel_profile(None, "nobody").error == ErrorKind.NOT_FOUND

    def test_channel_subscribers_newest_first(self, store, services, alice, bob, carol):
        subscribe(store, bob, alice, minutes=1)
        subscribe(store, carol, alice, minutes=2)

        page = services.feeds.channel_subscribers(alice["id"]).value

        assert [s["subscriber"]["username"] for s in page.items] == ["carol", "bob"]
        assert "password_hash" not in page.items[0]["subscriber"]

    def test_subscribed_channels(self, store, services, alice, bob, carol):
        subscribe(store, alice, bob, minutes=1)
        subscribe(store, alice, carol, minutes=2)

        page = services.feeds.subscribed_channels(alice["id"]).value

        assert [s["channel"]["username"] for s in page.items] == ["carol", "bob"]

    def test_subscribers_of_unknown_channel(self, services, users):
        assert services.feeds.channel_subscribers(uuid.uuid4()).error == ErrorKind.NOT_FOUND


# =============================================================================
# Liked Videos and Playlists
# =============================================================================

class TestLikedVideos:

    def test_liked_videos_with_owner(self, store, services, alice, bob, carol):
        first = make_video(store, alice, "first", minutes=1)
        second = make_video(store, carol, "second", minutes=2)
        draft = make_video(store, alice, "draft", published=False, minutes=3)
        like(store, bob, first, TargetKind.VIDEO, minutes=10)
        like(store, bob, second, TargetKind.VIDEO, minutes=11)
        like(store, bob, draft, TargetKind.VIDEO, minutes=12)

        page = services.feeds.liked_videos(bob["id"]).value

        assert page.total == 2
        assert [item["video"]["title"] for item in page.items] == ["second", "first"]
        assert [item["owner"]["username"] for item in page.items] == ["carol", "alice"]
        assert page.items[0]["created_at"] == at(11)

    def test_liked_videos_requires_valid_id(self, services):
        assert services.feeds.liked_videos("me").error == ErrorKind.INVALID_IDENTIFIER


class TestWatchHistory:

    def test_most_recent_watch_first_with_owner(self, store, services, alice, bob, carol):
        first = make_video(store, alice, "first", minutes=1)
        second = make_video(store, carol, "second", minutes=2)
        for video in (first, second, first):
            assert services.videos.record_view(bob["id"], video["id"]).success

        page = services.feeds.watch_history(bob["id"]).value

        assert page.total == 2
        assert [item["title"] for item in page.items] == ["first", "second"]
        assert [item["owner"]["username"] for item in page.items] == ["alice", "carol"]
        assert "password_hash" not in page.items[0]["owner"]
        assert "is_published" not in page.items[0]

    def test_deleted_and_unpublished_videos_drop_out(self, store, services, alice, bob):
        kept = make_video(store, alice, "kept", minutes=1)
        hidden = make_video(store, alice, "hidden", minutes=2)
        gone = make_video(store, alice, "gone", minutes=3)
        for video in (kept, hidden, gone):
            services.videos.record_view(bob["id"], video["id"])
        services.videos.toggle_publish_status(alice["id"], hidden["id"])
        services.videos.delete_video(alice["id"], gone["id"])

        page = services.feeds.watch_history(bob["id"]).value

        assert [item["id"] for item in page.items] == [kept["id"]]

    def test_paginates(self, store, services, alice, bob):
        for minutes in range(3):
            video = make_video(store, alice, f"v{minutes}", minutes=minutes)
            services.videos.record_view(bob["id"], video["id"])

        page = services.feeds.watch_history(bob["id"], page="2", limit="2").value

        assert [item["title"] for item in page.items] == ["v0"]
        assert page.total == 3
        assert page.has_prev_page

    def test_empty_history(self, services, bob):
        page = services.feeds.watch_history(bob["id"]).value
        assert page.items == []
        assert page.total == 0

    def test_unknown_user(self, services):
        assert services.feeds.watch_history(uuid.uuid4()).error == ErrorKind.NOT_FOUND


class TestPlaylists:

    def test_playlist_detail_in_order_with_totals(self, store, services, alice):
        first = make_video(store, alice, "first", views=10, minutes=1)
        second = make_video(store, alice, "second", views=5, minutes=2)
        playlist = services.playlists.create_playlist(alice["id"], "  Mix  ").value
        for video in (second, first, second):
            services.playlists.add_video(alice["id"], playlist["id"], video["id"])

        detail = services.feeds.get_playlist(playlist["id"]).value

        assert detail["name"] == "Mix"
        assert [v["title"] for v in detail["videos"]] == ["second", "first", "second"]
        assert detail["total_videos"] == 3
        assert detail["total_views"] == 20
        assert detail["owner"]["username"] == "alice"

    def test_deleted_video_drops_out_of_playlist(self, store, services, alice):
        kept = make_video(store, alice, "kept", views=1, minutes=1)
        gone = make_video(store, alice, "gone", views=100, minutes=2)
        playlist = services.playlists.create_playlist(alice["id"], "Mix").value
        services.playlists.add_video(alice["id"], playlist["id"], kept["id"])
        services.playlists.add_video(alice["id"], playlist["id"], gone["id"])

        services.videos.delete_video(alice["id"], gone["id"])
        detail = services.feeds.get_playlist(playlist["id"]).value

        assert [v["title"] for v in detail["videos"]] == ["kept"]
        assert detail["total_views"] == 1

    def test_user_playlists_summaries(self, store, services, alice, bob):
        video = make_video(store, alice, "v", views=7, minutes=1)
        playlist = services.playlists.create_playlist(alice["id"], "Mine").value
        services.playlists.add_video(alice["id"], playlist["id"], video["id"])
        services.playlists.create_playlist(bob["id"], "Theirs")

        page = services.feeds.user_playlists(alice["id"]).value

        assert page.total == 1
        assert page.items[0]["total_videos"] == 1
        assert page.items[0]["total_views"] == 7
        assert "videos" not in page.items[0]

    def test_unknown_playlist(self, services, alice):
        assert services.feeds.get_playlist(alice["id"]).error == ErrorKind.NOT_FOUND
