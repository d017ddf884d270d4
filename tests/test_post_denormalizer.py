"""Tests for soundbytes.services.post_denormalizer — track snapshots on posts."""
import pytest
import pytest_asyncio

from soundbytes import errors
from soundbytes.db.models import SoundByte
from soundbytes.models.tracks import TrackAttrs, TrackLink
from soundbytes.services.post_denormalizer import (
    SNAPSHOT_FIELDS,
    apply_snapshot,
    clear_snapshot,
    link_track,
    resolve_track,
)


def _post(author_id: str) -> SoundByte:
    return SoundByte(author_id=author_id, caption="listen", tags=[], visibility="public",
                     likes_count=0, comments_count=0)


@pytest_asyncio.fixture
async def full_track(db_session, registry):
    return await registry.find_or_create(db_session, TrackAttrs(
        title="Track A",
        artist="Artist A",
        genre="jazz",
        cover_art_url="https://img.test/a.jpg",
        sound_clip_url="https://clip.test/a.mp3",
    ))


@pytest_asyncio.fixture
async def sparse_track(db_session, registry):
    return await registry.find_or_create(db_session, TrackAttrs(title="Track B", artist="Artist B"))


class TestSnapshot:
    async def test_apply_copies_every_field(self, alice, full_track):
        post = apply_snapshot(_post(alice.id), full_track)

        assert post.track_id == full_track.id
        assert post.title == "Track A"
        assert post.artist == "Artist A"
        assert post.genre == "jazz"
        assert post.cover_art_url == "https://img.test/a.jpg"
        assert post.sound_clip_url == "https://clip.test/a.mp3"

    async def test_relink_leaves_nothing_from_previous_track(self, alice, full_track, sparse_track):
        post = apply_snapshot(_post(alice.id), full_track)
        apply_snapshot(post, sparse_track)

        assert post.track_id == sparse_track.id
        assert post.title == "Track B"
        assert post.genre is None
        assert post.cover_art_url is None
        assert post.sound_clip_url is None

    async def test_clear_unlinks(self, alice, full_track):
        post = clear_snapshot(apply_snapshot(_post(alice.id), full_track))
        for field in SNAPSHOT_FIELDS:
            assert getattr(post, field) is None

    async def test_caller_links_are_not_part_of_snapshot(self, alice, full_track):
        post = _post(alice.id)
        post.source_url = "https://yt.test/v"
        post.audio_url = "https://cdn.test/a.mp3"
        apply_snapshot(post, full_track)
        clear_snapshot(post)
        assert post.source_url == "https://yt.test/v"
        assert post.audio_url == "https://cdn.test/a.mp3"


class TestResolveAndLink:
    async def test_resolve_by_id(self, db_session, registry, full_track):
        track = await resolve_track(db_session, registry, TrackLink(track_id=full_track.id))
        assert track.id == full_track.id

    async def test_resolve_unknown_id_raises(self, db_session, registry):
        with pytest.raises(errors.NotFound):
            await resolve_track(db_session, registry, TrackLink(track_id="missing"))

    async def test_resolve_unvalidated_empty_link_is_a_validation_error(self, db_session, registry):
        with pytest.raises(errors.ValidationError):
            await resolve_track(db_session, registry, TrackLink.model_construct())

    async def test_resolve_by_attrs_creates_canonical_track(self, db_session, registry):
        link = TrackLink(track=TrackAttrs(title="New", artist="Someone"))
        first = await resolve_track(db_session, registry, link)
        second = await resolve_track(db_session, registry, link)
        assert first.id == second.id

    async def test_link_unknown_id_leaves_post_untouched(self, db_session, registry, alice, full_track):
        post = apply_snapshot(_post(alice.id), full_track)
        with pytest.raises(errors.NotFound):
            await link_track(db_session, registry, post, TrackLink(track_id="missing"))
        assert post.track_id == full_track.id
        assert post.title == "Track A"

    async def test_link_replaces_snapshot(self, db_session, registry, alice, full_track, sparse_track):
        post = apply_snapshot(_post(alice.id), full_track)
        await link_track(db_session, registry, post, TrackLink(track_id=sparse_track.id))
        assert post.track_id == sparse_track.id
        assert post.cover_art_url is None
