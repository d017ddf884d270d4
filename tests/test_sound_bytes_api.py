"""
API tests for /api/v1/sound-bytes.

Covers:
  1.  Create — with trackId, with raw track attributes, without a track
  2.  Update — re-link replaces snapshot, unlink, author-only
  3.  Delete — author-only, cascades comments and likes
  4.  Feed — newest first, pagination, visibility
  5.  Likes and comments through HTTP
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from soundbytes.db.models import Comment, SoundByte, SoundByteLike, Track

BASE = "/api/v1/sound-bytes"


async def _create(client, headers, **body):
    body.setdefault("caption", "listen to this")
    resp = await client.post(BASE, json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ===========================================================================
# 1. Create
# ===========================================================================


class TestCreate:
    async def test_create_with_raw_track_attributes(self, client, alice, alice_headers):
        data = await _create(client, alice_headers, track={
            "title": "Archangel",
            "artist": "Burial",
            "genre": "dubstep",
            "coverArtUrl": "https://img.test/untrue.jpg",
        }, tags=["UK", "night", "uk"])

        assert data["author"] == {"id": alice.id, "username": "alice"}
        assert data["trackId"]
        assert data["title"] == "Archangel"
        assert data["artist"] == "Burial"
        assert data["genre"] == "dubstep"
        assert data["coverArtUrl"] == "https://img.test/untrue.jpg"
        assert data["tags"] == ["uk", "night"]
        assert data["visibility"] == "public"
        assert data["likesCount"] == 0
        assert data["commentsCount"] == 0
        assert data["comments"] == []

    async def test_create_with_track_id(self, client, alice_headers, db_session, registry):
        from soundbytes.models.tracks import TrackAttrs

        track = await registry.find_or_create(db_session, TrackAttrs(title="Known", artist="Band", genre="rock"))
        await db_session.commit()

        data = await _create(client, alice_headers, trackId=track.id)
        assert data["trackId"] == track.id
        assert data["genre"] == "rock"

    async def test_create_without_track(self, client, alice_headers):
        data = await _create(client, alice_headers, audioUrl="https://cdn.test/a.mp3")
        assert data["trackId"] is None
        assert data["title"] is None
        assert data["audioUrl"] == "https://cdn.test/a.mp3"

    async def test_same_track_from_two_posts_is_shared(self, client, alice_headers, bob_headers, db_session):
        a = await _create(client, alice_headers, track={"title": "Shared", "artist": "Band"})
        b = await _create(client, bob_headers, track={"title": "SHARED ", "artist": " band"})
        assert a["trackId"] == b["trackId"]
        count = (await db_session.execute(select(func.count()).select_from(Track))).scalar_one()
        assert count == 1

    async def test_unknown_track_id_is_not_found(self, client, alice_headers):
        resp = await client.post(BASE, json={"caption": "x", "trackId": "missing"}, headers=alice_headers)
        assert resp.status_code == 404

    async def test_both_track_and_track_id_is_bad_request(self, client, alice_headers):
        resp = await client.post(BASE, json={
            "caption": "x", "trackId": "abc", "track": {"title": "T", "artist": "A"},
        }, headers=alice_headers)
        assert resp.status_code == 400

    async def test_blank_caption_is_bad_request(self, client, alice_headers):
        resp = await client.post(BASE, json={"caption": "   "}, headers=alice_headers)
        assert resp.status_code == 400

    async def test_non_http_url_is_bad_request(self, client, alice_headers):
        resp = await client.post(BASE, json={"caption": "x", "audioUrl": "ftp://nope"}, headers=alice_headers)
        assert resp.status_code == 400

    async def test_author_is_never_taken_from_body(self, client, alice, bob, alice_headers):
        data = await _create(client, alice_headers, authorId=bob.id, author={"id": bob.id})
        assert data["author"]["id"] == alice.id

    async def test_create_requires_auth(self, client):
        resp = await client.post(BASE, json={"caption": "anon"})
        assert resp.status_code == 401


# ===========================================================================
# 2. Update
# ===========================================================================


class TestUpdate:
    async def test_relink_replaces_whole_snapshot(self, client, alice_headers):
        post = await _create(client, alice_headers, track={
            "title": "A", "artist": "X", "genre": "jazz",
            "coverArtUrl": "https://img.test/a.jpg", "soundClipUrl": "https://clip.test/a.mp3",
        })
        resp = await client.put(f"{BASE}/{post['id']}", json={
            "track": {"title": "B", "artist": "Y"},
        }, headers=alice_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["trackId"] != post["trackId"]
        assert data["title"] == "B"
        assert data["genre"] is None
        assert data["coverArtUrl"] is None
        assert data["soundClipUrl"] is None
        assert data["caption"] == post["caption"]

    async def test_unlink_with_null_track(self, client, alice_headers):
        post = await _create(client, alice_headers, track={"title": "A", "artist": "X"})
        resp = await client.put(f"{BASE}/{post['id']}", json={"track": None}, headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json()["trackId"] is None
        assert resp.json()["title"] is None

    async def test_partial_update_keeps_track(self, client, alice_headers):
        post = await _create(client, alice_headers, track={"title": "A", "artist": "X"})
        resp = await client.put(f"{BASE}/{post['id']}", json={
            "caption": "new words", "visibility": "private",
        }, headers=alice_headers)
        data = resp.json()
        assert data["caption"] == "new words"
        assert data["visibility"] == "private"
        assert data["trackId"] == post["trackId"]

    async def test_bad_track_id_leaves_post_unchanged(self, client, alice_headers):
        post = await _create(client, alice_headers, track={"title": "A", "artist": "X"})
        resp = await client.put(f"{BASE}/{post['id']}", json={
            "trackId": "missing", "caption": "should not stick",
        }, headers=alice_headers)
        assert resp.status_code == 404
        again = (await client.get(f"{BASE}/{post['id']}", headers=alice_headers)).json()
        assert again["trackId"] == post["trackId"]
        assert again["caption"] == post["caption"]

    async def test_non_author_is_forbidden(self, client, alice_headers, bob_headers):
        post = await _create(client, alice_headers)
        resp = await client.put(f"{BASE}/{post['id']}", json={"caption": "mine now"}, headers=bob_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "You're not allowed to do that!"

    async def test_missing_post_is_not_found(self, client, alice_headers):
        resp = await client.put(f"{BASE}/missing", json={"caption": "x"}, headers=alice_headers)
        assert resp.status_code == 404


# ===========================================================================
# 3. Delete
# ===========================================================================


class TestDelete:
    async def test_author_deletes_with_comments_and_likes(self, client, db_session, alice_headers, bob_headers):
        post = await _create(client, alice_headers)
        await client.post(f"{BASE}/{post['id']}/comments", json={"body": "nice"}, headers=bob_headers)
        await client.post(f"{BASE}/{post['id']}/like", headers=bob_headers)

        resp = await client.delete(f"{BASE}/{post['id']}", headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "deletedId": post["id"]}

        assert (await client.get(f"{BASE}/{post['id']}")).status_code == 404
        for model in (SoundByte, Comment, SoundByteLike):
            count = (await db_session.execute(select(func.count()).select_from(model))).scalar_one()
            assert count == 0

    async def test_non_author_cannot_delete(self, client, alice_headers, bob_headers):
        post = await _create(client, alice_headers)
        resp = await client.delete(f"{BASE}/{post['id']}", headers=bob_headers)
        assert resp.status_code == 403
        assert (await client.get(f"{BASE}/{post['id']}")).status_code == 200


# ===========================================================================
# 4. Feed and visibility
# ===========================================================================


class TestFeed:
    async def _seed(self, db_session, author, n: int) -> list[str]:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        ids = []
        for i in range(n):
            post = SoundByte(
                author=author, author_id=author.id, caption=f"post {i}", tags=[], visibility="public",
                likes_count=0, comments_count=0, comments=[], created_at=base + timedelta(minutes=i),
            )
            db_session.add(post)
            await db_session.flush()
            ids.append(post.id)
        await db_session.commit()
        return ids

    async def test_newest_first(self, client, db_session, alice):
        ids = await self._seed(db_session, alice, 3)
        resp = await client.get(BASE)
        assert resp.status_code == 200
        page = resp.json()
        assert page["total"] == 3
        assert [p["id"] for p in page["items"]] == list(reversed(ids))

    async def test_pagination(self, client, db_session, alice):
        ids = await self._seed(db_session, alice, 5)
        page = (await client.get(BASE, params={"limit": 2, "skip": 2})).json()
        assert page["total"] == 5
        assert page["limit"] == 2
        assert page["skip"] == 2
        assert [p["id"] for p in page["items"]] == [ids[2], ids[1]]

    async def test_limit_is_capped(self, client, alice):
        page = (await client.get(BASE, params={"limit": 10_000})).json()
        assert page["limit"] == 100

    @pytest.mark.parametrize("params", [{"limit": 0}, {"skip": -1}, {"limit": "many"}])
    async def test_bad_paging_is_bad_request(self, client, params):
        assert (await client.get(BASE, params=params)).status_code == 400

    async def test_visibility(self, client, alice, bob, make_user, headers_for, alice_headers, bob_headers):
        carol = await make_user("carol")
        public = await _create(client, alice_headers, caption="for everyone")
        friends = await _create(client, alice_headers, caption="for followers", visibility="friends")
        private = await _create(client, alice_headers, caption="for me", visibility="private")

        await client.post(f"/api/v1/users/{alice.id}/follow", headers=bob_headers)

        def ids(resp):
            return {p["id"] for p in resp.json()["items"]}

        assert ids(await client.get(BASE)) == {public["id"]}
        assert ids(await client.get(BASE, headers=bob_headers)) == {public["id"], friends["id"]}
        assert ids(await client.get(BASE, headers=headers_for(carol))) == {public["id"]}
        assert ids(await client.get(BASE, headers=alice_headers)) == {public["id"], friends["id"], private["id"]}

        assert (await client.get(f"{BASE}/{private['id']}", headers=bob_headers)).status_code == 404
        assert (await client.get(f"{BASE}/{friends['id']}")).status_code == 404
        assert (await client.get(f"{BASE}/{friends['id']}", headers=bob_headers)).status_code == 200


# ===========================================================================
# 5. Likes and comments
# ===========================================================================


class TestEngagementEndpoints:
    async def test_like_and_unlike(self, client, alice_headers, bob_headers):
        post = await _create(client, alice_headers)
        url = f"{BASE}/{post['id']}"

        resp = await client.post(f"{url}/like", headers=bob_headers)
        assert resp.json() == {"id": post["id"], "likesCount": 1, "liked": True}
        resp = await client.post(f"{url}/like", headers=bob_headers)
        assert resp.json()["likesCount"] == 1

        resp = await client.post(f"{url}/unlike", headers=bob_headers)
        assert resp.json()["likesCount"] == 0
        resp = await client.post(f"{url}/unlike", headers=bob_headers)
        assert resp.json() == {"id": post["id"], "likesCount": 0, "liked": False}

    async def test_like_requires_auth(self, client, alice_headers):
        post = await _create(client, alice_headers)
        assert (await client.post(f"{BASE}/{post['id']}/like")).status_code == 401

    async def test_like_missing_post(self, client, alice_headers):
        assert (await client.post(f"{BASE}/missing/like", headers=alice_headers)).status_code == 404

    async def test_like_with_token_for_deleted_account(
        self, client, db_session, alice_headers, make_user, headers_for,
    ):
        post = await _create(client, alice_headers)
        ghost = await make_user("ghost")
        headers = headers_for(ghost)
        await db_session.delete(ghost)
        await db_session.commit()

        resp = await client.post(f"{BASE}/{post['id']}/like", headers=headers)
        assert resp.status_code == 401
        assert (await client.get(f"{BASE}/{post['id']}")).json()["likesCount"] == 0

    async def test_comment_lifecycle(self, client, alice_headers, bob_headers, bob):
        post = await _create(client, alice_headers)
        url = f"{BASE}/{post['id']}/comments"

        resp = await client.post(url, json={"body": "  great pick  "}, headers=bob_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["commentsCount"] == 1
        comment = data["comments"][0]
        assert comment["body"] == "great pick"
        assert comment["author"]["id"] == bob.id

        resp = await client.put(f"{url}/{comment['id']}", json={"body": "great pick!"}, headers=alice_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "You are not authorized to edit this comment"

        resp = await client.put(f"{url}/{comment['id']}", json={"body": "great pick!"}, headers=bob_headers)
        assert resp.status_code == 200
        assert resp.json()["body"] == "great pick!"

        resp = await client.delete(f"{url}/{comment['id']}", headers=alice_headers)
        assert resp.status_code == 403

        resp = await client.delete(f"{url}/{comment['id']}", headers=bob_headers)
        assert resp.status_code == 204

        resp = await client.delete(f"{url}/{comment['id']}", headers=bob_headers)
        assert resp.status_code == 404

        after = (await client.get(f"{BASE}/{post['id']}")).json()
        assert after["commentsCount"] == 0
        assert after["comments"] == []

    async def test_blank_comment_is_bad_request(self, client, alice_headers):
        post = await _create(client, alice_headers)
        resp = await client.post(f"{BASE}/{post['id']}/comments", json={"body": " "}, headers=alice_headers)
        assert resp.status_code == 400

    async def test_cannot_comment_on_invisible_post(self, client, alice_headers, bob_headers):
        post = await _create(client, alice_headers, visibility="private")
        resp = await client.post(f"{BASE}/{post['id']}/comments", json={"body": "hi"}, headers=bob_headers)
        assert resp.status_code == 404
