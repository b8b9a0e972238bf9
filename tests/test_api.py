from sqlalchemy.exc import OperationalError

from conftest import PASSWORD, auth_headers
from videotube.database import get_db
from videotube.main import app

API = "/api/v1"
MISSING_ID = "0" * 32


class TestEnvelope:
    """Every response, success or failure, uses the same envelope"""

    async def test_healthcheck(self, client):
        response = await client.get(f"{API}/healthcheck")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status_code"] == 200
        assert body["data"]["database"] == "ok"
        assert body["data"]["redis"] == "disabled"

    async def test_healthcheck_reports_unavailable_database(self, client):
        class UnreachableSession:
            async def execute(self, statement):
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        async def unreachable_db():
            yield UnreachableSession()

        app.dependency_overrides[get_db] = unreachable_db

        response = await client.get(f"{API}/healthcheck")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["status_code"] == 503
        assert body["data"]["status"] == "degraded"
        assert body["data"]["database"] == "unavailable"

    async def test_missing_token(self, client):
        response = await client.post(f"{API}/tweets", json={"content": "hi"})

        assert response.status_code == 401
        assert response.json() == {
            "status_code": 401,
            "data": {},
            "message": "Unauthorized request",
            "success": False,
        }

    async def test_invalid_token(self, client):
        response = await client.get(
            f"{API}/users/current-user", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid access token"

    async def test_not_found(self, client):
        response = await client.get(f"{API}/videos/{MISSING_ID}")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Video not found"

    async def test_malformed_id(self, client):
        response = await client.get(f"{API}/videos/not-an-id")

        assert response.status_code == 400
        assert response.json()["message"] == "Video ID is invalid"

    async def test_request_validation(self, client, seed):
        user = await seed.user()

        response = await client.post(f"{API}/tweets", json={}, headers=auth_headers(user))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"]["errors"]

    async def test_unknown_route(self, client):
        response = await client.get(f"{API}/nothing-here")

        assert response.status_code == 404
        assert response.json()["success"] is False


class TestUserEndpoints:
    """Account flow over HTTP"""

    async def test_register_login_and_current_user(self, client, media):
        form = {
            "username": "Newbie",
            "email": "newbie@example.com",
            "full_name": "New Bie",
            "password": "pw-123456",
        }
        files = {"avatar": ("me.png", b"\x89PNG-bytes", "image/png")}

        registered = await client.post(f"{API}/users/register", data=form, files=files)
        assert registered.status_code == 201
        assert registered.json()["data"]["username"] == "newbie"
        assert "hashed_password" not in registered.json()["data"]
        assert len(media.uploaded) == 1

        duplicate = await client.post(f"{API}/users/register", data=form, files=files)
        assert duplicate.status_code == 409
        assert duplicate.json()["message"] == "User with email or username already exists"

        login = await client.post(
            f"{API}/users/login", json={"email": "newbie@example.com", "password": "pw-123456"}
        )
        assert login.status_code == 200
        tokens = login.json()["data"]
        assert tokens["token_type"] == "bearer"

        me = await client.get(
            f"{API}/users/current-user",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "newbie@example.com"

    async def test_rejected_registration_leaves_no_temp_files(self, client, seed, tmp_path):
        await seed.user("taken")
        form = {
            "username": "taken",
            "email": "someone-else@example.com",
            "full_name": "Some One",
            "password": "pw-123456",
        }
        files = {
            "avatar": ("me.png", b"\x89PNG-bytes", "image/png"),
            "cover_image": ("cover.png", b"\x89PNG-cover", "image/png"),
        }

        response = await client.post(f"{API}/users/register", data=form, files=files)

        assert response.status_code == 409
        assert list((tmp_path / "temp").iterdir()) == []

    async def test_logout_invalidates_refresh_token(self, client, seed):
        user = await seed.user("walker")
        login = await client.post(f"{API}/users/login", json={"username": "walker", "password": PASSWORD})
        refresh_token = login.json()["data"]["refresh_token"]

        logout = await client.post(f"{API}/users/logout", headers=auth_headers(user))
        assert logout.status_code == 200

        refreshed = await client.post(f"{API}/users/refresh-token", json={"refresh_token": refresh_token})
        assert refreshed.status_code == 401

    async def test_channel_profile(self, client, seed):
        channel = await seed.user("creator")
        fan = await seed.user()
        await seed.subscription(fan, channel)

        response = await client.get(f"{API}/users/c/creator", headers=auth_headers(fan))

        data = response.json()["data"]
        assert data["subscribers_count"] == 1
        assert data["is_subscribed"] is True


class TestRelationEndpoints:
    """Like and subscription toggles over HTTP"""

    async def test_like_toggle(self, client, seed):
        owner = await seed.user()
        fan = await seed.user()
        video = await seed.video(owner)
        url = f"{API}/likes/toggle/v/{video.id}"

        liked = await client.post(url, headers=auth_headers(fan))
        assert liked.status_code == 201
        assert liked.json()["message"] == "Video Liked"
        assert liked.json()["data"]["video_id"] == video.id

        unliked = await client.post(url, headers=auth_headers(fan))
        assert unliked.status_code == 200
        assert unliked.json()["message"] == "Video Unliked"
        assert unliked.json()["data"] == {}

    async def test_no_liked_videos(self, client, seed):
        fan = await seed.user()

        response = await client.get(f"{API}/likes/videos", headers=auth_headers(fan))

        assert response.status_code == 200
        assert response.json()["message"] == "No liked videos found"
        assert response.json()["data"]["items"] == []

    async def test_subscription_toggle(self, client, seed):
        channel = await seed.user()
        fan = await seed.user()
        url = f"{API}/subscriptions/c/{channel.id}"

        added = await client.post(url, headers=auth_headers(fan))
        assert added.status_code == 201
        assert added.json()["message"] == "Subscription added successfully"

        subscribers = await client.get(url)
        assert subscribers.json()["data"]["total"] == 1

        removed = await client.post(url, headers=auth_headers(fan))
        assert removed.status_code == 200
        assert removed.json()["message"] == "Subscription removed successfully"

    async def test_self_subscription(self, client, seed):
        user = await seed.user()

        response = await client.post(f"{API}/subscriptions/c/{user.id}", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["message"] == "You cannot subscribe to your own channel"


class TestContentEndpoints:
    """Videos, comments and playlists over HTTP"""

    async def test_publish_and_fetch_video(self, client, seed, media):
        owner = await seed.user()
        files = {
            "video_file": ("clip.mp4", b"video-bytes", "video/mp4"),
            "thumbnail": ("thumb.png", b"png-bytes", "image/png"),
        }

        published = await client.post(
            f"{API}/videos",
            data={"title": "My clip", "description": "A short clip"},
            files=files,
            headers=auth_headers(owner),
        )
        assert published.status_code == 201
        video = published.json()["data"]
        assert video["duration"] == 42.5
        assert video["video_file"].startswith("https://media.test/")

        fetched = await client.get(f"{API}/videos/{video['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["data"]["owner"]["id"] == owner.id
        assert fetched.json()["data"]["likes_count"] == 0

    async def test_foreign_video_update_is_forbidden(self, client, seed):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner)

        response = await client.patch(
            f"{API}/videos/{video.id}",
            data={"title": "mine now", "description": "hijacked"},
            headers=auth_headers(stranger),
        )

        assert response.status_code == 403
        assert response.json()["success"] is False

    async def test_forbidden_update_leaves_no_temp_files(self, client, seed, media, tmp_path):
        owner = await seed.user()
        stranger = await seed.user()
        video = await seed.video(owner)

        response = await client.patch(
            f"{API}/videos/{video.id}",
            data={"title": "mine now", "description": "hijacked"},
            files={"thumbnail": ("thumb.png", b"png-bytes", "image/png")},
            headers=auth_headers(stranger),
        )

        assert response.status_code == 403
        assert media.uploaded == []
        assert list((tmp_path / "temp").iterdir()) == []

    async def test_published_video_leaves_no_temp_files(self, client, seed, tmp_path):
        owner = await seed.user()
        files = {
            "video_file": ("clip.mp4", b"video-bytes", "video/mp4"),
            "thumbnail": ("thumb.png", b"png-bytes", "image/png"),
        }

        response = await client.post(
            f"{API}/videos",
            data={"title": "My clip", "description": "A short clip"},
            files=files,
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        assert list((tmp_path / "temp").iterdir()) == []

    async def test_comment_pagination_falls_back(self, client, seed):
        owner = await seed.user()
        video = await seed.video(owner)
        for i in range(3):
            await seed.comment(video, owner, f"comment {i}")

        response = await client.get(f"{API}/comments/{video.id}?page=abc&limit=-1")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["page"] == 1
        assert data["limit"] == 10
        assert data["total"] == 3

    async def test_playlist_flow(self, client, seed):
        curator = await seed.user()
        video = await seed.video(curator, views=7)
        headers = auth_headers(curator)

        created = await client.post(
            f"{API}/playlists", json={"name": "Mix", "description": "Favourites"}, headers=headers
        )
        assert created.status_code == 201
        playlist_id = created.json()["data"]["id"]

        added = await client.patch(f"{API}/playlists/add/{video.id}/{playlist_id}", headers=headers)
        assert added.json()["data"]["video_ids"] == [video.id]

        fetched = await client.get(f"{API}/playlists/{playlist_id}")
        data = fetched.json()["data"]
        assert data["total_videos"] == 1
        assert data["total_views"] == 7
        assert [v["id"] for v in data["videos"]] == [video.id]

        deleted = await client.delete(f"{API}/playlists/{playlist_id}", headers=headers)
        assert deleted.status_code == 200
