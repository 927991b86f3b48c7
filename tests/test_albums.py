"""Album and media upload tests: quota, validation, compensation, ownership"""

import os

import pytest

from fambook.core import notifications as notifications_module
from fambook.errors import DependencyError
from tests.factories import add_member, create_album, create_family, image, notifications_of


@pytest.fixture
def family(client, alice, bob):
    fam = create_family(client, alice, "Album Family")
    add_member(client, alice, bob, fam)
    return fam


def album_dir(media_root: str, album_id: str) -> str:
    return os.path.join(media_root, "albums", album_id)


def stored_files(media_root: str, album_id: str) -> list[str]:
    path = album_dir(media_root, album_id)
    return os.listdir(path) if os.path.isdir(path) else []


# =============================================================================
# Albums
# =============================================================================

class TestAlbums:
    """Creating, listing and managing albums"""

    def test_create_in_several_families(self, client, alice, family):
        second = create_family(client, alice, "Second Family")

        response = client.post(
            "/albums",
            json={"name": "Holidays", "familyIds": [family["familyId"], second["familyId"]]},
            headers=alice,
        )

        assert response.status_code == 201
        assert {a["family"]["name"] for a in response.json()["data"]} == {"Album Family", "Second Family"}
        assert len(client.get("/albums", headers=alice).json()["data"]) == 2

    def test_media_limit_defaults_to_setting(self, client, alice, family):
        from fambook.config import settings

        album = create_album(client, alice, [family["familyId"]], "Defaults")
        assert album["mediaLimit"] == settings.DEFAULT_MEDIA_LIMIT

        response = client.post(
            "/albums",
            json={"name": "Too big", "familyIds": [family["familyId"]], "mediaLimit": settings.DEFAULT_MEDIA_LIMIT + 1},
            headers=alice,
        )
        assert response.status_code == 400

    def test_non_member_families_are_skipped(self, client, alice, carol, family):
        other = create_family(client, carol, "Carol Family")

        response = client.post(
            "/albums",
            json={"name": "Mixed", "familyIds": [family["familyId"], other["familyId"]]},
            headers=alice,
        )

        assert response.status_code == 201
        assert [a["familyId"] for a in response.json()["data"]] == [family["familyId"]]

    def test_no_member_family_is_403(self, client, carol, family):
        response = client.post(
            "/albums",
            json={"name": "Nope", "familyIds": [family["familyId"]]},
            headers=carol,
        )

        assert response.status_code == 403

    def test_new_album_notifies_other_members(self, client, alice, bob, family):
        create_album(client, alice, [family["familyId"]], "Summer")

        items = notifications_of(client, bob, "NEW_ALBUM")
        assert [n["content"] for n in items] == ['Alice Admin created a new album "Summer" in Album Family']

    def test_only_family_creator_updates(self, client, alice, bob, family):
        album = create_album(client, alice, [family["familyId"]])

        assert client.put(f"/albums/{album['id']}", json={"name": "Bob's"}, headers=bob).status_code == 403
        assert client.put(f"/albums/{album['id']}", json={}, headers=alice).status_code == 400

        response = client.put(f"/albums/{album['id']}", json={"name": "Renamed"}, headers=alice)
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"

    def test_delete_album(self, client, alice, bob, family):
        album = create_album(client, alice, [family["familyId"]])

        assert client.delete(f"/albums/{album['id']}", headers=bob).status_code == 403
        assert client.delete(f"/albums/{album['id']}", headers=alice).status_code == 200
        assert client.get(f"/albums/{album['id']}", headers=alice).status_code == 404


# =============================================================================
# Media uploads
# =============================================================================

class TestMediaUpload:
    """POST /albums/{id}/media"""

    def test_upload_stores_files_and_notifies(self, client, alice, bob, family, media_root):
        album = create_album(client, alice, [family["familyId"]], "Beach")

        response = client.post(
            f"/albums/{album['id']}/media",
            files=[image("a.jpg"), image("b.jpg")],
            data={"captions": ["Sunset", "Waves"]},
            headers=bob,
        )

        assert response.status_code == 201
        media = response.json()["data"]
        assert [m["caption"] for m in media] == ["Sunset", "Waves"]
        assert all(m["type"] == "PHOTO" for m in media)
        assert len(stored_files(media_root, album["id"])) == 2

        detail = client.get(f"/albums/{album['id']}", headers=alice).json()["data"]
        assert detail["mediaCount"] == 2
        assert detail["coverImage"] in {m["url"] for m in media}

        items = notifications_of(client, alice, "NEW_ALBUM")
        assert 'Bob Member added 2 new items to "Beach"' in [n["content"] for n in items]

    def test_batch_over_quota_is_rejected_whole(self, client, alice, family, media_root):
        album = create_album(client, alice, [family["familyId"]], mediaLimit=2)
        client.post(f"/albums/{album['id']}/media", files=[image()], headers=alice)

        response = client.post(
            f"/albums/{album['id']}/media",
            files=[image("x.jpg"), image("y.jpg")],
            headers=alice,
        )

        assert response.status_code == 400
        detail = client.get(f"/albums/{album['id']}", headers=alice).json()["data"]
        assert detail["mediaCount"] == 1
        assert len(stored_files(media_root, album["id"])) == 1

    def test_invalid_file_rejects_batch(self, client, alice, family, media_root):
        album = create_album(client, alice, [family["familyId"]])

        response = client.post(
            f"/albums/{album['id']}/media",
            files=[image(), ("files", ("notes.txt", b"text", "text/plain"))],
            headers=alice,
        )

        assert response.status_code == 400
        assert stored_files(media_root, album["id"]) == []

    def test_empty_file_rejected(self, client, alice, family):
        album = create_album(client, alice, [family["familyId"]])

        response = client.post(f"/albums/{album['id']}/media", files=[image(content=b"")], headers=alice)

        assert response.status_code == 400

    def test_outsider_upload_is_403(self, client, alice, carol, family):
        album = create_album(client, alice, [family["familyId"]])

        response = client.post(f"/albums/{album['id']}/media", files=[image()], headers=carol)

        assert response.status_code == 403

    def test_stored_files_removed_when_record_fails(self, client, alice, family, media_root, monkeypatch):
        album = create_album(client, alice, [family["familyId"]])

        def boom(*args, **kwargs):
            raise DependencyError("Notification store unavailable")

        monkeypatch.setattr(notifications_module, "notify_family", boom)

        response = client.post(
            f"/albums/{album['id']}/media",
            files=[image("a.jpg"), image("b.jpg")],
            headers=alice,
        )

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert stored_files(media_root, album["id"]) == []

        monkeypatch.undo()
        detail = client.get(f"/albums/{album['id']}", headers=alice).json()["data"]
        assert detail["mediaCount"] == 0


# =============================================================================
# Single media
# =============================================================================

class TestAlbumMedia:
    """Caption edits and media deletion"""

    @pytest.fixture
    def uploaded(self, client, alice, family):
        album = create_album(client, alice, [family["familyId"]])
        media = client.post(f"/albums/{album['id']}/media", files=[image()], headers=alice).json()["data"][0]
        return album, media

    def test_update_caption(self, client, bob, uploaded):
        album, media = uploaded

        response = client.patch(
            f"/albums/{album['id']}/media/{media['id']}", json={"caption": "Family picnic"}, headers=bob
        )

        assert response.status_code == 200
        assert response.json()["data"]["caption"] == "Family picnic"

    def test_media_must_belong_to_album(self, client, alice, family, uploaded):
        _, media = uploaded
        other = create_album(client, alice, [family["familyId"]], "Other")

        response = client.patch(
            f"/albums/{other['id']}/media/{media['id']}", json={"caption": "x"}, headers=alice
        )

        assert response.status_code == 404

    def test_delete_media_removes_file(self, client, alice, uploaded, media_root):
        album, media = uploaded
        assert len(stored_files(media_root, album["id"])) == 1

        response = client.delete(f"/albums/{album['id']}/media/{media['id']}", headers=alice)

        assert response.status_code == 200
        assert stored_files(media_root, album["id"]) == []
