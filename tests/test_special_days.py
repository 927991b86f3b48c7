"""Family event (special day) tests"""

from datetime import datetime, timedelta

import pytest

from tests.factories import add_member, create_album, create_family, notifications_of


@pytest.fixture
def family(client, alice, bob):
    fam = create_family(client, alice, "Event Family")
    add_member(client, alice, bob, fam)
    return fam


def in_days(days: int) -> str:
    return (datetime.utcnow() + timedelta(days=days)).isoformat()


def create_day(client, headers, family_id, title="Grandma's 90th", days=2, **extra):
    body = {"title": title, "date": in_days(days), "type": "BIRTHDAY", "familyId": family_id, **extra}
    return client.post("/special-days", json=body, headers=headers)


class TestSpecialDays:
    """Creating, listing and managing special days"""

    def test_create_notifies_members(self, client, alice, bob, family):
        response = create_day(client, bob, family["familyId"], venue="Town hall")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["isFamilyAdmin"] is False

        items = notifications_of(client, alice, "SPECIAL_DAY")
        assert [n["content"] for n in items] == [
            "Bob Member added a new event \"Grandma's 90th\" in Event Family"
        ]

    def test_outsider_is_403_even_with_bad_body(self, client, carol, family):
        response = client.post(
            "/special-days", json={"familyId": family["familyId"]}, headers=carol
        )

        assert response.status_code == 403

    def test_unknown_type_rejected(self, client, alice, family):
        response = create_day(client, alice, family["familyId"], type="PARTY")

        assert response.status_code == 400

    def test_time_frames(self, client, alice, family):
        create_day(client, alice, family["familyId"], "Soon", days=2)
        create_day(client, alice, family["familyId"], "Later", days=60)
        create_day(client, alice, family["familyId"], "Long ago", days=-30)

        week = client.get("/special-days?timeFrame=thisweek", headers=alice).json()["data"]
        year = client.get("/special-days?timeFrame=thisyear", headers=alice).json()["data"]
        default = client.get("/special-days", headers=alice).json()["data"]

        assert [d["title"] for d in week] == ["Soon"]
        assert [d["title"] for d in year] == ["Soon", "Later"]
        assert [d["title"] for d in default] == ["Soon"]
        assert week[0]["isFamilyAdmin"] is True

    def test_only_family_creator_edits(self, client, alice, bob, family):
        day = create_day(client, bob, family["familyId"]).json()["data"]

        assert client.patch(f"/special-days/{day['id']}", json={"title": "Mine"}, headers=bob).status_code == 403
        assert client.patch(f"/special-days/{day['id']}", json={}, headers=alice).status_code == 400

        response = client.patch(f"/special-days/{day['id']}", json={"venue": "Garden"}, headers=alice)
        assert response.status_code == 200
        assert response.json()["data"]["venue"] == "Garden"

    def test_delete_unlinks_albums(self, client, alice, family):
        day = create_day(client, alice, family["familyId"]).json()["data"]
        album = create_album(client, alice, [family["familyId"]], "Party pics", eventId=day["id"])
        assert album["event"]["id"] == day["id"]

        assert client.delete(f"/special-days/{day['id']}", headers=alice).status_code == 200

        refreshed = client.get(f"/albums/{album['id']}", headers=alice).json()["data"]
        assert refreshed["eventId"] is None

    def test_unknown_time_frame_falls_back_to_month(self, client, alice, family):
        create_day(client, alice, family["familyId"], "Soon", days=2)
        create_day(client, alice, family["familyId"], "Later", days=60)

        response = client.get("/special-days?timeFrame=week", headers=alice)

        assert response.status_code == 200
        assert [d["title"] for d in response.json()["data"]] == ["Soon"]

    def test_all_includes_past_events(self, client, alice, family):
        create_day(client, alice, family["familyId"], "Long ago", days=-30)
        create_day(client, alice, family["familyId"], "Soon", days=2)

        data = client.get("/special-days?timeFrame=ALL", headers=alice).json()["data"]

        assert [d["title"] for d in data] == ["Long ago", "Soon"]
