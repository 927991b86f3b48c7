"""Family membership tests: creation, joining, approval and the member gate"""

from tests.factories import add_member, create_family, me, notifications_of, request_join


# =============================================================================
# Create / list
# =============================================================================

class TestCreateFamily:
    """Creating a family and reading it back"""

    def test_creator_is_admin_with_one_member(self, client, alice):
        family = create_family(client, alice, "The Smiths")

        assert len(family["joinToken"]) == 12
        assert family["description"] == "We are a happy family!"

        listed = client.get("/families", headers=alice).json()["data"]
        assert len(listed) == 1
        assert listed[0]["id"] == family["familyId"]
        assert listed[0]["isAdmin"] is True
        assert listed[0]["memberCount"] == 1
        assert listed[0]["userMembershipStatus"] == "APPROVED"

    def test_creator_gets_self_notification(self, client, alice):
        create_family(client, alice, "The Smiths")

        items = notifications_of(client, alice)
        assert len(items) == 1
        assert items[0]["content"] == 'You\'ve successfully created the family "The Smiths"!'

    def test_duplicate_name_rejected(self, client, alice):
        create_family(client, alice, "The Smiths")

        response = client.post("/families/create", json={"name": "The Smiths"}, headers=alice)

        assert response.status_code == 400
        assert response.json()["message"] == "You already have a family with this name"

    def test_same_name_allowed_for_another_user(self, client, alice, bob):
        create_family(client, alice, "The Smiths")
        create_family(client, bob, "The Smiths")

    def test_name_too_short(self, client, alice):
        response = client.post("/families/create", json={"name": "A"}, headers=alice)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "name"


# =============================================================================
# Join / approve / reject
# =============================================================================

class TestJoinFamily:
    """Joining through the invite token"""

    def test_join_creates_pending_membership(self, client, alice, bob):
        family = create_family(client, alice)

        joined = request_join(client, bob, family["joinToken"])

        assert joined["status"] == "PENDING"
        assert joined["admins"] == 1

        listed = client.get("/families", headers=bob).json()["data"]
        assert listed[0]["userMembershipStatus"] == "PENDING"
        assert listed[0]["isAdmin"] is False

    def test_join_twice_is_refused(self, client, alice, bob):
        family = create_family(client, alice)
        request_join(client, bob, family["joinToken"])

        response = client.post("/families/join", json={"token": family["joinToken"]}, headers=bob)

        assert response.status_code == 400
        assert response.json()["message"] == "You are already a member of this family"

        requests = client.get(f"/families/{family['familyId']}/requests", headers=alice).json()["data"]
        assert len(requests) == 1

    def test_creator_cannot_join_own_family(self, client, alice):
        family = create_family(client, alice)

        response = client.post("/families/join", json={"token": family["joinToken"]}, headers=alice)

        assert response.status_code == 400

    def test_unknown_token(self, client, bob):
        response = client.post("/families/join", json={"token": "deadbeef0000"}, headers=bob)

        assert response.status_code == 404
        assert response.json()["message"] == "Invalid invite code"

    def test_join_notifies_requester_and_admins(self, client, alice, bob):
        family = create_family(client, alice, "The Smiths")
        request_join(client, bob, family["joinToken"])

        bob_items = notifications_of(client, bob, "JOIN_REQUEST")
        alice_items = notifications_of(client, alice, "JOIN_REQUEST")

        assert len(bob_items) == 1
        assert "Please wait for admin approval" in bob_items[0]["content"]
        assert len(alice_items) == 1
        assert alice_items[0]["content"].startswith("Bob Member has requested to join")

    def test_approve_makes_member(self, client, alice, bob, carol):
        family = create_family(client, alice)
        add_member(client, alice, carol, family)
        add_member(client, alice, bob, family)

        detail = client.get(f"/families/{family['familyId']}", headers=bob)
        assert detail.status_code == 200
        assert detail.json()["data"]["memberCount"] == 3

        assert len(notifications_of(client, bob, "REQUEST_APPROVED")) == 1
        # Carol hears about Bob; Alice approved him herself
        assert len(notifications_of(client, carol, "NEW_MEMBER")) == 1
        assert notifications_of(client, alice, "NEW_MEMBER") == []

    def test_reject_removes_request(self, client, alice, bob):
        family = create_family(client, alice)
        joined = request_join(client, bob, family["joinToken"])

        response = client.post(
            f"/families/{family['familyId']}/requests",
            json={"memberId": joined["member"]["id"], "action": "REJECTED"},
            headers=alice,
        )

        assert response.status_code == 200
        assert client.get("/families", headers=bob).json()["data"] == []
        assert len(notifications_of(client, bob, "REQUEST_REJECTED")) == 1

        # A rejected user can ask again
        request_join(client, bob, family["joinToken"])

    def test_member_cannot_decide_requests(self, client, alice, bob, carol):
        family = create_family(client, alice)
        add_member(client, alice, bob, family)
        joined = request_join(client, carol, family["joinToken"])

        response = client.post(
            f"/families/{family['familyId']}/requests",
            json={"memberId": joined["member"]["id"], "action": "APPROVED"},
            headers=bob,
        )

        assert response.status_code == 403


# =============================================================================
# Member gate
# =============================================================================

class TestMembershipGate:
    """Callers without an APPROVED membership get 403"""

    def test_pending_member_cannot_read_family(self, client, alice, bob):
        family = create_family(client, alice)
        request_join(client, bob, family["joinToken"])

        response = client.get(f"/families/{family['familyId']}", headers=bob)

        assert response.status_code == 403

    def test_outsider_post_is_403_even_with_invalid_body(self, client, alice, outsider):
        family = create_family(client, alice)

        response = client.post(f"/families/{family['familyId']}/posts", json={}, headers=outsider)

        assert response.status_code == 403

    def test_member_with_invalid_body_gets_400(self, client, alice):
        family = create_family(client, alice)

        response = client.post(f"/families/{family['familyId']}/posts", json={}, headers=alice)

        assert response.status_code == 400

    def test_only_creator_updates_family(self, client, alice, bob):
        family = create_family(client, alice)
        add_member(client, alice, bob, family)

        response = client.put(f"/families/{family['familyId']}", json={"name": "x"}, headers=bob)
        assert response.status_code == 403

        response = client.put(
            f"/families/{family['familyId']}",
            json={"name": "The Joneses", "description": "Renamed"},
            headers=alice,
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "The Joneses"

    def test_delete_family(self, client, alice, bob):
        family = create_family(client, alice)
        add_member(client, alice, bob, family)

        assert client.delete(f"/families/{family['familyId']}", headers=bob).status_code == 403
        assert client.delete(f"/families/{family['familyId']}", headers=alice).status_code == 204
        assert client.get("/families", headers=alice).json()["data"] == []

    def test_unknown_family_is_404(self, client, alice):
        response = client.get("/families/does-not-exist", headers=alice)

        assert response.status_code == 404


# =============================================================================
# Members, stats
# =============================================================================

class TestMembersAndStats:
    """Member listing order and monthly stats"""

    def test_admin_listed_first_then_join_order(self, client, alice, bob, carol):
        family = create_family(client, alice)
        add_member(client, alice, bob, family)
        add_member(client, alice, carol, family)

        data = client.get(
            f"/families/{family['familyId']}/members?page=1&limit=2", headers=carol
        ).json()["data"]

        names = [m["user"]["fullName"] for m in data["members"]]
        assert names == ["Alice Admin", "Bob Member"]
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "hasMore": True}

    def test_member_user_lookup(self, client, alice, bob):
        family = create_family(client, alice)
        member_id = add_member(client, alice, bob, family)

        response = client.get(
            f"/families/{family['familyId']}/members/{member_id}/user", headers=alice
        )

        assert response.status_code == 200
        assert response.json()["data"]["id"] == me(client, bob)["id"]

    def test_stats_count_this_month(self, client, alice):
        family = create_family(client, alice)
        client.post(f"/families/{family['familyId']}/posts", json={"text": "Hi"}, headers=alice)

        data = client.get(f"/families/{family['familyId']}/stats", headers=alice).json()["data"]

        assert data["memberCount"] == 1
        assert data["posts"] == {"used": 1, "limit": 30}
        assert data["albums"] == {"used": 0, "limit": 5}
        assert data["events"] == {"used": 0, "limit": 3}
