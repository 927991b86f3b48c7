"""Family tree tests: root lifecycle, editor save, node deletion guard, member links"""

import pytest

from tests.factories import add_member, create_family, request_join


def node(node_id: str, first: str = "Anna", last: str = "Smith", **extra) -> dict:
    return {"id": node_id, "firstName": first, "lastName": last, **extra}


def relation(rel_id: str, src: str, dst: str, kind: str = "PARENT") -> dict:
    return {"id": rel_id, "fromNodeId": src, "toNodeId": dst, "relationType": kind}


@pytest.fixture
def family(client, alice):
    return create_family(client, alice, "Tree Family")


@pytest.fixture
def root(client, alice, family):
    response = client.post(
        "/roots",
        json={"name": "Our Tree", "familyId": family["familyId"]},
        headers=alice,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def tree_url(family, root) -> str:
    return f"/families/{family['familyId']}/roots/{root['id']}"


# =============================================================================
# Root lifecycle
# =============================================================================

class TestRoots:
    """Creating, listing and deleting family roots"""

    def test_one_root_per_family(self, client, alice, family, root):
        response = client.post(
            "/roots",
            json={"name": "Second Tree", "familyId": family["familyId"]},
            headers=alice,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "A family tree already exists for this family"

    def test_pending_member_may_create_root(self, client, alice, bob, family):
        request_join(client, bob, family["joinToken"])

        response = client.post(
            "/roots",
            json={"name": "Bob's Tree", "familyId": family["familyId"]},
            headers=bob,
        )

        assert response.status_code == 201

    def test_outsider_cannot_create_root(self, client, outsider, family):
        response = client.post(
            "/roots",
            json={"name": "Nope", "familyId": family["familyId"]},
            headers=outsider,
        )

        assert response.status_code == 403

    def test_list_roots(self, client, alice, root):
        data = client.get("/roots", headers=alice).json()["data"]

        assert len(data) == 1
        assert data[0]["id"] == root["id"]
        assert data[0]["nodeCount"] == 0
        assert data[0]["family"]["name"] == "Tree Family"
        assert data[0]["isAdmin"] is True

    def test_only_family_creator_deletes_root(self, client, alice, bob, family, root):
        add_member(client, alice, bob, family)

        assert client.delete(f"/roots/{root['id']}", headers=bob).status_code == 403
        assert client.delete(f"/roots/{root['id']}", headers=alice).status_code == 200
        assert client.delete(f"/roots/{root['id']}", headers=alice).status_code == 404


# =============================================================================
# Editor save
# =============================================================================

class TestSaveTree:
    """Bulk upsert of nodes and relations"""

    def test_save_and_read_back(self, client, alice, family, root):
        response = client.put(
            tree_url(family, root),
            json={
                "nodes": [node("n1", "Grandma", positionX=10.5), node("n2", "Mum")],
                "relations": [relation("r1", "n1", "n2")],
            },
            headers=alice,
        )

        assert response.status_code == 200
        data = client.get(tree_url(family, root), headers=alice).json()["data"]
        assert {n["id"] for n in data["nodes"]} == {"n1", "n2"}
        assert data["relations"][0]["relationType"] == "PARENT"
        assert data["isAdmin"] is True

    def test_relations_missing_from_payload_are_removed(self, client, alice, family, root):
        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1"), node("n2")], "relations": [relation("r1", "n1", "n2")]},
            headers=alice,
        )

        client.put(tree_url(family, root), json={"relations": []}, headers=alice)

        data = client.get(tree_url(family, root), headers=alice).json()["data"]
        assert data["relations"] == []
        assert len(data["nodes"]) == 2

    def test_relation_to_unknown_node(self, client, alice, family, root):
        response = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1")], "relations": [relation("r1", "n1", "ghost")]},
            headers=alice,
        )

        assert response.status_code == 400

    def test_self_relation_rejected(self, client, alice, family, root):
        response = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1")], "relations": [relation("r1", "n1", "n1", "SPOUSE")]},
            headers=alice,
        )

        assert response.status_code == 400

    def test_member_cannot_save(self, client, alice, bob, family, root):
        add_member(client, alice, bob, family)

        response = client.put(tree_url(family, root), json={"nodes": [node("n1")]}, headers=bob)

        assert response.status_code == 403

    def test_link_requires_approved_member(self, client, alice, bob, family, root):
        joined = request_join(client, bob, family["joinToken"])

        response = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=joined["member"]["id"])]},
            headers=alice,
        )

        assert response.status_code == 400

    def test_member_linked_once(self, client, alice, bob, family, root):
        member_id = add_member(client, alice, bob, family)

        first = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=member_id)]},
            headers=alice,
        )
        assert first.status_code == 200

        second = client.put(
            tree_url(family, root),
            json={"nodes": [node("n2", linkedMemberId=member_id)]},
            headers=alice,
        )
        assert second.status_code == 409

    def test_link_can_move_between_nodes(self, client, alice, bob, family, root):
        member_id = add_member(client, alice, bob, family)
        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=member_id), node("n2", "Ben")]},
            headers=alice,
        )

        response = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1"), node("n2", "Ben", linkedMemberId=member_id)]},
            headers=alice,
        )

        assert response.status_code == 200, response.text
        links = {n["id"]: n["linkedMemberId"] for n in response.json()["data"]["nodes"]}
        assert links == {"n1": None, "n2": member_id}

    def test_links_can_swap(self, client, alice, bob, carol, family, root):
        bob_id = add_member(client, alice, bob, family)
        carol_id = add_member(client, alice, carol, family)
        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=bob_id), node("n2", "Ben", linkedMemberId=carol_id)]},
            headers=alice,
        )

        response = client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=carol_id), node("n2", "Ben", linkedMemberId=bob_id)]},
            headers=alice,
        )

        assert response.status_code == 200, response.text
        links = {n["id"]: n["linkedMemberId"] for n in response.json()["data"]["nodes"]}
        assert links == {"n1": carol_id, "n2": bob_id}


# =============================================================================
# Node deletion guard
# =============================================================================

class TestNodeDeletion:
    """A node with relations cannot be deleted"""

    def test_delete_refused_until_relations_removed(self, client, alice, family, root):
        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1"), node("n2")], "relations": [relation("r1", "n1", "n2")]},
            headers=alice,
        )
        node_url = f"{tree_url(family, root)}/nodes/n1"

        check = client.get(node_url, headers=alice).json()["data"]
        assert check == {"canDelete": False, "hasRelationships": True, "relationshipsCount": 1}

        refused = client.delete(node_url, headers=alice)
        assert refused.status_code == 400
        body = refused.json()
        assert body["data"]["canDelete"] is False
        assert body["data"]["relationshipsCount"] == 1
        assert body["message"].startswith("Cannot delete a node with existing relationships")

        client.put(tree_url(family, root), json={"relations": []}, headers=alice)

        assert client.get(node_url, headers=alice).json()["data"]["canDelete"] is True
        assert client.delete(node_url, headers=alice).status_code == 200
        assert client.get(node_url, headers=alice).status_code == 404

    def test_target_side_relation_also_blocks(self, client, alice, family, root):
        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1"), node("n2")], "relations": [relation("r1", "n1", "n2")]},
            headers=alice,
        )

        response = client.delete(f"{tree_url(family, root)}/nodes/n2", headers=alice)

        assert response.status_code == 400

    def test_member_cannot_delete_node(self, client, alice, bob, family, root):
        add_member(client, alice, bob, family)
        client.put(tree_url(family, root), json={"nodes": [node("n1")]}, headers=alice)

        response = client.delete(f"{tree_url(family, root)}/nodes/n1", headers=bob)

        assert response.status_code == 403


# =============================================================================
# Unlinked members
# =============================================================================

class TestUnlinkedMembers:
    """approvedMembers minus linked members, plus an optional re-included one"""

    def test_set_difference(self, client, alice, bob, carol, family, root):
        add_member(client, alice, bob, family)
        carol_member = add_member(client, alice, carol, family)
        bob_member = next(
            m["id"]
            for m in client.get(f"/families/{family['familyId']}/members", headers=alice).json()["data"]["members"]
            if m["user"]["fullName"] == "Bob Member"
        )

        client.put(
            tree_url(family, root),
            json={"nodes": [node("n1", linkedMemberId=bob_member)]},
            headers=alice,
        )
        url = f"/families/{family['familyId']}/unlinked-members"

        names = {m["fullName"] for m in client.get(url, headers=alice).json()["data"]}
        assert names == {"Alice Admin", "Carol Member"}

        names = {
            m["fullName"]
            for m in client.get(f"{url}?includeLinkedMember={bob_member}", headers=alice).json()["data"]
        }
        assert names == {"Alice Admin", "Bob Member", "Carol Member"}

        ids = {m["id"] for m in client.get(url, headers=alice).json()["data"]}
        assert carol_member in ids
