# Overview: Pytest coverage for the client and company directories.

import pytest

from lako.models import Client
from lako.services import directory_service
from lako.services.pagination import MAX_PER_PAGE, clamp_pagination


def _make_clients(owner_id, names):
    for i, name in enumerate(names):
        directory_service.create_client(owner_id, {"name": name, "email": f"c{i}@example.com"})


# =============================================================================
# CLIENTS
# =============================================================================


class TestClientCrud:

    def test_create_stamps_owner_from_token(self, client, alice, alice_headers, db_session):
        resp = client.post(
            "/api/v1/clients",
            json={"name": "Acme", "email": "a@acme.test", "city": "Zagreb"},
            headers=alice_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user_id"] == alice.id
        assert body["city"] == "Zagreb"
        assert db_session.get(Client, body["id"]).user_id == alice.id

    def test_owner_cannot_be_chosen_by_body(self, client, alice_headers, bob):
        resp = client.post(
            "/api/v1/clients",
            json={"name": "Acme", "email": "a@acme.test", "user_id": bob.id},
            headers=alice_headers,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [
        {"email": "a@acme.test"},
        {"name": "Acme"},
        {"name": "Acme", "email": "nope"},
        {"name": "", "email": "a@acme.test"},
    ])
    def test_validation(self, client, alice_headers, body):
        resp = client.post("/api/v1/clients", json=body, headers=alice_headers)
        assert resp.status_code == 400
        assert "message" in resp.get_json()

    def test_partial_update_touches_only_given_fields(self, client, alice_headers, alice_client_id):
        resp = client.patch(
            f"/api/v1/clients/{alice_client_id}",
            json={"website": "https://acme.test"},
            headers=alice_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["website"] == "https://acme.test"
        assert body["name"] == "Acme Ltd"
        assert body["email"] == "billing@acme.test"

    def test_delete(self, client, alice_headers, alice_client_id):
        assert client.delete(f"/api/v1/clients/{alice_client_id}", headers=alice_headers).status_code == 204
        assert client.get(f"/api/v1/clients/{alice_client_id}", headers=alice_headers).status_code == 404
        assert client.delete(f"/api/v1/clients/{alice_client_id}", headers=alice_headers).status_code == 404

    def test_delete_referenced_by_invoice_is_a_conflict(
        self, client, alice_headers, alice_client_id, alice_company_id
    ):
        resp = client.post("/api/v1/invoices", json={
            "client_id": alice_client_id,
            "company_id": alice_company_id,
            "currency": "EUR",
        }, headers=alice_headers)
        assert resp.status_code == 201

        assert client.delete(f"/api/v1/clients/{alice_client_id}", headers=alice_headers).status_code == 409
        assert client.delete(f"/api/v1/companies/{alice_company_id}", headers=alice_headers).status_code == 409


class TestClientListing:

    def test_per_page_is_capped(self, client, alice, alice_headers):
        _make_clients(alice.id, [f"Client{i:03d}" for i in range(105)])

        resp = client.get("/api/v1/clients?per_page=1000&page=1", headers=alice_headers)
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["per_page"] == MAX_PER_PAGE
        assert len(body["results"]) == 100
        assert body["total_pages"] == 2

    def test_pages(self, client, alice, alice_headers):
        _make_clients(alice.id, ["A1", "A2", "A3"])
        body = client.get("/api/v1/clients?per_page=2&page=2", headers=alice_headers).get_json()
        assert body["total_pages"] == 2
        assert len(body["results"]) == 1

    def test_newest_first(self, client, alice, alice_headers):
        _make_clients(alice.id, ["First", "Second"])
        names = [c["name"] for c in client.get("/api/v1/clients", headers=alice_headers).get_json()["results"]]
        assert names == ["Second", "First"]

    def test_search_is_case_insensitive_prefix(self, client, alice, alice_headers):
        _make_clients(alice.id, ["Acme", "acme labs", "Beta Acme"])
        body = client.get("/api/v1/clients?q=ACM", headers=alice_headers).get_json()
        assert sorted(c["name"] for c in body["results"]) == ["Acme", "acme labs"]

    def test_search_treats_wildcards_literally(self, client, alice, alice_headers):
        _make_clients(alice.id, ["100% Cotton", "100 Acres"])
        body = client.get("/api/v1/clients?q=100%25", headers=alice_headers).get_json()
        assert [c["name"] for c in body["results"]] == ["100% Cotton"]

    def test_empty(self, client, alice_headers):
        body = client.get("/api/v1/clients", headers=alice_headers).get_json()
        assert body["results"] == []
        assert body["total_pages"] == 0


@pytest.mark.parametrize("page, per_page, expected", [
    (None, None, (1, 10)),
    (0, 0, (1, 10)),
    (-3, 5, (1, 5)),
    (4, 1000, (4, 100)),
])
def test_clamp_pagination(page, per_page, expected):
    assert clamp_pagination(page, per_page) == expected


# =============================================================================
# COMPANIES
# =============================================================================


class TestCompanies:

    def test_crud(self, client, alice_headers):
        resp = client.post("/api/v1/companies", json={"name": "Alice d.o.o.", "country": "HR"}, headers=alice_headers)
        assert resp.status_code == 201
        company_id = resp.get_json()["id"]

        resp = client.put(f"/api/v1/companies/{company_id}", json={"city": "Split"}, headers=alice_headers)
        assert resp.status_code == 200
        assert resp.get_json()["city"] == "Split"
        assert resp.get_json()["country"] == "HR"

        listing = client.get("/api/v1/companies?q=alice", headers=alice_headers).get_json()
        assert [c["id"] for c in listing["results"]] == [company_id]

        assert client.delete(f"/api/v1/companies/{company_id}", headers=alice_headers).status_code == 204

    def test_name_required(self, client, alice_headers):
        assert client.post("/api/v1/companies", json={"city": "Split"}, headers=alice_headers).status_code == 400

    def test_unknown_field(self, client, alice_headers):
        resp = client.post("/api/v1/companies", json={"name": "X", "vat": "1"}, headers=alice_headers)
        assert resp.status_code == 400
