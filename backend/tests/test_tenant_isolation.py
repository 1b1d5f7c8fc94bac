# Overview: Pytest coverage for per-user ownership of clients, companies and invoices.

"""
Ownership Isolation Tests

SECURITY TESTS: prove that one account can never read, change or delete
another account's rows, and that a foreign row is indistinguishable from a
missing one (404, never 403).
"""

import pytest

from lako.errors import NotFoundError
from lako.models import Client, Invoice
from lako.services import directory_service, invoice_service
from lako.services.ownership import authorize_owner


@pytest.fixture
def alice_invoice_id(client, alice_headers, alice_client_id, alice_company_id):
    resp = client.post("/api/v1/invoices", json={
        "client_id": alice_client_id,
        "company_id": alice_company_id,
        "currency": "EUR",
        "items": [{"name": "Work", "amount": "10.00", "quantity": "1"}],
    }, headers=alice_headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["invoice"]["id"]


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize("method, path", [
        ("GET", "/api/v1/clients"),
        ("POST", "/api/v1/clients"),
        ("GET", "/api/v1/companies"),
        ("GET", "/api/v1/invoices"),
        ("POST", "/api/v1/invoices"),
        ("GET", "/api/v1/me"),
    ])
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 400, f"{method} {path} returned {resp.status_code}"


class TestClientIsolation:

    def test_read(self, client, bob_headers, alice_client_id):
        resp = client.get(f"/api/v1/clients/{alice_client_id}", headers=bob_headers)
        assert resp.status_code == 404

    def test_foreign_row_looks_like_missing_row(self, client, bob_headers, alice_client_id):
        foreign = client.get(f"/api/v1/clients/{alice_client_id}", headers=bob_headers)
        missing = client.get("/api/v1/clients/999999", headers=bob_headers)
        assert foreign.status_code == missing.status_code == 404
        assert foreign.get_json() == missing.get_json()

    def test_update_leaves_row_untouched(self, client, bob_headers, alice_client_id, db_session):
        resp = client.patch(f"/api/v1/clients/{alice_client_id}", json={"name": "Pwned"}, headers=bob_headers)
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Client, alice_client_id).name == "Acme Ltd"

    def test_delete_leaves_row_in_place(self, client, bob_headers, alice_client_id, db_session):
        assert client.delete(f"/api/v1/clients/{alice_client_id}", headers=bob_headers).status_code == 404
        assert db_session.get(Client, alice_client_id) is not None

    def test_listing_only_shows_own_rows(self, client, bob_headers, alice_client_id):
        body = client.get("/api/v1/clients", headers=bob_headers).get_json()
        assert body["results"] == []

    def test_service_layer(self, alice_client_id, bob):
        with pytest.raises(NotFoundError):
            directory_service.get_client(alice_client_id, bob.id)
        with pytest.raises(NotFoundError):
            directory_service.update_client(alice_client_id, bob.id, {"name": "x"})
        assert directory_service.delete_client(alice_client_id, bob.id) is False


class TestCompanyIsolation:

    def test_read_update_delete(self, client, bob_headers, alice_company_id):
        assert client.get(f"/api/v1/companies/{alice_company_id}", headers=bob_headers).status_code == 404
        assert client.put(
            f"/api/v1/companies/{alice_company_id}", json={"name": "x"}, headers=bob_headers
        ).status_code == 404
        assert client.delete(f"/api/v1/companies/{alice_company_id}", headers=bob_headers).status_code == 404


class TestInvoiceIsolation:

    def test_read(self, client, bob_headers, alice_invoice_id):
        assert client.get(f"/api/v1/invoices/{alice_invoice_id}", headers=bob_headers).status_code == 404

    def test_update(self, client, bob_headers, alice_invoice_id, db_session):
        resp = client.patch(f"/api/v1/invoices/{alice_invoice_id}", json={"description": "mine now"}, headers=bob_headers)
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Invoice, alice_invoice_id).description == ""

    def test_delete(self, client, bob_headers, alice_invoice_id, db_session):
        assert client.delete(f"/api/v1/invoices/{alice_invoice_id}", headers=bob_headers).status_code == 404
        assert db_session.get(Invoice, alice_invoice_id) is not None

    def test_items_and_recalculate(self, client, bob_headers, alice_invoice_id):
        item = {"name": "Extra", "amount": "99.00", "quantity": "1"}
        assert client.post(f"/api/v1/invoices/{alice_invoice_id}/items", json=item, headers=bob_headers).status_code == 404
        assert client.post(f"/api/v1/invoices/{alice_invoice_id}/recalculate", headers=bob_headers).status_code == 404

    def test_cannot_bill_someone_elses_client(self, client, bob_headers, alice_client_id, bob):
        company = client.post("/api/v1/companies", json={"name": "Bob Co"}, headers=bob_headers).get_json()
        resp = client.post("/api/v1/invoices", json={
            "client_id": alice_client_id,
            "company_id": company["id"],
            "currency": "EUR",
        }, headers=bob_headers)
        assert resp.status_code == 404

    def test_cannot_move_invoice_to_foreign_client(self, client, alice_headers, alice_invoice_id, bob_headers):
        bob_client = client.post(
            "/api/v1/clients", json={"name": "Bob's client", "email": "c@bob.test"}, headers=bob_headers
        ).get_json()
        resp = client.patch(
            f"/api/v1/invoices/{alice_invoice_id}", json={"client_id": bob_client["id"]}, headers=alice_headers
        )
        assert resp.status_code == 404

    def test_user_id_is_not_writable(self, client, alice_headers, alice_invoice_id, bob):
        resp = client.patch(f"/api/v1/invoices/{alice_invoice_id}", json={"user_id": bob.id}, headers=alice_headers)
        assert resp.status_code == 400

    def test_listing(self, client, bob_headers, alice_invoice_id, bob):
        assert client.get("/api/v1/invoices", headers=bob_headers).get_json()["results"] == []
        assert invoice_service.list_invoices(bob.id)["total"] == 0


def test_authorize_owner():
    assert authorize_owner(1, 1)
    assert not authorize_owner(1, 2)
    assert not authorize_owner(None, None)
