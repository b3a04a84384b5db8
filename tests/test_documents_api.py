"""Integration tests for the document and shape endpoints."""

from datetime import datetime, timedelta, timezone

import asyncio

import pytest

from models.documents import Shape
from security.helpers import get_token_codec


SHAPE = {
    "id": 0,
    "type": "circle",
    "label": "Start",
    "translateX": 10,
    "translateY": 20.5,
    "backgroundColor": "#fff",
    "textColor": "#000",
    "borderColor": "#333",
}


@pytest.fixture
def auth_headers(signed_up):
    return {"x-access-token": signed_up.headers["x-access-token"]}


@pytest.fixture
def other_headers(client):
    response = client.post("/users", json={"email": "b@example.com", "password": "password2"})
    return {"x-access-token": response.headers["x-access-token"]}


@pytest.fixture
def document(client, auth_headers):
    return client.post("/docs", json={"title": "Flowchart"}, headers=auth_headers).json()


class TestAccessAuthentication:
    """Tests for the access token requirement."""

    def test_missing_token_is_rejected(self, client):
        response = client.get("/docs")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "x-access-token"

    def test_expired_token_is_rejected(self, client, signed_up):
        issued_at = datetime.now(timezone.utc) - timedelta(hours=1)
        token = get_token_codec().issue(signed_up.json()["_id"], now=issued_at)

        response = client.get("/docs", headers={"x-access-token": token})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "token_expired"

    def test_tampered_token_is_rejected(self, client, auth_headers):
        token = auth_headers["x-access-token"]
        header, payload, signature = token.split(".")
        middle = len(signature) // 2
        flipped = "A" if signature[middle] != "A" else "B"
        tampered = ".".join([header, payload, signature[:middle] + flipped + signature[middle + 1:]])

        response = client.get("/docs", headers={"x-access-token": tampered})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "invalid_signature"


class TestDocuments:
    """Tests for document CRUD."""

    def test_create_and_list_documents(self, client, auth_headers, document):
        response = client.get("/docs", headers=auth_headers)

        assert response.status_code == 200
        assert [d["title"] for d in response.json()] == ["Flowchart"]
        assert response.json()[0]["_id"] == document["_id"]

    def test_title_must_have_three_characters(self, client, auth_headers):
        response = client.post("/docs", json={"title": " ab "}, headers=auth_headers)

        assert response.status_code == 422

    def test_update_document_title(self, client, auth_headers, document):
        response = client.patch(
            f"/docs/{document['_id']}", json={"title": "Renamed"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"

    def test_documents_of_other_users_are_hidden(self, client, document, other_headers):
        assert client.get("/docs", headers=other_headers).json() == []

        response = client.delete(f"/docs/{document['_id']}", headers=other_headers)

        assert response.status_code == 404

    def test_delete_document_removes_its_shapes(self, client, auth_headers, document):
        client.post(f"/docs/{document['_id']}/shapes", json=SHAPE, headers=auth_headers)

        response = client.delete(f"/docs/{document['_id']}", headers=auth_headers)

        assert response.status_code == 200
        assert client.get("/docs", headers=auth_headers).json() == []
        assert client.get(f"/docs/{document['_id']}/shapes", headers=auth_headers).status_code == 404
        assert asyncio.run(Shape.find_all().count()) == 0


class TestShapes:
    """Tests for shape CRUD."""

    def test_create_and_list_shapes(self, client, auth_headers, document):
        created = client.post(f"/docs/{document['_id']}/shapes", json=SHAPE, headers=auth_headers)

        assert created.status_code == 200
        body = created.json()
        assert body["_docId"] == document["_id"]
        assert body["id"] == 0
        assert body["translateY"] == 20.5
        assert body["borderColor"] == "#333"

        shapes = client.get(f"/docs/{document['_id']}/shapes", headers=auth_headers).json()
        assert [s["_id"] for s in shapes] == [body["_id"]]

    def test_update_shape_position(self, client, auth_headers, document):
        shape = client.post(f"/docs/{document['_id']}/shapes", json=SHAPE, headers=auth_headers).json()

        response = client.patch(
            f"/docs/{document['_id']}/shapes/{shape['_id']}",
            json={"translateX": 99},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["translateX"] == 99
        assert response.json()["translateY"] == 20.5

    def test_delete_shape(self, client, auth_headers, document):
        shape = client.post(f"/docs/{document['_id']}/shapes", json=SHAPE, headers=auth_headers).json()

        response = client.delete(f"/docs/{document['_id']}/shapes/{shape['_id']}", headers=auth_headers)

        assert response.status_code == 200
        assert client.get(f"/docs/{document['_id']}/shapes", headers=auth_headers).json() == []

    def test_unknown_shape_is_not_found(self, client, auth_headers, document):
        response = client.delete(
            f"/docs/{document['_id']}/shapes/{'0' * 24}", headers=auth_headers
        )

        assert response.status_code == 404
