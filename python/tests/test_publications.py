"""Tests for POST /publications.

Storage is replaced with FakeStorageClient instances through dependency
overrides (see conftest.app).
"""

import json

import httpx
import pytest
import respx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from folio.api.deps import get_source_storage
from folio.services import publish as publish_service
from folio.services.errors import PublishError
from folio.storage.client import FakeStorageClient, StorageClient
from tests.helpers import build_opf, make_epub, sample_epub


class TestCreatePublication:
    def test_publishes_epub(
        self,
        client: TestClient,
        source_storage: FakeStorageClient,
        output_storage: FakeStorageClient,
    ):
        source_storage.put_object("u1/book.epub", sample_epub())

        response = client.post("/publications", json={"filename": "u1/book.epub"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["manifest_url"] == output_storage.public_url("u1_book/manifest.json")
        assert data["filename"] == "u1/book.epub"
        assert data["base_path"] == "u1_book"
        assert data["resource_count"] == 5
        assert data["position_count"] >= 2

        manifest = json.loads(output_storage.get_object("u1_book/manifest.json").content)
        assert manifest["links"][0]["href"] == data["manifest_url"]

    def test_leading_slash_stripped(self, client: TestClient, source_storage: FakeStorageClient):
        source_storage.put_object("book.epub", sample_epub())

        response = client.post("/publications", json={"filename": "/book.epub"})

        assert response.status_code == 200
        assert response.json()["data"]["filename"] == "book.epub"

    @pytest.mark.parametrize("body", [{}, {"filename": ""}, {"filename": None}])
    def test_missing_filename(self, client: TestClient, body: dict):
        response = client.post("/publications", json=body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "E_INVALID_FILENAME"
        assert error["message"] == "Missing filename"

    def test_path_traversal_rejected(self, client: TestClient):
        response = client.post("/publications", json={"filename": "../other/book.epub"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_FILENAME"

    def test_epub_not_found(self, client: TestClient):
        response = client.post("/publications", json={"filename": "missing.epub"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_EPUB_NOT_FOUND"

    def test_not_an_epub(self, client: TestClient, source_storage: FakeStorageClient):
        source_storage.put_object("doc.epub", b"%PDF-1.4")

        response = client.post("/publications", json={"filename": "doc.epub"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_EPUB"

    def test_missing_required_resource(
        self, client: TestClient, source_storage: FakeStorageClient
    ):
        opf = build_opf([("ch1", "ch1.xhtml", "application/xhtml+xml")])
        source_storage.put_object("book.epub", make_epub({"OEBPS/content.opf": opf}))

        response = client.post("/publications", json={"filename": "book.epub"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "E_PROCESSING_FAILED"
        assert "OEBPS/ch1.xhtml" in error["message"]

    def test_upload_failure(
        self,
        client: TestClient,
        source_storage: FakeStorageClient,
        output_storage: FakeStorageClient,
    ):
        source_storage.put_object("book.epub", sample_epub())
        output_storage.fail_uploads.add("book/manifest.json")

        response = client.post("/publications", json={"filename": "book.epub"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "E_STORAGE_ERROR"

    @respx.mock
    def test_source_connection_error(self, app: FastAPI, client: TestClient):
        respx.get("https://proj.supabase.co/storage/v1/object/epubs/book.epub").mock(
            side_effect=httpx.ConnectError("connection refused")
        )
        app.dependency_overrides[get_source_storage] = lambda: StorageClient(
            "https://proj.supabase.co", "key", "epubs"
        )

        response = client.post("/publications", json={"filename": "book.epub"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "E_STORAGE_ERROR"
        assert "connection refused" in error["message"]

    def test_unmaterialized_resource_is_internal_error(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ):
        def fail(*args, **kwargs):
            raise PublishError(
                "Resource was not materialized before manifest synthesis: ch1.xhtml",
                code="E_INTERNAL",
                href="ch1.xhtml",
            )

        monkeypatch.setattr(publish_service, "process_epub", fail)

        response = client.post("/publications", json={"filename": "book.epub"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "E_INTERNAL"

    def test_missing_body(self, client: TestClient):
        response = client.post("/publications")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_other_methods_not_allowed(self, client: TestClient, method: str):
        response = client.request(method, "/publications")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "E_METHOD_NOT_ALLOWED"


class TestStorageNotConfigured:
    def test_returns_500(self, bare_client: TestClient):
        response = bare_client.post("/publications", json={"filename": "book.epub"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "E_STORAGE_NOT_CONFIGURED"
        assert "SUPABASE_URL" in error["message"]
