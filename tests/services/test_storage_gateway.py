import json

import httpx
import pytest

from app.core.config import Settings
from app.core.exceptions import StorageError, StorageNotConfiguredError
from app.services.storage import SupabaseStorage, path_from_public_url

BASE = "https://demo.supabase.co"


def _storage(handler):
    return SupabaseStorage(BASE, "service-key", timeout=5, transport=httpx.MockTransport(handler))


def test_upload_posts_object_with_service_key():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["headers"] = request.headers
        seen["body"] = request.content
        return httpx.Response(200, json={"Key": "documentos/x"})

    storage = _storage(handler)
    path = storage.upload("documentos", "institucion/1/institucionales/pei/pei_1.pdf", b"%PDF", "application/pdf")

    assert path == "institucion/1/institucionales/pei/pei_1.pdf"
    assert seen["method"] == "POST"
    assert seen["path"] == "/storage/v1/object/documentos/institucion/1/institucionales/pei/pei_1.pdf"
    assert seen["headers"]["authorization"] == "Bearer service-key"
    assert seen["headers"]["apikey"] == "service-key"
    assert seen["headers"]["content-type"] == "application/pdf"
    assert seen["headers"]["x-upsert"] == "false"
    assert seen["body"] == b"%PDF"


def test_upload_failure_becomes_storage_error():
    storage = _storage(lambda request: httpx.Response(400, json={"error": "Duplicate"}))

    with pytest.raises(StorageError, match="Error al subir archivo"):
        storage.upload("documentos", "a.pdf", b"x", "application/pdf")


def test_public_url_round_trips_to_path():
    storage = _storage(lambda request: httpx.Response(200))

    url = storage.get_public_url("documentos", "institucion/3/tareas/9/4/evidence_1.png")

    assert url == f"{BASE}/storage/v1/object/public/documentos/institucion/3/tareas/9/4/evidence_1.png"
    assert path_from_public_url(url, "documentos") == "institucion/3/tareas/9/4/evidence_1.png"
    assert path_from_public_url("ya/es/un/path.pdf", "documentos") == "ya/es/un/path.pdf"

    raw = "institucion/1/institucionales/manual/manual_1.pdf final"
    url = storage.get_public_url("documentos", raw)
    assert url.endswith("manual_1.pdf%20final")
    assert path_from_public_url(url, "documentos") == raw


def test_create_signed_url():
    def handler(request):
        assert request.url.path == "/storage/v1/object/sign/documentos/a/b.pdf"
        assert json.loads(request.content) == {"expiresIn": 900}
        return httpx.Response(200, json={"signedURL": "/object/sign/documentos/a/b.pdf?token=t"})

    url = _storage(handler).create_signed_url("documentos", "a/b.pdf", 900)

    assert url == f"{BASE}/storage/v1/object/sign/documentos/a/b.pdf?token=t"


def test_create_signed_url_without_url_in_response():
    storage = _storage(lambda request: httpx.Response(200, json={}))

    with pytest.raises(StorageError, match="signedURL"):
        storage.create_signed_url("documentos", "a/b.pdf", 900)


def test_list_objects_walks_folders():
    tree = {
        "institucion/1/institucionales": [{"name": "manual", "id": None}, {"name": "pei", "id": None}],
        "institucion/1/institucionales/manual": [
            {"name": "manual_1.pdf", "id": "u1"},
            {"name": "manual_2.pdf", "id": "u2"},
        ],
        "institucion/1/institucionales/pei": [{"name": "pei_3.pdf", "id": "u3"}],
    }

    def handler(request):
        assert request.url.path == "/storage/v1/object/list/documentos"
        body = json.loads(request.content)
        return httpx.Response(200, json=tree.get(body["prefix"], []))

    paths = _storage(handler).list_objects("documentos", "institucion/1/institucionales/")

    assert paths == [
        "institucion/1/institucionales/manual/manual_1.pdf",
        "institucion/1/institucionales/manual/manual_2.pdf",
        "institucion/1/institucionales/pei/pei_3.pdf",
    ]


def test_list_objects_follows_pages():
    offsets = []

    def handler(request):
        body = json.loads(request.content)
        offsets.append(body["offset"])
        count = body["limit"] if body["offset"] == 0 else 3
        return httpx.Response(
            200, json=[{"name": f"f_{body['offset'] + i:05d}.pdf", "id": str(i)} for i in range(count)]
        )

    paths = _storage(handler).list_objects("documentos", "p")

    assert offsets == [0, 1000]
    assert len(paths) == 1003


def test_remove_objects_sends_prefixes():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[])

    _storage(handler).remove_objects("documentos", ["a.pdf", "b/c.pdf"])

    assert seen == {
        "method": "DELETE",
        "path": "/storage/v1/object/documentos",
        "body": {"prefixes": ["a.pdf", "b/c.pdf"]},
    }


def test_remove_objects_empty_list_is_noop():
    def handler(request):
        raise AssertionError("no debería llamar al storage")

    _storage(handler).remove_objects("documentos", [])


def test_remove_objects_failure_becomes_storage_error():
    storage = _storage(lambda request: httpx.Response(500))

    with pytest.raises(StorageError, match="Error al eliminar archivo"):
        storage.remove_objects("documentos", ["a.pdf"])


def test_unconfigured_storage_fails_every_operation():
    storage = SupabaseStorage.from_settings(Settings(database_url="sqlite://", supabase_url=None))

    assert storage.is_configured() is False
    with pytest.raises(StorageNotConfiguredError, match="Storage no configurado"):
        storage.upload("documentos", "a.pdf", b"x", "application/pdf")
    with pytest.raises(StorageNotConfiguredError):
        storage.get_public_url("documentos", "a.pdf")
    with pytest.raises(StorageNotConfiguredError):
        storage.list_objects("documentos", "institucion/1")
    with pytest.raises(StorageNotConfiguredError):
        storage.remove_objects("documentos", ["a.pdf"])


def test_close_releases_http_client():
    storage = _storage(lambda request: httpx.Response(200))

    storage.close()

    assert storage._client.is_closed
    SupabaseStorage(None, None).close()
