import pytest

from conftest import FakeSource
from partscanner.errors import LookupTransportFailure, SourceNotConfigured
from partscanner.lookup import PartLookup
from partscanner.server import create_app


def _client(source):
    app = create_app(PartLookup(source))
    app.testing = True
    return app.test_client()


def test_found_part(parts_source):
    resp = _client(parts_source).get("/parts/hl-012a")
    assert resp.status_code == 200
    assert resp.get_json() == {
        "success": True,
        "data": {
            "id": "HL-012A",
            "name": "Bracket",
            "quantity": 15,
            "position": "Shelf3",
            "cadAssembly": "https://drive.google.com/file/d/abc123/view",
        },
    }


def test_encoded_token_is_decoded(parts_source):
    resp = _client(parts_source).get("/parts/XY%2D9911")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["quantity"] == 4


def test_not_found(parts_source):
    resp = _client(parts_source).get("/parts/NOPE-1")
    assert resp.status_code == 404
    body = resp.get_json()
    assert body["success"] is False
    assert "NOPE-1" in body["error"]


def test_missing_id_column():
    resp = _client(FakeSource([["Name"], ["x"]])).get("/parts/x")
    assert resp.status_code == 400
    assert "ID column" in resp.get_json()["error"]


@pytest.mark.parametrize(
    "error", [SourceNotConfigured(), LookupTransportFailure("upstream", status=403)]
)
def test_unconfigured_or_transport_failure_is_500(error):
    resp = _client(FakeSource(error=error)).get("/parts/x")
    assert resp.status_code == 500
    assert resp.get_json()["success"] is False
