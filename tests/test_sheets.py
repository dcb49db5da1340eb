from unittest.mock import MagicMock

import pytest
import requests

from conftest import fake_response
from partscanner.errors import (
    LookupConfigurationFailure,
    LookupTransportFailure,
    SourceNotConfigured,
)
from partscanner.sheets import SheetsClient, Table


def _client(session, **kwargs):
    defaults = dict(api_key="key", spreadsheet_id="sheet-id", sheet_name="Parts List")
    defaults.update(kwargs)
    return SheetsClient(session=session, **defaults)


def test_fetch_table_builds_header_and_rows():
    session = MagicMock()
    session.get.return_value = fake_response(
        payload={"values": [["ID", "Name"], ["A-1", "Nut"], ["A-2"]]}
    )
    table = _client(session).fetch_table()
    assert table == Table(header=["ID", "Name"], rows=[["A-1", "Nut"], ["A-2"]])

    url = session.get.call_args.args[0]
    assert url.endswith("/spreadsheets/sheet-id/values/Parts%20List")
    assert session.get.call_args.kwargs["params"] == {"key": "key"}


def test_missing_values_gives_empty_table():
    session = MagicMock()
    session.get.return_value = fake_response(payload={"range": "Sheet1"})
    assert _client(session).fetch_table().empty


@pytest.mark.parametrize("kwargs", [{"api_key": None}, {"spreadsheet_id": ""}])
def test_unconfigured_source(kwargs):
    session = MagicMock()
    with pytest.raises(SourceNotConfigured) as info:
        _client(session, **kwargs).fetch_table()
    assert isinstance(info.value, LookupConfigurationFailure)
    session.get.assert_not_called()


def test_http_error_is_transport_failure():
    session = MagicMock()
    session.get.return_value = fake_response(status=403, text="forbidden")
    with pytest.raises(LookupTransportFailure) as info:
        _client(session).fetch_table()
    assert info.value.status == 403
    assert "403 - forbidden" in info.value.message


def test_network_error_is_transport_failure():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("down")
    with pytest.raises(LookupTransportFailure) as info:
        _client(session).fetch_table()
    assert info.value.status is None


def test_invalid_json_is_transport_failure():
    session = MagicMock()
    session.get.return_value = fake_response(payload=ValueError("bad json"))
    with pytest.raises(LookupTransportFailure):
        _client(session).fetch_table()


def test_cells_are_stringified():
    assert Table.from_values([["ID", "Qty"], [5, None]]).rows == [["5", ""]]


@pytest.mark.parametrize(
    "payload",
    [[["ID"], ["A-1"]], {"values": "ID,Name"}, {"values": [["ID"], "A-1"]}],
)
def test_malformed_payload_is_transport_failure(payload):
    session = MagicMock()
    session.get.return_value = fake_response(payload=payload)
    with pytest.raises(LookupTransportFailure, match="unexpected payload"):
        _client(session).fetch_table()
