from unittest.mock import MagicMock

import pytest
import requests

from core.database import PostgRESTStore, StoreRequestError, StoreResponse
from utils.query.postgrest_queries import SelectQuery, in_


def _response(status_code=200, json_data=None, text="", headers=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.reason = reason
    response.headers = headers or {}
    response.json.return_value = json_data
    return response


@pytest.fixture()
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


def test_select_sends_params_and_auth_headers(session: MagicMock) -> None:
    session.get.return_value = _response(json_data=[{"id": 1, "batch_no": "B1"}])
    store = PostgRESTStore("https://store.example.test/", "secret", timeout=5, session=session)

    rows = store.select(SelectQuery("batches", ["id", "batch_no"], [in_("batch_no", ["B1"])]))

    assert rows == [{"id": 1, "batch_no": "B1"}]
    args, kwargs = session.get.call_args
    assert args[0] == "https://store.example.test/rest/v1/batches"
    assert kwargs["params"] == [("select", "id,batch_no"), ("batch_no", 'in.("B1")')]
    assert kwargs["headers"]["apikey"] == "secret"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 5


def test_select_raises_on_non_success_status(session: MagicMock) -> None:
    session.get.return_value = _response(status_code=400, text='{"message":"bad filter"}')
    store = PostgRESTStore("https://store.example.test", "secret", session=session)

    with pytest.raises(StoreRequestError) as excinfo:
        store.select(SelectQuery("brands", ["id", "name"]))

    assert excinfo.value.status_code == 400
    assert "bad filter" in excinfo.value.message


def test_select_uses_status_line_when_body_is_empty(session: MagicMock) -> None:
    session.get.return_value = _response(status_code=503, text="", reason="Service Unavailable")
    store = PostgRESTStore("https://store.example.test", "secret", session=session)

    with pytest.raises(StoreRequestError, match="503 Service Unavailable"):
        store.select(SelectQuery("brands", ["id", "name"]))


def test_select_wraps_transport_errors(session: MagicMock) -> None:
    session.get.side_effect = requests.exceptions.ConnectionError("refused")
    store = PostgRESTStore("https://store.example.test", "secret", session=session)

    with pytest.raises(StoreRequestError, match="HTTP request failed"):
        store.select(SelectQuery("brands", ["id", "name"]))


def test_write_sets_prefer_and_on_conflict(session: MagicMock) -> None:
    session.post.return_value = _response(status_code=201, text="")
    store = PostgRESTStore("https://store.example.test", "secret", session=session)

    result = store.write(
        "batches",
        [{"sku_id": 1, "batch_no": "B1"}],
        on_conflict="batch_no_norm",
        resolution="merge-duplicates",
    )

    assert result.ok
    args, kwargs = session.post.call_args
    assert args[0] == "https://store.example.test/rest/v1/batches"
    assert kwargs["params"] == [("on_conflict", "batch_no_norm")]
    assert kwargs["headers"]["Prefer"] == "resolution=merge-duplicates,return=minimal"
    assert kwargs["json"] == [{"sku_id": 1, "batch_no": "B1"}]


def test_write_returns_failures_without_raising(session: MagicMock) -> None:
    session.post.return_value = _response(status_code=409, text="", reason="Conflict")
    store = PostgRESTStore("https://store.example.test", "secret", session=session)

    result = store.write("batches", [], on_conflict="batch_no_norm", resolution="merge-duplicates")

    assert not result.ok
    assert result.status_code == 409
    assert result.text == "409 Conflict"


def test_store_response_helpers() -> None:
    echoed = StoreResponse(201, '[{"barcode": "A"}]')
    assert echoed.json_rows() == [{"barcode": "A"}]
    assert StoreResponse(201, "").json_rows() is None
    assert StoreResponse(201, '{"barcode": "A"}').json_rows() is None

    counted = StoreResponse(201, "", {"Content-Range": "*/7"})
    assert counted.affected_count() == 7
    assert StoreResponse(201, "", {"Content-Range": "0-2/3"}).affected_count() == 3
    assert StoreResponse(201, "").affected_count() is None


def test_close_releases_the_session() -> None:
    session = MagicMock(spec=requests.Session)

    PostgRESTStore("https://store.example.test", "key", session=session).close()

    session.close.assert_called_once_with()


def test_store_closes_when_used_as_context_manager() -> None:
    session = MagicMock(spec=requests.Session)

    with PostgRESTStore("https://store.example.test", "key", session=session):
        session.close.assert_not_called()

    session.close.assert_called_once_with()
