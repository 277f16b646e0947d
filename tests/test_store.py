import json

import pytest
import requests

from roikit.config import Settings
from roikit.connectors.store.connect import open_store
from roikit.connectors.store.json_file import JsonFileStore
from roikit.connectors.store.rest import RestRowStore
from roikit.errors import StoreError
from roikit.models import CrmMovement, trash


def _settings(tmp_path, **overrides):
    values = dict(
        store="json",
        data_path=tmp_path / "store.json",
        rest_url="https://db.example.test/",
        rest_key="secret",
        save_debounce_ms=0,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def test_json_store_starts_empty(json_store):
    assert json_store.list_entries() == []
    assert json_store.list_movements() == []


def test_json_store_upsert_replaces_by_id(json_store, make_entry):
    entry = make_entry(spend=10)
    json_store.upsert(entry)
    json_store.upsert(trash(entry, "2025-03-01T00:00:00+00:00"))

    (stored,) = json_store.list_entries()
    assert stored.id == entry.id
    assert not stored.is_active
    assert stored.deleted_at == "2025-03-01T00:00:00+00:00"

    doc = json.loads(json_store.path.read_text(encoding="utf-8"))
    assert doc["weekly_rows"][0]["row"]["weekOfMonth"] == 1


def test_json_store_batch_and_delete(json_store, make_entry):
    a, b = make_entry(week_of_month=1), make_entry(week_of_month=2)
    json_store.batch_upsert([a, b])
    json_store.delete(a.id)
    json_store.delete("missing")
    assert [e.id for e in json_store.list_entries()] == [b.id]


def test_json_store_movements(json_store, make_movement):
    json_store.insert_movement(make_movement("c1", "2025-05-01", 100))
    (movement,) = json_store.list_movements()
    assert movement.cliente_id == "c1"
    assert movement.is_confirmed


def test_json_store_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileStore(path).list_entries()


def test_rest_store_upsert_request(tmp_path, fake_session, make_entry):
    store = RestRowStore(_settings(tmp_path, store="rest"), session=fake_session)
    entry = make_entry(spend=5)
    store.upsert(entry)

    (call,) = fake_session.calls
    assert call["method"] == "POST"
    assert call["url"] == "https://db.example.test/rest/v1/weekly_rows"
    assert call["params"] == {"on_conflict": "id"}
    assert call["headers"]["apikey"] == "secret"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert "resolution=merge-duplicates" in call["headers"]["Prefer"]
    assert call["json"] == [{"id": entry.id, "row": entry.to_dict()}]


def test_rest_store_reads(tmp_path, fake_session, fake_response, make_entry):
    entry = make_entry(revenue=42)
    fake_session.responses = [
        fake_response(200, [{"id": entry.id, "row": entry.to_dict()}]),
        fake_response(200, [{"id": "m1", "clienteId": "c9", "fecha": "2025-01-02", "tipoMovimiento": "venta",
                             "estado": "confirmado", "monto": "19.5"}]),
    ]
    store = RestRowStore(_settings(tmp_path, store="rest"), session=fake_session)
    assert store.list_entries() == [entry]
    (movement,) = store.list_movements()
    assert isinstance(movement, CrmMovement)
    assert movement.cliente_id == "c9"
    assert movement.monto == 19.5
    assert fake_session.calls[1]["url"].endswith("/movimientos_cliente")


def test_rest_store_delete_and_errors(tmp_path, fake_session, fake_response):
    fake_session.responses = [fake_response(204), fake_response(500, {"message": "boom"})]
    store = RestRowStore(_settings(tmp_path, store="rest"), session=fake_session)
    store.delete("abc")
    assert fake_session.calls[0]["params"] == {"id": "eq.abc"}
    with pytest.raises(StoreError, match="500"):
        store.delete("abc")


def test_rest_store_network_failure(tmp_path, make_entry):
    class Broken:
        def request(self, *args, **kwargs):
            raise requests.ConnectionError("down")

    store = RestRowStore(_settings(tmp_path, store="rest"), session=Broken())
    with pytest.raises(StoreError):
        store.upsert(make_entry())


def test_open_store(tmp_path):
    assert isinstance(open_store(_settings(tmp_path)), JsonFileStore)
    assert isinstance(open_store(_settings(tmp_path, store="rest")), RestRowStore)
    with pytest.raises(StoreError):
        open_store(_settings(tmp_path, store="rest", rest_key=""))
    with pytest.raises(ValueError):
        open_store(_settings(tmp_path, store="sqlite"))
