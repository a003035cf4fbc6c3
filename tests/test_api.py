import json

import pytest

from .conftest import BASIC_SCENARIO_ID, SCENARIO_ID


def test_index(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == "GEP Data Service"


def test_health_and_stats(client):
    assert client.get("/healthz").json() == {"ok": True, "store": "memory"}
    assert client.get("/stats").json() == {"totals": {"countries": 2, "models": 2}}


def test_countries(client):
    r = client.get("/countries")
    assert [c["id"] for c in r.json()["countries"]] == ["ke", "ng"]

    r = client.get("/countries/KE")
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Kenya"
    assert body["region"] == "East Africa"
    assert [m["id"] for m in body["models"]] == ["ke-basic", "ke-onsset"]


def test_unknown_country(client):
    r = client.get("/countries/zz")
    assert r.status_code == 404
    assert r.json()["detail"] == "Country code not found."
    assert client.get("/countries/kenya").status_code == 422


def test_model(client):
    r = client.get("/models/KE-OnSSET")
    assert r.status_code == 200
    assert r.json()["timesteps"] == [2020, 2025, 2030]
    assert client.get("/models/nope").status_code == 404


def test_listing_defaults_to_first_year(client):
    r = client.get(f"/scenarios/{SCENARIO_ID}")
    assert r.status_code == 200
    body = r.json()
    assert set(body) == {"id", "featureTypes", "summary", "summaryByType"}
    assert body["featureTypes"] == [None, "1", "1", "2"]
    assert body["summary"]["investmentCost"] == 25.01


def test_listing_with_year(client):
    body = client.get(f"/scenarios/{SCENARIO_ID}", params={"year": "2030"}).json()
    assert body["featureTypes"] == [None, "1", "1", "2", None, "3"]


def test_listing_bracket_filters(client):
    params = [
        ("filters[0][key]", "Region"),
        ("filters[0][options][]", "north"),
        ("filters[1][key]", "Pop"),
        ("filters[1][max]", "50"),
    ]
    body = client.get(f"/scenarios/{SCENARIO_ID}", params=params).json()
    assert body["featureTypes"] == [None, None, None, "2"]
    assert body["summaryByType"]["electrifiedPopulation"] == {"2": 20.0}


def test_listing_json_filters(client):
    filters = json.dumps([{"key": "GridDist", "max": 20}])
    body = client.get(f"/scenarios/{SCENARIO_ID}", params={"filters": filters}).json()
    assert body["featureTypes"] == [None, "1", "1"]


def test_listing_without_timesteps(client):
    body = client.get(f"/scenarios/{BASIC_SCENARIO_ID}", params={"year": "1999"}).json()
    assert body["featureTypes"] == [None, "1", "2"]
    assert body["summary"] == {"electrifiedPopulation": 30.0, "investmentCost": 7.0, "newCapacity": 3.0}


@pytest.mark.parametrize("params, message", [
    ({"year": "2021"}, "Must be one of [2020, 2025, 2030]"),
    ({"filters": '[{"key": "Nope", "min": 1}]'}, "Filter key [Nope] is not defined for this model."),
    ({"filters": '[{"key": "Pop"}]'}, '"min", "max" or "options"'),
    ({"filters": '{"key": "Pop"}'}, "Filters must be an Array."),
    ({"filters": '[{"min": 1}]'}, 'Filter must include "key".'),
    ({"filters": '[{"key": "Region", "max": 3, "options": ["north"]}]'}, "not both"),
])
def test_listing_validation_errors(client, params, message):
    r = client.get(f"/scenarios/{SCENARIO_ID}", params=params)
    assert r.status_code == 400
    assert message in r.json()["detail"]


def test_listing_unknown_model(client):
    r = client.get("/scenarios/zz-nothing-1")
    assert r.status_code == 404
    assert r.json()["detail"] == "Model not found."


def test_feature_defaults_to_last_year(client):
    r = client.get(f"/scenarios/{SCENARIO_ID}/features/1")
    assert r.status_code == 200
    assert r.json() == {"investmentCost": "40", "newCapacity": "4", "electrifiedPopulation": "200"}


def test_feature_with_year(client):
    r = client.get(f"/scenarios/{SCENARIO_ID}/features/1", params={"year": 2020})
    assert r.json() == {"investmentCost": "10.005", "newCapacity": "2", "electrifiedPopulation": "100"}


def test_feature_not_electrified_in_year_still_reports(client):
    r = client.get(f"/scenarios/{SCENARIO_ID}/features/5", params={"year": 2020})
    assert r.status_code == 200
    assert r.json() == {"investmentCost": None, "newCapacity": None, "electrifiedPopulation": None}

    r = client.get(f"/scenarios/{SCENARIO_ID}/features/5")
    assert r.json() == {"investmentCost": "9", "newCapacity": "0.5", "electrifiedPopulation": "7"}


def test_feature_errors(client):
    assert client.get(f"/scenarios/{SCENARIO_ID}/features/99").status_code == 404
    assert client.get(f"/scenarios/{SCENARIO_ID}/features/1", params={"year": "abc"}).status_code == 400
    assert client.get("/scenarios/zz-nothing-1/features/1").status_code == 404


def test_store_failure_is_generic(client, store, monkeypatch):
    from gepdata.errors import StoreUnavailable

    def boom(*args, **kwargs):
        raise StoreUnavailable()

    monkeypatch.setattr(store, "query_features", boom)
    r = client.get(f"/scenarios/{SCENARIO_ID}")
    assert r.status_code == 500
    assert r.json()["detail"] == "An internal server error occurred."
