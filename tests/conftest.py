import pytest
from fastapi.testclient import TestClient

from gepdata.database import MemoryStore
from gepdata.filters import Country, FeatureRecord, Model, derive_scenario_filters

SCENARIO_ID = "ke-onsset-0_0_0"
BASIC_SCENARIO_ID = "ke-basic-1_0"


def _rec(fid, summary, filter_values, sid=SCENARIO_ID):
    return FeatureRecord(sid, fid, summary, filter_values)


@pytest.fixture
def model():
    return Model.from_dict({
        "id": "ke-onsset",
        "name": "Kenya OnSSET",
        "type": "onsset",
        "country": "ke",
        "timesteps": [2020, 2025, 2030],
        "filters": [
            {"id": 4, "key": "Empty", "type": "range", "timestep": False},
            {"id": 1, "key": "Pop", "label": "Population", "type": "range", "timestep": True},
            {"id": 3, "key": "Region", "type": "options", "timestep": False, "options": ["north", "south", "east"]},
            {"id": 2, "key": "GridDist", "type": "range", "timestep": False},
            {"id": 5, "key": "Slider", "type": "slider", "timestep": False},
        ],
    })


@pytest.fixture
def basic_model():
    # no timesteps: the filter's timestep flag is forced off
    return Model.from_dict({
        "id": "ke-basic",
        "name": "Kenya basic",
        "type": "basic",
        "country": "ke",
        "filters": [{"id": 1, "key": "Dist", "type": "range", "timestep": True}],
    })


@pytest.fixture
def records():
    return [
        _rec(1, {
            "FinalElecCode2020": "1", "InvestmentCost2020": "10.005", "NewCapacity2020": "2", "Pop2020": "100",
            "FinalElecCode2030": "1", "InvestmentCost2030": "40", "NewCapacity2030": "4", "Pop2030": "200",
        }, {"Pop2020": 100, "Pop2025": 150, "Pop2030": 200, "GridDist": 4.6, "Region": "north"}),
        _rec(2, {
            "FinalElecCode2020": "1", "InvestmentCost2020": "10.005", "NewCapacity2020": "3", "Pop2020": "50",
            "FinalElecCode2030": "1", "InvestmentCost2030": "12", "NewCapacity2030": "3", "Pop2030": "70",
        }, {"Pop2020": 50, "Pop2025": 60, "Pop2030": 70, "GridDist": 12.5, "Region": "south"}),
        _rec(3, {
            "FinalElecCode2020": "2", "InvestmentCost2020": "5", "NewCapacity2020": "1.5", "Pop2020": "20",
            "FinalElecCode2030": "2", "InvestmentCost2030": "6", "NewCapacity2030": "1", "Pop2030": "30",
        }, {"Pop2020": 20, "Pop2025": 25, "Pop2030": 30, "GridDist": 30.2, "Region": "north"}),
        # not electrified in 2020
        _rec(5, {
            "FinalElecCode2030": "3", "InvestmentCost2030": "9", "NewCapacity2030": "0.5", "Pop2030": "7",
        }, {"Pop2020": 5, "Pop2025": 6, "Pop2030": 7, "GridDist": "n/a", "Region": "east"}),
    ]


@pytest.fixture
def basic_records():
    return [
        _rec(1, {"FinalElecCode": "1", "InvestmentCost": "3", "NewCapacity": "1", "Pop": "10"},
             {"Dist": 2}, sid=BASIC_SCENARIO_ID),
        _rec(2, {"FinalElecCode": "2", "InvestmentCost": "4", "NewCapacity": "2", "Pop": "20"},
             {"Dist": 8}, sid=BASIC_SCENARIO_ID),
    ]


def load(store, model, records):
    with store.replacing(model) as replacement:
        replacement.load_records(records)
        for sid in sorted({r.scenario_id for r in records}):
            detail, _ = derive_scenario_filters(replacement, model, sid)
            replacement.add_detail(detail)
    return store


@pytest.fixture
def store(model, records, basic_model, basic_records):
    s = MemoryStore()
    s.replace_countries([Country("ke", "Kenya", {"region": "East Africa"}), Country("ng", "Nigeria")])
    load(s, model, records)
    load(s, basic_model, basic_records)
    return s


@pytest.fixture
def client(store):
    from gepdata.main import app, get_store

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
