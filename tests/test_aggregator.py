import logging

import pytest

from gepdata.database import MemoryStore
from gepdata.filters import FeatureRecord, FilterRequest, Model
from gepdata.query import compile_predicate
from gepdata.scenarios import aggregate, list_scenario, serialize_feature_types

from .conftest import SCENARIO_ID, load


def test_listing_default_year(store):
    result = list_scenario(store, SCENARIO_ID)
    assert result.year == 2020
    out = result.to_dict()
    assert out["id"] == SCENARIO_ID
    assert out["featureTypes"] == [None, "1", "1", "2"]
    assert out["summary"] == {"electrifiedPopulation": 170.0, "investmentCost": 25.01, "newCapacity": 6.5}


def test_summary_by_type_partitions_techs(store):
    by_type = list_scenario(store, SCENARIO_ID).summary_by_type
    assert set(by_type) == {"electrifiedPopulation", "investmentCost", "newCapacity"}
    for sums in by_type.values():
        assert set(sums) == {"1", "2"}
    assert by_type["investmentCost"]["1"] == pytest.approx(20.01)
    assert by_type["investmentCost"]["2"] == pytest.approx(5.0)
    assert by_type["electrifiedPopulation"] == {"1": 150.0, "2": 20.0}
    assert by_type["newCapacity"] == {"1": 5.0, "2": 1.5}


def test_later_year_includes_features_electrified_later(store):
    result = list_scenario(store, SCENARIO_ID, FilterRequest(year=2030))
    assert serialize_feature_types(result.feature_types) == [None, "1", "1", "2", None, "3"]
    assert result.summary == {"electrifiedPopulation": 307.0, "investmentCost": 67.0, "newCapacity": 8.5}


def test_filters_narrow_the_listing(store):
    req = FilterRequest(filters=[{"key": "GridDist", "max": 20}])
    assert list_scenario(store, SCENARIO_ID, req).to_dict()["featureTypes"] == [None, "1", "1"]

    req = FilterRequest(year=2030, filters=[{"key": "Pop", "min": 60}])
    assert sorted(list_scenario(store, SCENARIO_ID, req).feature_types) == [1, 2]

    req = FilterRequest(filters=[{"key": "Region", "options": ["north"]}, {"key": "Pop", "max": 50}])
    assert list_scenario(store, SCENARIO_ID, req).feature_types == {3: "2"}


def test_no_match_gives_zero_summary(store):
    req = FilterRequest(filters=[{"key": "GridDist", "min": 1000}])
    out = list_scenario(store, SCENARIO_ID, req).to_dict()
    assert out["featureTypes"] == []
    assert out["summary"] == {"electrifiedPopulation": 0.0, "investmentCost": 0.0, "newCapacity": 0.0}
    assert out["summaryByType"] == {"electrifiedPopulation": {}, "investmentCost": {}, "newCapacity": {}}


def test_same_request_twice_is_identical(store):
    req = FilterRequest(year="2030", filters=[{"key": "Region", "options": ["north", "east"]}])
    assert list_scenario(store, SCENARIO_ID, req).to_dict() == list_scenario(store, SCENARIO_ID, req).to_dict()


def test_rounding_half_away_from_zero():
    model = Model.from_dict({"id": "xx-r", "name": "r", "type": "t", "country": "xx", "timesteps": [2020]})
    rows = [
        FeatureRecord("xx-r-1", i, {"FinalElecCode2020": "1", "InvestmentCost2020": v})
        for i, v in enumerate(["10.005", "10.005", "5"])
    ]
    store = load(MemoryStore(), model, rows)
    predicate = compile_predicate(model.filters, model.timesteps, FilterRequest(), "xx-r-1")
    assert aggregate(store, predicate).summary["investmentCost"] == 25.01


def test_non_numeric_counts_as_zero(caplog):
    model = Model.from_dict({"id": "xx-n", "name": "n", "type": "t", "country": "xx", "timesteps": [2020]})
    rows = [
        FeatureRecord("xx-n-1", 1, {"FinalElecCode2020": "1", "InvestmentCost2020": "abc", "Pop2020": "4"}),
        FeatureRecord("xx-n-1", 2, {"FinalElecCode2020": "1", "InvestmentCost2020": "2.5"}),
    ]
    store = load(MemoryStore(), model, rows)
    predicate = compile_predicate(model.filters, model.timesteps, FilterRequest(), "xx-n-1")
    with caplog.at_level(logging.WARNING):
        result = aggregate(store, predicate)
    assert result.summary["investmentCost"] == 2.5
    assert result.summary_by_type["investmentCost"] == {"1": 2.5}
    # missing values are silent, unparseable ones are logged
    assert result.summary_by_type["electrifiedPopulation"] == {"1": 4.0}
    assert "non-numeric investmentCost" in caplog.text
    assert "electrifiedPopulation" not in caplog.text


def test_serialize_feature_types():
    assert serialize_feature_types({}) == []
    assert serialize_feature_types({0: "a", 3: None, 2: "b"}) == ["a", None, "b", None]


def test_negative_feature_id_is_not_dropped():
    with pytest.raises(ValueError, match=r"\[-1\]"):
        serialize_feature_types({-1: "1", 2: "2"})
