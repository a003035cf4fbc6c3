from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Request
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .database import RecordStore, build_store
from .errors import (
    CountryNotFound,
    FilterValidationError,
    ModelNotFound,
    NotFoundError,
    StoreUnavailable,
)
from .filters import parse_filter_request_query
from .ingest import ingest_directory
from .logconfig import setup_logging
from .schemas import FeatureOut, HealthOut, StatsOut
from .scenarios import get_feature, list_scenario

logger = logging.getLogger(__name__)

app = FastAPI(title=config.SERVICE_NAME, version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)

STORE: Optional[RecordStore] = None

_SERVER_FAULT = "An internal server error occurred."


def get_store() -> RecordStore:
    if STORE is None:
        raise HTTPException(status_code=503, detail="Record store not initialised")
    return STORE


@app.on_event("startup")
def _startup():
    global STORE
    setup_logging(config.LOG_LEVEL)
    STORE = build_store()
    if config.DATA_DIR and STORE.name == "memory":
        for report in ingest_directory(STORE, config.DATA_DIR):
            logger.info("Loaded model [%s] with %d warnings", report.model_id, len(report.warnings))


@app.get("/")
def index():
    return config.SERVICE_NAME


@app.get("/healthz", response_model=HealthOut)
def health(store: RecordStore = Depends(get_store)):
    return {"ok": True, "store": store.name}


@app.get("/stats", response_model=StatsOut)
def stats(store: RecordStore = Depends(get_store)):
    try:
        return {
            "totals": {
                "countries": store.count_countries(),
                "models": store.count_distinct_model_types(),
            }
        }
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)


@app.get("/countries")
def list_countries(store: RecordStore = Depends(get_store)):
    try:
        return {"countries": [c.to_dict() for c in store.list_countries()]}
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)


@app.get("/countries/{country_id}")
def country(
    country_id: str = Path(..., min_length=2, max_length=2),
    store: RecordStore = Depends(get_store),
):
    try:
        cid = country_id.lower()
        found = store.get_country(cid)
        if found is None:
            raise CountryNotFound(cid)
        out = found.to_dict()
        out["models"] = [m.to_dict() for m in store.list_models(cid)]
        return out
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)


@app.get("/models/{model_id}")
def model(model_id: str, store: RecordStore = Depends(get_store)):
    try:
        found = store.get_model(model_id.lower())
        if found is None:
            raise ModelNotFound(model_id.lower())
        return found.to_dict()
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Model id not found.")
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)


@app.get("/scenarios/{scenario_id}/features/{feature_id}", response_model=FeatureOut)
def scenario_feature(
    scenario_id: str,
    feature_id: int,
    year: Optional[str] = None,
    store: RecordStore = Depends(get_store),
):
    try:
        return get_feature(store, scenario_id, feature_id, year)
    except FilterValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)


@app.get("/scenarios/{scenario_id}")
def scenario(scenario_id: str, request: Request, store: RecordStore = Depends(get_store)):
    """
    Filtered features and summaries of a scenario.

    - year: timestep to report; defaults to the model's first timestep.
    - filters: JSON array or bracket notation, e.g.
      `filters[0][key]=Pop&filters[0][min]=100&filters[1][key]=Tech&filters[1][options][]=1`
    """
    try:
        req = parse_filter_request_query(request.query_params.multi_items())
        return list_scenario(store, scenario_id, req).to_dict()
    except FilterValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=500, detail=_SERVER_FAULT)
