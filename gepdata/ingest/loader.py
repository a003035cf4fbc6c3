from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Set, Union
import json

import pandas as pd
import yaml

from ..database import model_id_for
from ..errors import IngestionError
from ..filters import Country, FeatureRecord, Model

ID_COLUMN = "ID"
# featureTypes is a dense list indexed by feature id
MAX_FEATURE_ID = 10_000_000
_DOC_SUFFIXES = (".yaml", ".yml", ".json")


def read_document(path: Union[str, Path]) -> Any:
    """Parse a YAML or JSON file."""
    path = Path(path)
    if not path.exists():
        raise IngestionError(f"File not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (yaml.YAMLError, ValueError) as e:
        raise IngestionError(f"Could not parse {path}: {e}") from e


def load_model(path: Union[str, Path]) -> Model:
    data = read_document(path)
    if not isinstance(data, dict):
        raise IngestionError(f"Model file {path} must contain a mapping.")
    missing = [k for k in ("id", "name", "type", "country") if not data.get(k)]
    if missing:
        raise IngestionError(f"Model file {path} is missing [{', '.join(missing)}].")
    filters = data.get("filters") or []
    if not isinstance(filters, list) or not all(isinstance(f, dict) and f.get("key") for f in filters):
        raise IngestionError(f"Model file {path}: every filter needs a \"key\".")
    return Model.from_dict(data)


def load_countries(path: Union[str, Path]) -> List[Country]:
    data = read_document(path)
    if isinstance(data, dict):
        data = data.get("countries", [])
    if not isinstance(data, list):
        raise IngestionError(f"Countries file {path} must contain a list.")
    out = []
    for item in data:
        if not isinstance(item, dict) or not item.get("id"):
            raise IngestionError(f"Countries file {path}: every country needs an \"id\".")
        out.append(Country.from_dict(item))
    return out


def filter_columns(model: Model) -> Set[str]:
    """CSV columns that also go to a record's filter values."""
    cols: Set[str] = set()
    for f in model.filters:
        cols.update(f.storage_keys(model.timesteps))
    return cols


def load_scenario_records(path: Union[str, Path], model: Model) -> List[FeatureRecord]:
    """
    Read `<scenarioId>.csv`. One row per feature; `ID` is the feature id.
    Every other column lands in `summary`; filter columns are also copied to
    `filter_values`. Empty cells are left out of both documents.
    """
    path = Path(path)
    scenario_id = path.stem.lower()
    if model_id_for(scenario_id) != model.id:
        raise IngestionError(f"Scenario [{scenario_id}] does not belong to model [{model.id}].")

    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise IngestionError(f"Could not read {path}: {e}") from e
    if ID_COLUMN not in frame.columns:
        raise IngestionError(f"Scenario file {path} has no [{ID_COLUMN}] column.")

    fcols = filter_columns(model)
    records: List[FeatureRecord] = []
    for row in frame.to_dict(orient="records"):
        raw_id = str(row.pop(ID_COLUMN)).strip()
        try:
            feature_id = int(float(raw_id))
        except (ValueError, OverflowError):
            raise IngestionError(f"Scenario file {path}: invalid feature id [{raw_id}].") from None
        if not 0 <= feature_id <= MAX_FEATURE_ID:
            raise IngestionError(
                f"Scenario file {path}: feature id [{feature_id}] must be between 0 and {MAX_FEATURE_ID}."
            )

        summary: Dict[str, Any] = {}
        filter_values: Dict[str, Any] = {}
        for col, value in row.items():
            if value is None or str(value).strip() == "":
                continue
            summary[col] = value
            if col in fcols:
                filter_values[col] = value
        records.append(FeatureRecord(scenario_id, feature_id, summary, filter_values))
    return records


def find_documents(directory: Union[str, Path]) -> List[Path]:
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in _DOC_SUFFIXES)


__all__ = [
    "ID_COLUMN",
    "MAX_FEATURE_ID",
    "read_document",
    "load_model",
    "load_countries",
    "filter_columns",
    "load_scenario_records",
    "find_documents",
]
