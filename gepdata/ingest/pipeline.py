"""
Model ingestion.

For each model: read its scenario files, load the rows into a replacement
handle, derive every scenario's filter catalogue from those rows, and commit.
Readers keep seeing the previous version of the model until the commit.

Expected directory layout for `ingest_directory`:

    <root>/countries.yaml            (optional)
    <root>/models/<modelId>.yaml     (or .yml / .json)
    <root>/scenarios/<modelId>/<scenarioId>.csv
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from ..database import RecordStore
from ..errors import IngestionError
from ..filters import IngestionWarning, Model, derive_scenario_filters
from .loader import find_documents, load_countries, load_model, load_scenario_records

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    model_id: str
    scenario_ids: List[str] = field(default_factory=list)
    feature_count: int = 0
    warnings: List[IngestionWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelId": self.model_id,
            "scenarioIds": list(self.scenario_ids),
            "featureCount": self.feature_count,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def ingest_model(store: RecordStore, model: Model, scenario_files: Iterable[Union[str, Path]]) -> IngestionReport:
    report = IngestionReport(model_id=model.id)
    # read everything before touching the store
    loaded = []
    for path in sorted(Path(p) for p in scenario_files):
        records = load_scenario_records(path, model)
        loaded.append((path.stem.lower(), records))

    with store.replacing(model) as replacement:
        for scenario_id, records in loaded:
            replacement.load_records(records)
            detail, warnings = derive_scenario_filters(replacement, model, scenario_id)
            replacement.add_detail(detail)
            report.scenario_ids.append(scenario_id)
            report.feature_count += len(records)
            report.warnings.extend(warnings)

    logger.info(
        "Ingested model [%s]: %d scenarios, %d features, %d warnings",
        model.id, len(report.scenario_ids), report.feature_count, len(report.warnings),
    )
    return report


def ingest_directory(store: RecordStore, root: Union[str, Path], *, only: Optional[str] = None) -> List[IngestionReport]:
    root = Path(root)
    if not root.is_dir():
        raise IngestionError(f"Data directory not found: {root}")

    for name in ("countries.yaml", "countries.yml", "countries.json"):
        if (root / name).exists():
            store.replace_countries(load_countries(root / name))
            break

    reports: List[IngestionReport] = []
    for model_path in find_documents(root / "models"):
        model = load_model(model_path)
        if only and model.id != only.lower():
            continue
        scenario_dir = root / "scenarios" / model.id
        files = sorted(scenario_dir.glob("*.csv")) if scenario_dir.is_dir() else []
        if not files:
            logger.warning("Model [%s] has no scenario files under %s", model.id, scenario_dir)
        reports.append(ingest_model(store, model, files))
    return reports


__all__ = [
    "IngestionReport",
    "ingest_model",
    "ingest_directory",
]
