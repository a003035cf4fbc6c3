"""
Snowflake record store.

Tables (VARIANT columns hold JSON documents):
  COUNTRIES(ID, NAME, DOC)
  MODELS(ID, TYPE, COUNTRY, DOC)
  SCENARIO_DETAIL(SCENARIO_ID, MODEL_ID, FILTERS)
  SCENARIOS(SCENARIO_ID, MODEL_ID, FEATURE_ID, SUMMARY, FILTER_VALUES)
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import json
import logging
import os

import snowflake.connector
from snowflake.connector.errors import Error as SnowflakeError

from .. import config
from ..errors import StoreUnavailable
from ..filters import Country, FeatureRecord, FilterCatalogue, Model, ScenarioDetail
from ..query import FieldRef, PredicateNode, build_bound_scan, build_select_features, build_select_sums
from .base import Bounds, Row

logger = logging.getLogger(__name__)


def _load_p8_as_der_bytes(path: str) -> bytes:
    from cryptography.hazmat.primitives import serialization

    with open(path, "rb") as f:
        raw = f.read()
    is_pem = raw.lstrip().startswith(b"-----BEGIN")
    if is_pem:
        key = serialization.load_pem_private_key(raw, password=None)
    else:
        key = serialization.load_der_private_key(raw, password=None)

    # Snowflake needs unencrypted PKCS#8 DER bytes
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _sf_connect_for(db: str, schema: str, *, role: Optional[str] = None):
    common = dict(
        account=os.environ["SNOWFLAKE_ACCOUNT"],
        warehouse=os.environ["SNOWFLAKE_WAREHOUSE"],
        database=db,
        schema=schema,
        session_parameters={
            "QUERY_TAG": "api:gep-data-service",
            "STATEMENT_TIMEOUT_IN_SECONDS": config.SNOWFLAKE_QUERY_TIMEOUT,
        },
    )
    if role:
        common["role"] = role

    pk_path = os.environ["SNOWFLAKE_PRIVATE_KEY_PATH"]
    pkb = _load_p8_as_der_bytes(pk_path)
    return snowflake.connector.connect(
        user=os.environ["SNOWFLAKE_USER"],
        private_key=pkb,
        **common
    )


def _doc(value: Any) -> Any:
    # VARIANT columns come back as JSON text
    return json.loads(value) if isinstance(value, str) else value


class SnowflakeStore:
    name = "snowflake"

    def __init__(self, database: str, schema: str, *, role: Optional[str] = None):
        if not database or not schema:
            raise RuntimeError("SNOWFLAKE_DATABASE and SNOWFLAKE_SCHEMA must be set for the snowflake store.")
        self.database = database
        self.schema = schema
        self.role = role

    def _connect(self):
        try:
            return _sf_connect_for(self.database, self.schema, role=self.role)
        except (SnowflakeError, KeyError, OSError, ValueError, TypeError) as e:
            # KeyError: missing SNOWFLAKE_* variable; others: unreadable or encrypted private key
            logger.error("Snowflake connection failed (%s): %s", e.__class__.__name__, e)
            raise StoreUnavailable(cause=e)

    def _execute(self, sql: str, params: Any = None) -> Tuple[List[str], List[tuple]]:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                cols = [d[0] for d in cur.description] if cur.description else []
                rows = cur.fetchall() if cur.description else []
            return cols, rows
        except SnowflakeError as e:
            # query text stays in the log, never in the raised error
            logger.error("Snowflake query failed (%s): %s", e.__class__.__name__, e)
            raise StoreUnavailable(cause=e)
        finally:
            conn.close()

    def _rows(self, sql: str, params: Any = None) -> List[Row]:
        cols, rows = self._execute(sql, params)
        return [dict(zip(cols, r)) for r in rows]

    # ------------------------------------------------------------------
    # catalogue reads
    # ------------------------------------------------------------------

    def count_distinct_model_types(self) -> int:
        _, rows = self._execute("SELECT COUNT(DISTINCT TYPE) FROM MODELS")
        return int(rows[0][0]) if rows else 0

    def count_countries(self) -> int:
        _, rows = self._execute("SELECT COUNT(*) FROM COUNTRIES")
        return int(rows[0][0]) if rows else 0

    def list_countries(self) -> List[Country]:
        rows = self._rows("SELECT DOC FROM COUNTRIES ORDER BY NAME")
        return [Country.from_dict(_doc(r["DOC"])) for r in rows]

    def get_country(self, country_id: str) -> Optional[Country]:
        rows = self._rows("SELECT DOC FROM COUNTRIES WHERE ID = %(id)s", {"id": country_id.lower()})
        return Country.from_dict(_doc(rows[0]["DOC"])) if rows else None

    def list_models(self, country_id: str) -> List[Model]:
        rows = self._rows(
            "SELECT DOC FROM MODELS WHERE COUNTRY = %(country)s ORDER BY ID",
            {"country": country_id.lower()},
        )
        return [Model.from_dict(_doc(r["DOC"])) for r in rows]

    def get_model(self, model_id: str) -> Optional[Model]:
        rows = self._rows("SELECT DOC FROM MODELS WHERE ID = %(id)s", {"id": model_id.lower()})
        return Model.from_dict(_doc(rows[0]["DOC"])) if rows else None

    def get_scenario_detail(self, scenario_id: str) -> Optional[ScenarioDetail]:
        sid = scenario_id.lower()
        rows = self._rows("SELECT FILTERS FROM SCENARIO_DETAIL WHERE SCENARIO_ID = %(sid)s", {"sid": sid})
        if not rows:
            return None
        return ScenarioDetail(scenario_id=sid, filters=FilterCatalogue.from_list(_doc(rows[0]["FILTERS"])))

    # ------------------------------------------------------------------
    # feature queries
    # ------------------------------------------------------------------

    def query_features(
        self,
        predicate: PredicateNode,
        projection: Mapping[str, FieldRef],
        order_by: Optional[FieldRef] = None,
    ) -> Iterable[Row]:
        build = build_select_features(predicate, projection, order_by)
        return self._rows(build.sql, build.params)

    def query_aggregate(self, predicate: PredicateNode, aggregate: Mapping[str, FieldRef]) -> Row:
        build = build_select_sums(predicate, aggregate)
        rows = self._rows(build.sql, build.params)
        return rows[0] if rows else {alias: None for alias in aggregate}

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]:
        conn = self._connect()
        try:
            return _bound_scan(conn, scenario_id.lower(), key_sets)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # ingestion
    # ------------------------------------------------------------------

    def replace_countries(self, countries: Sequence[Country]) -> None:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("BEGIN")
                for c in countries:
                    cur.execute("DELETE FROM COUNTRIES WHERE ID = %(id)s", {"id": c.id})
                    cur.execute(
                        "INSERT INTO COUNTRIES (ID, NAME, DOC) SELECT %(id)s, %(name)s, PARSE_JSON(%(doc)s)",
                        {"id": c.id, "name": c.name, "doc": json.dumps(c.to_dict())},
                    )
                cur.execute("COMMIT")
        except SnowflakeError as e:
            conn.rollback()
            logger.error("Country replacement failed: %s", e)
            raise StoreUnavailable(cause=e)
        finally:
            conn.close()

    def replacing(self, model: Model) -> "_SnowflakeReplacement":
        return _SnowflakeReplacement(self, model)


def _bound_scan(conn, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]:
    if not key_sets:
        return {}
    build, aliases = build_bound_scan(scenario_id, key_sets)
    try:
        with conn.cursor() as cur:
            cur.execute(build.sql, build.params)
            cols = [d[0] for d in cur.description]
            row = cur.fetchone()
    except SnowflakeError as e:
        logger.error("Bound scan failed for scenario [%s]: %s", scenario_id, e)
        raise StoreUnavailable(cause=e)
    values = dict(zip(cols, row)) if row else {}
    return {fkey: (values.get(lo), values.get(hi)) for fkey, (lo, hi) in aliases.items()}


class _SnowflakeReplacement:
    """
    One transaction per model: old rows are deleted, new rows inserted and
    bounds derived on the same connection, then committed together.
    """

    def __init__(self, store: SnowflakeStore, model: Model):
        self._store = store
        self.model = model
        self._conn = None

    def __enter__(self) -> "_SnowflakeReplacement":
        self._conn = self._store._connect()
        try:
            with self._conn.cursor() as cur:
                cur.execute("BEGIN")
                for table in ("SCENARIOS", "SCENARIO_DETAIL"):
                    cur.execute(f"DELETE FROM {table} WHERE MODEL_ID = %(mid)s", {"mid": self.model.id})
                cur.execute("DELETE FROM MODELS WHERE ID = %(mid)s", {"mid": self.model.id})
                cur.execute(
                    "INSERT INTO MODELS (ID, TYPE, COUNTRY, DOC) SELECT %(id)s, %(type)s, %(country)s, PARSE_JSON(%(doc)s)",
                    {
                        "id": self.model.id,
                        "type": self.model.type,
                        "country": self.model.country,
                        "doc": json.dumps(self.model.to_dict()),
                    },
                )
        except SnowflakeError as e:
            self._abort()
            raise StoreUnavailable(cause=e)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                try:
                    with self._conn.cursor() as cur:
                        cur.execute("COMMIT")
                except SnowflakeError as e:
                    self._conn.rollback()
                    raise StoreUnavailable(cause=e)
            else:
                self._conn.rollback()
        finally:
            self._conn.close()

    def _abort(self) -> None:
        try:
            self._conn.rollback()
        finally:
            self._conn.close()

    def load_records(self, records: Sequence[FeatureRecord]) -> None:
        rows = [
            (r.scenario_id.lower(), self.model.id, r.feature_id, json.dumps(r.summary), json.dumps(r.filter_values))
            for r in records
        ]
        try:
            with self._conn.cursor() as cur:
                cur.executemany(
                    "INSERT INTO SCENARIOS (SCENARIO_ID, MODEL_ID, FEATURE_ID, SUMMARY, FILTER_VALUES) "
                    "SELECT %s, %s, %s, PARSE_JSON(%s), PARSE_JSON(%s)",
                    rows,
                )
        except SnowflakeError as e:
            logger.error("Loading %d rows for model [%s] failed: %s", len(rows), self.model.id, e)
            raise StoreUnavailable(cause=e)

    def add_detail(self, detail: ScenarioDetail) -> None:
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO SCENARIO_DETAIL (SCENARIO_ID, MODEL_ID, FILTERS) SELECT %(sid)s, %(mid)s, PARSE_JSON(%(filters)s)",
                    {"sid": detail.scenario_id, "mid": self.model.id, "filters": json.dumps(detail.filters.to_list())},
                )
        except SnowflakeError as e:
            raise StoreUnavailable(cause=e)

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]:
        return _bound_scan(self._conn, scenario_id.lower(), key_sets)


__all__ = [
    "SnowflakeStore",
]
