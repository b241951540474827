"""Postgres-backed store for place records."""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import psycopg2
from psycopg2 import extras, pool

from leadgen.core.config import Settings
from leadgen.core.errors import ConfigurationError, StoreError
from leadgen.models import EnrichmentLevel, PlaceRecord, WebsiteStatus, field_names

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10

# Record attribute -> column name, where they differ.
_COLUMN_FOR_FIELD = {"external_id": "place_id"}
_FIELD_FOR_COLUMN = {column: name for name, column in _COLUMN_FOR_FIELD.items()}

_WRITE_FIELDS = [name for name in field_names() if name != "stored_at"]
_WRITE_COLUMNS = [_COLUMN_FOR_FIELD.get(name, name) for name in _WRITE_FIELDS]

_UPSERT = """
INSERT INTO places (
    {columns},
    stored_at
) VALUES (
    {values},
    NOW()
)
ON CONFLICT (place_id) DO UPDATE SET
    {updates},
    stored_at = NOW()
RETURNING *;
""".format(
    columns=",\n    ".join(_WRITE_COLUMNS),
    values=",\n    ".join(f"%({column})s" for column in _WRITE_COLUMNS),
    updates=",\n    ".join(f"{column} = EXCLUDED.{column}" for column in _WRITE_COLUMNS if column != "place_id"),
)

_FIND_BY_TEXT = """
SELECT *
FROM places
WHERE (name || ' ' || address || ' ' || COALESCE(category, '')) ILIKE %(pattern)s
  AND (%(cutoff)s::timestamptz IS NULL OR GREATEST(last_enriched_at, stored_at) >= %(cutoff)s::timestamptz)
ORDER BY stored_at DESC
LIMIT %(limit)s;
"""

_FIND_BY_IDS = """
SELECT *
FROM places
WHERE place_id = ANY(%(place_ids)s);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def freshness_cutoff(window: Optional[timedelta], now: Optional[datetime] = None) -> Optional[datetime]:
    """Oldest timestamp still inside ``window``; ``None`` means no limit."""
    if window is None:
        return None
    return (now or _utcnow()) - window


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _prepare_params(place: PlaceRecord) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for name, column in zip(_WRITE_FIELDS, _WRITE_COLUMNS):
        value = getattr(place, name)
        if isinstance(value, (WebsiteStatus, EnrichmentLevel)):
            value = value.value
        params[column] = value
    params["data_sources"] = extras.Json(place.data_sources or {}, dumps=_dumps)
    return params


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


def _row_to_place(row: Dict[str, Any]) -> PlaceRecord:
    known = set(field_names())
    values = {}
    for column, value in row.items():
        name = _FIELD_FOR_COLUMN.get(column, column)
        if name in known:
            values[name] = value
    if values.get("website_status"):
        values["website_status"] = WebsiteStatus(values["website_status"])
    values["enrichment_level"] = EnrichmentLevel(values.get("enrichment_level") or EnrichmentLevel.BASIC.value)
    values["data_sources"] = dict(values.get("data_sources") or {})
    return PlaceRecord(**values)


class PlaceStore:
    """Explicitly opened handle over a bounded pool of Postgres connections."""

    def __init__(self, dsn: str, *, minconn: int = 1, maxconn: int = 5) -> None:
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: Optional[pool.ThreadedConnectionPool] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlaceStore":
        return cls(settings.database_url, minconn=settings.db_pool_min, maxconn=settings.db_pool_max)

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> "PlaceStore":
        if self._pool is None:
            if not self.dsn:
                raise ConfigurationError("DATABASE_URL is required for database connections")
            try:
                self._pool = pool.ThreadedConnectionPool(
                    self.minconn,
                    self.maxconn,
                    dsn=self.dsn,
                    connect_timeout=CONNECT_TIMEOUT,
                )
            except psycopg2.Error as exc:
                raise StoreError(f"could not open database pool: {exc}") from exc
            logger.info("Database connection pool initialised (min=%d, max=%d)", self.minconn, self.maxconn)
        return self

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("Database connection pool closed")

    def __enter__(self) -> "PlaceStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def get_connection(self):
        """Context manager yielding a pooled connection.

        Database errors roll the connection back and surface as ``StoreError``.
        """
        if self._pool is None:
            raise StoreError("store is not open")
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as exc:
            raise StoreError(f"could not get a database connection: {exc}") from exc
        try:
            yield conn
        except psycopg2.Error as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            self._pool.putconn(conn)

    # ---------- Reads ----------

    def find_by_query_substring(
        self,
        text: str,
        freshness: Optional[timedelta],
        limit: int,
        *,
        now: Optional[datetime] = None,
    ) -> List[PlaceRecord]:
        """Newest-first records whose name, address or category contains ``text``.

        Only records touched within ``freshness`` are returned; ``None``
        disables the window. An empty list is a cache miss.
        """
        params = {
            "pattern": f"%{_escape_like(text.strip())}%",
            "cutoff": freshness_cutoff(freshness, now),
            "limit": limit,
        }
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_FIND_BY_TEXT, params)
                rows = cur.fetchall()
        places = [_row_to_place(row) for row in rows]
        logger.debug("Cache lookup for %r returned %d places", text, len(places))
        return places

    def get_by_external_ids(self, external_ids: Sequence[str]) -> Dict[str, PlaceRecord]:
        ids = [external_id for external_id in dict.fromkeys(external_ids) if external_id]
        if not ids:
            return {}
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_FIND_BY_IDS, {"place_ids": ids})
                rows = cur.fetchall()
        places = (_row_to_place(row) for row in rows)
        return {place.external_id: place for place in places}

    # ---------- Writes ----------

    def upsert(self, place: PlaceRecord) -> PlaceRecord:
        """Insert or fully replace the stored record with the same place_id."""
        if not place.external_id or not place.name or not place.address:
            raise ValueError("external_id, name and address are required for upsert")

        params = _prepare_params(place)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_UPSERT, params)
                row = cur.fetchone()
            conn.commit()
        logger.debug("Upserted place %s", place.external_id)
        if not row:
            return place
        stored = _row_to_place(row)
        stored.types = list(place.types)
        return stored

    def upsert_many(self, places: Iterable[PlaceRecord]) -> List[PlaceRecord]:
        """Upsert each record independently; a failed record is returned unsaved."""
        saved: List[PlaceRecord] = []
        for place in places:
            try:
                saved.append(self.upsert(place))
            except (ValueError, StoreError) as exc:
                logger.error("Failed to upsert %s: %s", place.external_id, exc)
                saved.append(place)
        return saved
