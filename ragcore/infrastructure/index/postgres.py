"""
Name: PostgreSQL Similarity Index (pgvector)

Responsibilities:
  - Persist collections (dimension, metric) and their (id, vector, payload)
    records in PostgreSQL
  - Exact top-k search with pgvector distance operators
  - Translate metadata filters to JSONB predicates
  - Map driver failures to RetrievalError (transient or not)

Collaborators:
  - psycopg / psycopg_pool: connections and transactions
  - pgvector: vector type (registered per connection in db.pool)
  - domain.filters: parsed filter clauses

Constraints:
  - Same ordering as the in-memory index: score desc, ints before strings
  - Dimension fixed by creation or first insert (row lock on the collection)
  - Wrong-dimension vectors raise DimensionMismatchError before any write

Notes:
  - Tables are created with IF NOT EXISTS by the catalog (ensure_schema)
  - cosine: 1 - (a <=> b), 0 when either vector has zero norm
  - dot: -(a <#> b); euclidean: 1 / (1 + (a <-> b))
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import psycopg
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ...domain.entities import (
    CollectionInfo,
    DistanceMetric,
    DocumentId,
    IndexRecord,
    ScoredMatch,
)
from ...domain.filters import RANGE_OPERATORS, FilterClause, MetadataFilter
from ...exceptions import (
    CollectionConflictError,
    CollectionNotFoundError,
    DimensionMismatchError,
    RetrievalError,
)
from ...logger import logger

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS rag_collections (
        name TEXT PRIMARY KEY,
        dimension INTEGER NULL,
        metric TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rag_vectors (
        collection TEXT NOT NULL REFERENCES rag_collections(name) ON DELETE CASCADE,
        id_key TEXT NOT NULL,
        id_num BIGINT NULL,
        id_str TEXT NULL,
        embedding vector NOT NULL,
        payload JSONB NOT NULL DEFAULT '{}'::jsonb,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (collection, id_key)
    )
    """,
)

# R: Score expressions per metric (%(q)s is the query vector)
_SCORE_SQL = {
    DistanceMetric.COSINE: (
        "CASE WHEN vector_norm(embedding) = 0 OR vector_norm(%(q)s::vector) = 0 "
        "THEN 0 ELSE 1 - (embedding <=> %(q)s::vector) END"
    ),
    DistanceMetric.DOT: "(embedding <#> %(q)s::vector) * -1",
    DistanceMetric.EUCLIDEAN: "1 / (1 + (embedding <-> %(q)s::vector))",
}

_ORDER_SQL = 'score DESC, (id_num IS NULL), id_num, id_str COLLATE "C"'

_RANGE_SQL = {"$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}


def _id_columns(document_id: DocumentId) -> Tuple[str, Optional[int], Optional[str]]:
    """R: (id_key, id_num, id_str); int 1 and str "1" are different ids."""
    if isinstance(document_id, int) and not isinstance(document_id, bool):
        return f"i:{document_id}", document_id, None
    return f"s:{document_id}", None, str(document_id)


def _id_from_row(id_num: Optional[int], id_str: Optional[str]) -> DocumentId:
    return int(id_num) if id_num is not None else str(id_str)


def _to_vector(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float32)


@contextmanager
def _translate_errors(operation: str, collection: str) -> Iterator[None]:
    """R: psycopg errors -> RetrievalError (OperationalError is transient)."""
    try:
        yield
    except psycopg.OperationalError as exc:
        logger.warning(
            "Similarity index unavailable",
            extra={"operation": operation, "collection": collection, "error": str(exc)},
        )
        raise RetrievalError(
            f"Similarity index unavailable during {operation}",
            transient=True,
            original_error=exc,
        ) from exc
    except psycopg.Error as exc:
        logger.error(
            "Similarity index query failed",
            extra={"operation": operation, "collection": collection, "error": str(exc)},
        )
        raise RetrievalError(
            f"Similarity index rejected {operation}: {exc}",
            transient=False,
            original_error=exc,
        ) from exc


class _Params:
    """R: Collects named query parameters (f0, f1, ...) for a filter expression."""

    def __init__(self) -> None:
        self.values: Dict[str, Any] = {}

    def add(self, value: Any) -> str:
        name = f"f{len(self.values)}"
        self.values[name] = value
        return f"%({name})s"


def _clause_sql(clause: FilterClause, params: _Params) -> str:
    field_sql = f"(payload->'metadata'->{params.add(clause.field)}::text)"

    if clause.op in ("$eq", "$ne"):
        sql = f"COALESCE({field_sql} = {params.add(Json(clause.operand))}::jsonb, false)"
        return sql if clause.op == "$eq" else f"NOT {sql}"

    if clause.op in ("$in", "$nin"):
        parts = [f"{field_sql} = {params.add(Json(item))}::jsonb" for item in clause.operand]
        sql = f"COALESCE(({' OR '.join(parts)}), false)"
        return sql if clause.op == "$in" else f"NOT {sql}"

    if clause.op in RANGE_OPERATORS:
        return (
            f"(CASE WHEN jsonb_typeof({field_sql}) = 'number' "
            f"THEN ({field_sql})::numeric {_RANGE_SQL[clause.op]} "
            f"{params.add(clause.operand)} ELSE false END)"
        )

    raise ValueError(f"Unsupported filter operator {clause.op}")


def filter_to_sql(predicate: MetadataFilter) -> Tuple[str, Dict[str, Any]]:
    """
    R: Render a MetadataFilter as a SQL boolean expression with named params.

    Returns:
        ("TRUE", {}) for an empty filter
    """
    if predicate.is_empty:
        return "TRUE", {}
    params = _Params()
    sql = " AND ".join(_clause_sql(clause, params) for clause in predicate.clauses)
    return sql, params.values


class PostgresSimilarityIndex:
    """
    R: pgvector-backed index for one collection.

    Writes run in a transaction; concurrent readers are handled by MVCC.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        name: str,
        metric: DistanceMetric | str = DistanceMetric.COSINE,
        dimension: Optional[int] = None,
    ):
        self._pool = pool
        self._name = name
        self._metric = DistanceMetric(metric)
        self._dimension = dimension

    @property
    def info(self) -> CollectionInfo:
        return CollectionInfo(name=self._name, metric=self._metric, dimension=self._dimension)

    def _refresh_dimension(self) -> Optional[int]:
        if self._dimension is None:
            with _translate_errors("describe", self._name):
                with self._pool.connection() as conn:
                    row = conn.execute(
                        "SELECT dimension FROM rag_collections WHERE name = %s",
                        (self._name,),
                    ).fetchone()
            if row is None:
                raise CollectionNotFoundError(f"Collection {self._name!r} does not exist")
            self._dimension = row[0]
        return self._dimension

    # =========================================================
    # Writes
    # =========================================================
    def upsert(
        self, document_id: DocumentId, vector: Sequence[float], payload: Mapping[str, Any]
    ) -> bool:
        return self.upsert_many([IndexRecord(document_id, tuple(vector), dict(payload))])[0]

    def upsert_many(self, records: Iterable[IndexRecord]) -> List[bool]:
        """R: Upsert all records in one transaction (all-or-nothing)."""
        items = list(records)
        if not items:
            return []

        with _translate_errors("upsert", self._name):
            with self._pool.connection() as conn:
                with conn.transaction():
                    row = conn.execute(
                        "SELECT dimension FROM rag_collections WHERE name = %s FOR UPDATE",
                        (self._name,),
                    ).fetchone()
                    if row is None:
                        raise CollectionNotFoundError(
                            f"Collection {self._name!r} does not exist"
                        )
                    expected = row[0] if row[0] is not None else len(items[0].vector)
                    for record in items:
                        if len(record.vector) != expected:
                            raise DimensionMismatchError(
                                expected, len(record.vector), document_id=record.id
                            )
                    if row[0] is None:
                        conn.execute(
                            "UPDATE rag_collections SET dimension = %s WHERE name = %s",
                            (expected, self._name),
                        )

                    results: List[bool] = []
                    for record in items:
                        id_key, id_num, id_str = _id_columns(record.id)
                        inserted = conn.execute(
                            """
                            INSERT INTO rag_vectors
                                (collection, id_key, id_num, id_str, embedding, payload)
                            VALUES (%s, %s, %s, %s, %s, %s)
                            ON CONFLICT (collection, id_key) DO UPDATE
                            SET embedding = EXCLUDED.embedding,
                                payload = EXCLUDED.payload,
                                updated_at = NOW()
                            RETURNING (xmax = 0)
                            """,
                            (
                                self._name,
                                id_key,
                                id_num,
                                id_str,
                                _to_vector(record.vector),
                                Json(dict(record.payload)),
                            ),
                        ).fetchone()[0]
                        results.append(bool(inserted))

        self._dimension = expected
        logger.debug(
            "Upserted records",
            extra={"collection": self._name, "records": len(items)},
        )
        return results

    def delete(self, document_id: DocumentId) -> bool:
        id_key, _, _ = _id_columns(document_id)
        with _translate_errors("delete", self._name):
            with self._pool.connection() as conn:
                result = conn.execute(
                    "DELETE FROM rag_vectors WHERE collection = %s AND id_key = %s",
                    (self._name, id_key),
                )
                return result.rowcount > 0

    def clear(self) -> None:
        with _translate_errors("clear", self._name):
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM rag_vectors WHERE collection = %s", (self._name,))

    # =========================================================
    # Reads
    # =========================================================
    def get(self, document_id: DocumentId) -> Optional[IndexRecord]:
        id_key, _, _ = _id_columns(document_id)
        with _translate_errors("get", self._name):
            with self._pool.connection() as conn:
                row = conn.execute(
                    """
                    SELECT id_num, id_str, embedding, payload
                    FROM rag_vectors
                    WHERE collection = %s AND id_key = %s
                    """,
                    (self._name, id_key),
                ).fetchone()
        if row is None:
            return None
        return IndexRecord(
            id=_id_from_row(row[0], row[1]),
            vector=tuple(float(v) for v in row[2]),
            payload=row[3] or {},
        )

    def count(self) -> int:
        with _translate_errors("count", self._name):
            with self._pool.connection() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM rag_vectors WHERE collection = %s",
                    (self._name,),
                ).fetchone()
        return int(row[0])

    def ids(self) -> List[DocumentId]:
        with _translate_errors("ids", self._name):
            with self._pool.connection() as conn:
                rows = conn.execute(
                    """
                    SELECT id_num, id_str FROM rag_vectors
                    WHERE collection = %s
                    ORDER BY (id_num IS NULL), id_num, id_str COLLATE "C"
                    """,
                    (self._name,),
                ).fetchall()
        return [_id_from_row(r[0], r[1]) for r in rows]

    def search(
        self,
        vector: Sequence[float],
        k: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[ScoredMatch]:
        if k <= 0:
            raise ValueError("k must be a positive integer")
        predicate = MetadataFilter.parse(filters)

        dimension = self._refresh_dimension()
        if dimension is None:
            return []
        if len(vector) != dimension:
            raise DimensionMismatchError(dimension, len(vector))

        where_sql, filter_params = filter_to_sql(predicate)

        params: Dict[str, Any] = {
            "q": _to_vector(vector),
            "collection": self._name,
            "k": k,
            **filter_params,
        }
        sql = f"""
            SELECT id_num, id_str, payload, {_SCORE_SQL[self._metric]} AS score
            FROM rag_vectors
            WHERE collection = %(collection)s AND ({where_sql})
            ORDER BY {_ORDER_SQL}
            LIMIT %(k)s
        """

        with _translate_errors("search", self._name):
            with self._pool.connection() as conn:
                rows = conn.execute(sql, params).fetchall()

        return [
            ScoredMatch(
                document_id=_id_from_row(r[0], r[1]),
                score=float(r[3]),
                payload=r[2] or {},
            )
            for r in rows
        ]

    def close(self) -> None:
        """R: The pool is owned by the container; nothing to release here."""


class PostgresCollectionCatalog:
    """R: Collections persisted in rag_collections."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    def ensure_schema(self) -> None:
        with _translate_errors("ensure_schema", ""):
            with self._pool.connection() as conn:
                with conn.transaction():
                    for statement in SCHEMA_STATEMENTS:
                        conn.execute(statement)
        logger.info("Similarity index schema ready")

    def create_collection(
        self,
        name: str,
        dimension: Optional[int] = None,
        metric: DistanceMetric | str = DistanceMetric.COSINE,
    ) -> PostgresSimilarityIndex:
        metric = DistanceMetric(metric)
        if dimension is not None and dimension <= 0:
            raise ValueError("dimension must be a positive integer")

        with _translate_errors("create_collection", name):
            with self._pool.connection() as conn:
                with conn.transaction():
                    conn.execute(
                        """
                        INSERT INTO rag_collections (name, dimension, metric)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (name) DO NOTHING
                        """,
                        (name, dimension, metric.value),
                    )
                    row = conn.execute(
                        "SELECT dimension, metric FROM rag_collections WHERE name = %s",
                        (name,),
                    ).fetchone()

        stored_dimension, stored_metric = row[0], DistanceMetric(row[1])
        dimension_conflict = (
            dimension is not None
            and stored_dimension is not None
            and dimension != stored_dimension
        )
        if stored_metric is not metric or dimension_conflict:
            raise CollectionConflictError(
                f"Collection {name!r} already exists with "
                f"metric={stored_metric.value} dimension={stored_dimension}"
            )
        return PostgresSimilarityIndex(self._pool, name, stored_metric, stored_dimension)

    def get_collection(self, name: str) -> PostgresSimilarityIndex:
        with _translate_errors("get_collection", name):
            with self._pool.connection() as conn:
                row = conn.execute(
                    "SELECT dimension, metric FROM rag_collections WHERE name = %s",
                    (name,),
                ).fetchone()
        if row is None:
            raise CollectionNotFoundError(f"Collection {name!r} does not exist")
        return PostgresSimilarityIndex(self._pool, name, row[1], row[0])

    def list_collections(self) -> List[CollectionInfo]:
        with _translate_errors("list_collections", ""):
            with self._pool.connection() as conn:
                rows = conn.execute(
                    "SELECT name, metric, dimension FROM rag_collections ORDER BY name"
                ).fetchall()
        return [
            CollectionInfo(name=r[0], metric=DistanceMetric(r[1]), dimension=r[2])
            for r in rows
        ]

    def drop_collection(self, name: str) -> bool:
        with _translate_errors("drop_collection", name):
            with self._pool.connection() as conn:
                result = conn.execute(
                    "DELETE FROM rag_collections WHERE name = %s", (name,)
                )
                dropped = result.rowcount > 0
        if dropped:
            logger.info("Collection dropped", extra={"collection": name})
        return dropped

    def close(self) -> None:
        """R: Pool lifecycle belongs to db.pool."""
