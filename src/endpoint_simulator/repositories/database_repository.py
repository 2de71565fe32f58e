"""Database implementation of ResponseSource.

Reads every row of a fixed question/answer/reference table through
SQLAlchemy Core. The whole result set is cached as one unit under
``{prefix}:db_responses``. Blocking driver calls run in the default
thread pool so the event loop keeps serving other sessions.
"""

import asyncio
import json
import random
import re
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from endpoint_simulator.config import Settings
from endpoint_simulator.entities import ResolveCriteria, ResponseRecord
from endpoint_simulator.exceptions import RepositoryError
from endpoint_simulator.logger import get_logger

from .cache_aside import CacheAside
from .file_repository import unescape
from .selection import select_record

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def build_database_url(settings: Settings) -> str:
    """Merge separately supplied credentials into the database URL."""
    url = make_url(settings.database_url)
    if settings.database_username:
        url = url.set(username=settings.database_username)
    if settings.database_password:
        url = url.set(password=settings.database_password)
    return url.render_as_string(hide_password=False)


def encode_records(records: list[ResponseRecord]) -> str:
    return json.dumps(
        [
            {
                "id": r.id,
                "prompt_text": r.prompt_text,
                "answer_text": r.answer_text,
                "reference_text": r.reference_text,
            }
            for r in records
        ]
    )


def decode_records(raw: str) -> list[ResponseRecord]:
    try:
        return [ResponseRecord(**item) for item in json.loads(raw)]
    except (json.JSONDecodeError, TypeError) as e:
        raise RepositoryError(f"Invalid cached result set: {e}") from e


class DatabaseResponseRepository:
    """Relational response source with a cached result set.

    This class satisfies the ResponseSource protocol through structural
    typing - no explicit inheritance needed.

    Schema (one row per canned answer):
        qa_id       identifier (UUID or text)
        pertanyaan  question text
        jawaban     answer text
        referensi   reference text, may be NULL
    """

    name = "database"

    def __init__(
        self,
        engine: Engine,
        cache: CacheAside,
        ttl: int,
        rng: random.Random,
        table: str = "response_simulator",
        tracking: bool = False,
    ) -> None:
        """Initialize the database repository.

        Args:
            engine: SQLAlchemy engine for the response table's database
            cache: Cache-aside helper shared with the rest of the process
            ttl: TTL of the cached result set, in seconds
            rng: Random source used for response selection
            table: Table name, optionally schema-qualified
            tracking: Log every loaded record at debug level

        Raises:
            ValueError: If ``table`` is not a plain SQL identifier
        """
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name: {table!r}")

        self._engine = engine
        self._cache = cache
        self._ttl = ttl
        self._rng = rng
        self._table = table
        self._tracking = tracking

    @classmethod
    def create(
        cls,
        settings: Settings,
        cache: CacheAside,
        rng: random.Random,
    ) -> "DatabaseResponseRepository":
        """Factory method to create the repository from settings.

        Args:
            settings: Application settings with the database URL and credentials
            cache: Cache-aside helper
            rng: Random source used for response selection

        Returns:
            Configured DatabaseResponseRepository
        """
        engine = create_engine(
            build_database_url(settings),
            pool_pre_ping=True,
            pool_recycle=300,
        )
        return cls(
            engine=engine,
            cache=cache,
            ttl=settings.cache_ttl,
            rng=rng,
            table=settings.database_table,
            tracking=settings.tracking_enabled,
        )

    async def list_candidates(self) -> list[ResponseRecord]:
        records = await self._cache.get_or_load(
            self._cache.key("db_responses"),
            ttl=self._ttl,
            load=self._fetch_serialized,
            decode=decode_records,
        )

        if self._tracking:
            for record in records:
                logger.debug("record_loaded", source=self.name, record=record)
        return records

    async def resolve(self, criteria: ResolveCriteria) -> ResponseRecord:
        record = select_record(await self.list_candidates(), criteria, self._rng)
        logger.debug("record_selected", source=self.name, record_id=record.id)
        return record

    async def count(self) -> int:
        """Count rows directly in the table, bypassing the cache."""
        return await asyncio.to_thread(
            self._scalar, f"SELECT COUNT(*) FROM {self._table}"  # noqa: S608 - validated identifier
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._scalar, "SELECT 1")
        except RepositoryError:
            return False
        return True

    def dispose(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()

    def _scalar(self, query: str) -> Any:
        try:
            with self._engine.connect() as connection:
                return connection.execute(text(query)).scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Database query failed: {e}") from e

    def _fetch_rows(self) -> list[ResponseRecord]:
        query = text(
            f"SELECT qa_id, pertanyaan, jawaban, referensi FROM {self._table}"  # noqa: S608
        )
        logger.info("database_fetch", table=self._table)
        try:
            with self._engine.connect() as connection:
                rows = connection.execute(query).mappings().all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Database query failed: {e}") from e

        records = [self._row_to_record(row) for row in rows]
        logger.info("database_fetched", table=self._table, records=len(records))
        return records

    async def _fetch_serialized(self) -> str:
        return encode_records(await asyncio.to_thread(self._fetch_rows))

    @staticmethod
    def _row_to_record(row: Any) -> ResponseRecord:
        qa_id, answer = row["qa_id"], row["jawaban"]
        question = row["pertanyaan"] if row["pertanyaan"] is not None else ""
        reference = row["referensi"] if row["referensi"] is not None else ""
        if (
            qa_id is None
            or not isinstance(answer, str)
            or not isinstance(question, str)
            or not isinstance(reference, str)
        ):
            raise RepositoryError(f"Malformed response row: {dict(row)!r}")
        return ResponseRecord(
            id=str(qa_id),
            prompt_text=unescape(question),
            answer_text=unescape(answer),
            reference_text=unescape(reference),
        )

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        return self._engine
