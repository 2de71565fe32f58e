"""File implementation of ResponseSource.

The source of truth is a directory of documents. Two cache layers sit in
front of it:

- ``{prefix}:file_list`` holds the sorted directory listing (longer TTL)
- ``{prefix}:file:{filename}`` holds each raw document body

Supported documents:
- ``.json``: ``{"response_chat_completion": [...]}`` or a bare list of
  objects with ``Pertanyaan``/``Jawaban``/``Referensi`` keys (English
  ``question``/``answer``/``reference`` also accepted)
- ``.txt`` / ``.md``: one record per file, the whole body is the answer
"""

import asyncio
import json
import random
from pathlib import Path
from typing import Any

from endpoint_simulator.entities import ResolveCriteria, ResponseRecord
from endpoint_simulator.exceptions import RepositoryError
from endpoint_simulator.logger import get_logger

from .cache_aside import CacheAside
from .selection import select_record

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = (".json", ".txt", ".md")

QUESTION_KEYS = ("Pertanyaan", "question", "prompt")
ANSWER_KEYS = ("Jawaban", "answer")
REFERENCE_KEYS = ("Referensi", "reference", "references")


def unescape(text: str) -> str:
    """Turn literal ``\\n`` sequences left by spreadsheet exports into newlines."""
    return text.replace("\\n", "\n")


def _first(item: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return None


def _parse_item(item: Any, default_id: str, filename: str) -> ResponseRecord:
    if not isinstance(item, dict):
        raise RepositoryError(f"{filename}: expected an object, got {type(item).__name__}")

    answer = _first(item, ANSWER_KEYS)
    if not isinstance(answer, str):
        raise RepositoryError(f"{filename}: record {default_id} has no answer text")

    question = _first(item, QUESTION_KEYS) or ""
    if not isinstance(question, str):
        raise RepositoryError(f"{filename}: record {default_id} has a non-string question")

    references = _first(item, REFERENCE_KEYS) or []
    if isinstance(references, str):
        references = [references]
    if not isinstance(references, list) or not all(isinstance(r, str) for r in references):
        raise RepositoryError(f"{filename}: record {default_id} has malformed references")

    return ResponseRecord(
        id=str(item.get("id") or default_id),
        prompt_text=unescape(question),
        answer_text=unescape(answer),
        reference_text="\n".join(unescape(r) for r in references),
    )


def parse_document(filename: str, body: str) -> list[ResponseRecord]:
    """Parse one document body into records.

    Raises:
        RepositoryError: If the document is not valid for its type
    """
    stem = Path(filename).stem
    if not filename.endswith(".json"):
        return [ResponseRecord(id=stem, prompt_text="", answer_text=unescape(body))]

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise RepositoryError(f"{filename}: invalid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("response_chat_completion")
    if not isinstance(data, list):
        raise RepositoryError(f"{filename}: expected a list of responses")

    return [_parse_item(item, f"{stem}:{index}", filename) for index, item in enumerate(data)]


def decode_file_list(raw: str) -> list[str]:
    try:
        names = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RepositoryError(f"Invalid file listing: {e}") from e
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise RepositoryError("Invalid file listing: expected a list of names")
    return names


class FileResponseRepository:
    """Directory-backed response source with cache-aside reads.

    This class satisfies the ResponseSource protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        repository = FileResponseRepository(
            directory=Path("responses"),
            cache=CacheAside(RedisCacheStore.create(settings), prefix="simulator"),
            list_ttl=3600,
            content_ttl=300,
            rng=random.Random(42),
        )
        record = await repository.resolve(ResolveCriteria())
        ```
    """

    name = "file"

    def __init__(
        self,
        directory: Path,
        cache: CacheAside,
        list_ttl: int,
        content_ttl: int,
        rng: random.Random,
        tracking: bool = False,
    ) -> None:
        """Initialize the file repository.

        Args:
            directory: Directory holding the response documents
            cache: Cache-aside helper shared with the rest of the process
            list_ttl: TTL of the cached directory listing, in seconds
            content_ttl: TTL of each cached document body, in seconds
            rng: Random source used for response selection
            tracking: Log every loaded record at debug level
        """
        self._directory = directory
        self._cache = cache
        self._list_ttl = list_ttl
        self._content_ttl = content_ttl
        self._rng = rng
        self._tracking = tracking

    async def list_files(self) -> list[str]:
        """Return the sorted names of supported documents in the directory."""
        return await self._cache.get_or_load(
            self._cache.key("file_list"),
            ttl=self._list_ttl,
            load=self._scan_directory,
            decode=decode_file_list,
        )

    async def list_candidates(self) -> list[ResponseRecord]:
        names = await self.list_files()
        documents = await asyncio.gather(*(self._read_document(name) for name in names))
        records = [record for document in documents for record in document]

        if self._tracking:
            for record in records:
                logger.debug("record_loaded", source=self.name, record=record)
        return records

    async def resolve(self, criteria: ResolveCriteria) -> ResponseRecord:
        record = select_record(await self.list_candidates(), criteria, self._rng)
        logger.debug("record_selected", source=self.name, record_id=record.id)
        return record

    async def count(self) -> int:
        return len(await self.list_candidates())

    async def health_check(self) -> bool:
        return await asyncio.to_thread(self._directory.is_dir)

    async def _scan_directory(self) -> str:
        def scan() -> list[str]:
            return sorted(
                path.name
                for path in self._directory.iterdir()
                if path.is_file() and path.suffix in SUPPORTED_SUFFIXES
            )

        try:
            names = await asyncio.to_thread(scan)
        except OSError as e:
            raise RepositoryError(f"Cannot list response directory {self._directory}: {e}") from e
        logger.info("response_directory_scanned", directory=str(self._directory), files=len(names))
        return json.dumps(names)

    async def _read_document(self, filename: str) -> list[ResponseRecord]:
        path = self._directory / filename
        try:
            return await self._cache.get_or_load(
                self._cache.key("file", filename),
                ttl=self._content_ttl,
                load=lambda: asyncio.to_thread(path.read_text, encoding="utf-8"),
                decode=lambda body: parse_document(filename, body),
            )
        except FileNotFoundError:
            # Listing is cached longer than the directory may live unchanged.
            logger.warning("document_vanished", filename=filename)
            return []
        except (OSError, UnicodeDecodeError) as e:
            raise RepositoryError(f"Cannot read {path}: {e}") from e
