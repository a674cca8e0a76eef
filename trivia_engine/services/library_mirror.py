"""
Best-effort mirror of the question library to a shared Supabase/PostgREST backend

Failures never propagate: an upsert that cannot be confirmed reports every
item as a duplicate and a fetch that fails returns nothing.
"""
import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from trivia_engine.schemas.library import InsertSummary, QuestionDoc

logger = logging.getLogger(__name__)

TABLE = "questions"


class LibraryMirror:
    """Remote copy of the library, unique by stem hash"""

    def __init__(
        self,
        base_url: Optional[str],
        anon_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.anon_key = anon_key
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.anon_key)

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/v1",
            timeout=self.timeout,
            transport=self._transport,
        )

    async def upsert_many(self, docs: Sequence[QuestionDoc]) -> InsertSummary:
        """Insert docs remotely, ignoring rows whose stem hash already exists"""
        if not docs:
            return InsertSummary()
        if not self.enabled:
            return InsertSummary(inserted=0, duplicates=len(docs))

        payload = [doc.model_dump(by_alias=True, mode="json") for doc in docs]
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/{TABLE}",
                    params={"on_conflict": "stemHash", "select": "id"},
                    json=payload,
                    headers=self._headers("resolution=ignore-duplicates,return=representation"),
                )
                response.raise_for_status()
                rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Library mirror upsert failed: {str(e)}")
            return InsertSummary(inserted=0, duplicates=len(docs))

        inserted = len(rows) if isinstance(rows, list) else 0
        return InsertSummary(inserted=inserted, duplicates=max(0, len(docs) - inserted))

    async def fetch_batch(
        self,
        category: str,
        difficulty: str,
        limit: int = 50,
        exclude_hashes: Optional[Sequence[str]] = None,
    ) -> List[QuestionDoc]:
        if not self.enabled:
            return []

        params = {
            "select": "*",
            "category": f"eq.{category}",
            "difficulty": f"eq.{difficulty}",
            "limit": str(limit),
        }
        exclude = set(exclude_hashes or [])
        if exclude:
            params["stemHash"] = f"not.in.({','.join(sorted(exclude))})"

        try:
            async with self._client() as client:
                response = await client.get(f"/{TABLE}", params=params, headers=self._headers())
                response.raise_for_status()
                rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Library mirror fetch failed: {str(e)}")
            return []

        docs = []
        for row in rows if isinstance(rows, list) else []:
            try:
                doc = QuestionDoc.model_validate(row)
            except ValidationError as e:
                logger.warning(f"Skipping malformed mirror row: {str(e)}")
                continue
            if doc.stem_hash not in exclude:
                docs.append(doc)
        return docs
