# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-10
# Updated: 2026-02-14
# Description: WikipediaEnricher.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ValidationError

from embedding.EmbeddingRecord import Record
from settings import (
    WIKIPEDIA_API_URL,
    WIKIPEDIA_MAX_SECTIONS,
    WIKIPEDIA_MIN_SECTION_WORDS,
    WIKIPEDIA_SEARCH_LIMIT,
    WIKIPEDIA_TIMEOUT_SECONDS,
    WIKIPEDIA_VERIFY_MIN_CONFIDENCE,
)
from utility.errors import EnrichmentLookupError
from utility.logging_utils import get_class_logger

USER_AGENT = "movie-embeddings/0.3 (batch enrichment)"


class WikipediaSection(BaseModel):
    title: str
    content: str
    word_count: int


class WikipediaMatch(BaseModel):
    """Search outcome, as stored in the cache."""
    found: bool
    title: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None
    search_term: Optional[str] = None
    confidence: Optional[int] = None


class EnrichmentResult(BaseModel):
    found: bool
    title: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None
    sections: List[WikipediaSection] = []
    total_word_count: Optional[int] = None
    confidence: Optional[int] = None
    verification_status: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def record_block(self) -> Dict[str, Any]:
        """Compact form persisted on the enriched movie record (no article text)."""
        return self.model_dump(
            include={"found", "title", "url", "confidence", "reason"},
            exclude_none=True,
        )


# -----------------------------------------------------------------------------
# Matching / scoring / section extraction
# -----------------------------------------------------------------------------
def cache_key(title: str, year: str, director: str) -> str:
    return f"{title}|{year}|{director}"


def search_terms(title: str, year: str, director: str) -> List[str]:
    return [
        f"{title} {year} film",
        f"{title} {year} movie",
        f"{title} film {director}",
        f"{title} {director}",
        title,
    ]


def _contains(text: str, needle: str) -> bool:
    return bool(needle) and needle.lower() in text


def is_movie_match(summary: str, title: str, year: str, director: str) -> bool:
    """Summary must mention the year (when known) and film/movie, plus the director or the title."""
    text = (summary or "").lower()
    if not text:
        return False

    # an empty year cell puts no constraint on the match
    has_year = not year or _contains(text, str(year))
    has_film_keyword = "film" in text or "movie" in text
    has_director = _contains(text, director)
    first_word = text.split(" ")[0]
    has_title = _contains(text, title) or (bool(first_word) and first_word in title.lower())

    return has_year and has_film_keyword and (has_director or has_title)


def calculate_confidence(summary: str, title: str, year: str, director: str) -> int:
    text = (summary or "").lower()
    score = 0
    if _contains(text, title):
        score += 40
    if _contains(text, str(year)):
        score += 30
    if _contains(text, director):
        score += 20
    if "film" in text or "movie" in text:
        score += 10
    return min(score, 100)


def parse_sections(content: str) -> List[WikipediaSection]:
    """Split plain-text article content on '== Heading ==' lines."""
    sections: List[WikipediaSection] = []
    current_title: Optional[str] = None
    current_lines: List[str] = []

    def flush() -> None:
        if current_title is None:
            return
        body = " ".join(current_lines)
        sections.append(
            WikipediaSection(title=current_title, content=body, word_count=len(body.split()))
        )

    for raw in (content or "").split("\n"):
        line = raw.strip()
        if line.startswith("==") and line.endswith("=="):
            flush()
            current_title = line.strip("=").strip()
            current_lines = []
        elif current_title is not None and line:
            current_lines.append(line)
    flush()

    return sections


def relevant_sections(sections: Sequence[WikipediaSection]) -> List[WikipediaSection]:
    kept = [
        s for s in sections
        if s.word_count > WIKIPEDIA_MIN_SECTION_WORDS
        and "reference" not in s.title.lower()
        and "external link" not in s.title.lower()
    ]
    return kept[:WIKIPEDIA_MAX_SECTIONS]


# -----------------------------------------------------------------------------
# Cache
# -----------------------------------------------------------------------------
class WikipediaCache:
    """JSON document keyed by 'title|year|director'. I/O failures are logged, never raised."""

    def __init__(self, path: str | Path, *, logger: logging.Logger | None = None) -> None:
        self.path = Path(path)
        self.logger = logger or get_class_logger(self.__class__)
        self.entries: Dict[str, WikipediaMatch] = {}

    def load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.error("Error loading Wikipedia cache %s: %s", self.path, e)
            self.entries = {}
            return

        entries: Dict[str, WikipediaMatch] = {}
        for key, value in (raw or {}).items():
            try:
                entries[key] = WikipediaMatch.model_validate(value)
            except ValidationError:
                self.logger.warning("Dropping malformed cache entry '%s'", key)
        self.entries = entries
        self.logger.info("Loaded %d cached Wikipedia matches", len(self.entries))

    def get(self, key: str) -> Optional[WikipediaMatch]:
        return self.entries.get(key)

    def put(self, key: str, match: WikipediaMatch) -> None:
        self.entries[key] = match
        self.save()

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = {k: v.model_dump(exclude_none=True) for k, v in self.entries.items()}
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            self.logger.error("Error saving Wikipedia cache %s: %s", self.path, e)


# -----------------------------------------------------------------------------
# MediaWiki API client
# -----------------------------------------------------------------------------
class WikipediaClient:
    def __init__(
        self,
        *,
        api_url: str = WIKIPEDIA_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_url = api_url
        self.http_client = http_client or httpx.AsyncClient(
            timeout=WIKIPEDIA_TIMEOUT_SECONDS,
            headers={"User-Agent": USER_AGENT},
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def _query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await self.http_client.get(self.api_url, params={**params, "format": "json"})
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentLookupError(f"Wikipedia API request failed: {e}") from e

    async def search(self, term: str, limit: int = WIKIPEDIA_SEARCH_LIMIT) -> List[str]:
        data = await self._query({"action": "query", "list": "search", "srsearch": term, "srlimit": limit})
        return [hit["title"] for hit in data.get("query", {}).get("search", []) if "title" in hit]

    async def _page(self, title: str, **params: Any) -> Dict[str, Any]:
        data = await self._query({"action": "query", "titles": title, "redirects": 1, **params})
        pages = data.get("query", {}).get("pages", {})
        for page in pages.values():
            if "missing" not in page:
                return page
        raise EnrichmentLookupError(f"Wikipedia page not found: {title}")

    async def summary(self, title: str) -> Dict[str, str]:
        page = await self._page(
            title, prop="extracts|info", exintro=1, explaintext=1, inprop="url"
        )
        return {"title": page.get("title", title), "extract": page.get("extract", ""), "url": page.get("fullurl", "")}

    async def content(self, title: str) -> str:
        page = await self._page(title, prop="extracts", explaintext=1)
        return page.get("extract", "")


# -----------------------------------------------------------------------------
# Enricher
# -----------------------------------------------------------------------------
class WikipediaEnricher:
    """
    Best-effort Wikipedia enrichment for movie records.

    enrich() never raises: lookup failures come back as found=False with a
    reason. Positive and negative matches are cached by title|year|director.
    """

    def __init__(
        self,
        *,
        cache: WikipediaCache,
        client: Optional[WikipediaClient] = None,
        title_field: str = "Title (Data retrieved 2019-06-21)",
        year_field: str = "Year",
        director_field: str = "Director",
        verify: bool = False,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache
        self.client = client or WikipediaClient()
        self.title_field = title_field
        self.year_field = year_field
        self.director_field = director_field
        self.verify = verify
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.logger = logger or get_class_logger(self.__class__)
        self._remote_lookups = 0

    def _movie_keys(self, record: Record) -> tuple[str, str, str]:
        return (
            str(record.get(self.title_field, "") or ""),
            str(record.get(self.year_field, "") or ""),
            str(record.get(self.director_field, "") or ""),
        )

    async def search_movie(self, record: Record) -> WikipediaMatch:
        title, year, director = self._movie_keys(record)
        key = cache_key(title, year, director)

        cached = self.cache.get(key)
        if cached is not None:
            self.logger.info("Cache hit for: %s (%s)", title, year)
            return cached

        self.logger.info("Searching Wikipedia for: %s (%s)", title, year)
        self._remote_lookups += 1
        lookup_errors = 0

        for term in search_terms(title, year, director):
            try:
                hits = await self.client.search(term)
            except EnrichmentLookupError as e:
                lookup_errors += 1
                self.logger.warning("Search failed for '%s': %s", term, e)
                continue

            for hit in hits:
                try:
                    summary = await self.client.summary(hit)
                except EnrichmentLookupError as e:
                    lookup_errors += 1
                    self.logger.warning("Error loading page '%s': %s", hit, e)
                    continue

                extract = summary["extract"]
                if is_movie_match(extract, title, year, director):
                    match = WikipediaMatch(
                        found=True,
                        title=summary["title"],
                        url=summary["url"],
                        summary=extract,
                        search_term=term,
                        confidence=calculate_confidence(extract, title, year, director),
                    )
                    self.cache.put(key, match)
                    self.logger.info("Found match: %s (confidence: %s)", match.title, match.confidence)
                    return match

        if lookup_errors:
            # transient failures must not be remembered as "no article"
            raise EnrichmentLookupError(
                f"{lookup_errors} Wikipedia lookup(s) failed for {title} ({year})"
            )
        no_match = WikipediaMatch(found=False)
        self.cache.put(key, no_match)
        self.logger.info("No Wikipedia match found for: %s (%s)", title, year)
        return no_match

    def verify_match(self, record: Record, match: WikipediaMatch) -> bool:
        if not self.verify or not match.found:
            return True
        title, year, director = self._movie_keys(record)
        self.logger.info(
            "Verifying match for %s (%s) by %s -> %s [%s] confidence=%s",
            title, year, director, match.title, match.url, match.confidence,
        )
        return (match.confidence or 0) >= WIKIPEDIA_VERIFY_MIN_CONFIDENCE

    async def extract_content(self, match: WikipediaMatch) -> Optional[EnrichmentResult]:
        if not match.found or not match.title:
            return None
        try:
            self.logger.info("Extracting content from: %s", match.title)
            content = await self.client.content(match.title)
        except EnrichmentLookupError as e:
            self.logger.error("Error extracting content from %s: %s", match.title, e)
            return None

        sections = relevant_sections(parse_sections(content))
        self.logger.info("Extracted %d sections from %s", len(sections), match.title)
        return EnrichmentResult(
            found=True,
            title=match.title,
            url=match.url,
            summary=match.summary,
            sections=sections,
            total_word_count=sum(s.word_count for s in sections),
        )

    async def enrich(self, record: Record) -> EnrichmentResult:
        title = record.get(self.title_field, "")
        try:
            match = await self.search_movie(record)
            if not match.found:
                return EnrichmentResult(found=False, reason="No matching article found")

            verified = self.verify_match(record, match)
            if not verified:
                return EnrichmentResult(found=False, reason="Failed verification", confidence=match.confidence)

            content = await self.extract_content(match)
            if content is None:
                return EnrichmentResult(found=False, reason="Content extraction failed")

            return content.model_copy(
                update={"confidence": match.confidence, "verification_status": "approved"}
            )
        except Exception as e:
            self.logger.error("Error enriching %s: %s", title, e)
            return EnrichmentResult(found=False, reason="Processing error", error=str(e))

    async def enrich_batch(self, records: Sequence[Record]) -> List[EnrichmentResult]:
        """Sequential lookups with a politeness delay after each network lookup."""
        results: List[EnrichmentResult] = []
        for i, record in enumerate(records):
            before = self._remote_lookups
            results.append(await self.enrich(record))
            if self._remote_lookups != before and i < len(records) - 1 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
        return results

    async def process_movies(
        self,
        records: Sequence[Record],
        *,
        output_path: str | Path,
        batch_size: int = 5,
        start_index: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Wikipedia-only run: enrich every record and rewrite output_path
        after each batch with {enrichedMovies, lastProcessedIndex, metadata}.
        """
        output_path = Path(output_path)
        total = len(records)
        self.logger.info(
            "Starting Wikipedia enrichment for %d movies (verification=%s, cache=%s)",
            total, self.verify, self.cache.path,
        )

        enriched: List[Dict[str, Any]] = []
        for i in range(start_index, total, batch_size):
            batch = records[i:i + batch_size]
            self.logger.info(
                "Processing batch %d (%d-%d of %d)",
                i // batch_size + 1, i + 1, min(i + batch_size, total), total,
            )
            results = await self.enrich_batch(batch)
            for record, result in zip(batch, results):
                enriched.append({**record, "wikipedia": result.model_dump(exclude_none=True)})

            progress = {
                "enrichedMovies": enriched,
                "lastProcessedIndex": i + len(batch),
                "metadata": {
                    "processed": len(enriched),
                    "total": total,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            }
            output_path.parent.mkdir(parents=True, exist_ok=True)
            tmp = output_path.with_name(output_path.name + ".tmp")
            tmp.write_text(json.dumps(progress, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, output_path)
            self.logger.info("Progress saved: %d/%d movies processed", len(enriched), total)

        found = sum(1 for m in enriched if m["wikipedia"].get("found"))
        self.logger.info("Wikipedia enrichment complete: %d matches out of %d movies", found, total)
        return enriched
