"""
DataOracle - Best-effort literature search across external providers

Sources:
- semantic_scholar: Semantic Scholar Graph API paper search
- arxiv: arXiv Atom export API
- huggingface: Hugging Face model registry search

All sources return records normalised to the Semantic Scholar shape:

    {'paperId', 'title', 'authors', 'year', 'abstract',
     'citationCount', 'fieldsOfStudy', 'source'}

DataOracle.search() queries the requested sources concurrently; a source
that fails contributes nothing and the rest still return.

Usage:
    oracle = DataOracle.from_settings(settings)
    results = await oracle.search("sparse attention", ["semantic_scholar", "arxiv"])
"""
import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Any

import httpx

logger = logging.getLogger(__name__)

ATOM_NS = {'atom': 'http://www.w3.org/2005/Atom'}

S2_SEARCH_FIELDS = "paperId,title,abstract,year,citationCount,authors,fieldsOfStudy"
S2_DETAIL_FIELDS = S2_SEARCH_FIELDS + ",tldr,influentialCitationCount"

MAX_RETRY_AFTER = 10


class SearchSource:
    """Base class: one external provider behind an httpx async client."""

    name = "base"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0, limit: int = 10):
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self.limit = limit

    async def search(self, query: str) -> List[Dict[str, Any]]:
        raise NotImplementedError(f"{self.__class__.__name__} must implement search()")

    async def get_details(self, record_id: str) -> Optional[Dict[str, Any]]:
        return None

    async def close(self):
        await self.client.aclose()


class SemanticScholarSource(SearchSource):
    name = "semantic_scholar"

    BASE_URL = "https://api.semanticscholar.org/graph/v1"

    def __init__(self, api_key: str = "", **kwargs):
        super().__init__(**kwargs)
        self.headers = {"Accept": "application/json", "User-Agent": "Republic/1.0"}
        if api_key:
            self.headers["x-api-key"] = api_key

    async def _get(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        url = f"{self.BASE_URL}/{path}"
        response = await self.client.get(url, params=params, headers=self.headers)

        # ---- RATE LIMIT: one polite retry ----
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            wait_time = int(retry_after) if retry_after and retry_after.isdigit() else 2
            wait_time = min(wait_time, MAX_RETRY_AFTER)
            logger.warning(f"[429] Semantic Scholar rate limited, retrying after {wait_time}s")
            await asyncio.sleep(wait_time)
            response = await self.client.get(url, params=params, headers=self.headers)

        response.raise_for_status()
        return response

    async def search(self, query: str) -> List[Dict[str, Any]]:
        response = await self._get("paper/search", {
            "query": query,
            "limit": self.limit,
            "fields": S2_SEARCH_FIELDS,
        })
        data = response.json().get("data") or []
        return [{**p, "source": self.name} for p in data if p]

    async def get_details(self, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self._get(f"paper/{record_id}", {"fields": S2_DETAIL_FIELDS})
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        paper = response.json()
        tldr = paper.get("tldr")
        if isinstance(tldr, dict):
            paper["tldr"] = tldr.get("text")
        return paper


class ArxivSource(SearchSource):
    name = "arxiv"

    BASE_URL = "http://export.arxiv.org/api/query"

    async def search(self, query: str) -> List[Dict[str, Any]]:
        response = await self.client.get(self.BASE_URL, params={
            "search_query": f"all:{query}",
            "max_results": self.limit,
        })
        response.raise_for_status()
        return parse_arxiv_feed(response.text)

    async def get_details(self, record_id: str) -> Optional[Dict[str, Any]]:
        response = await self.client.get(self.BASE_URL, params={"id_list": record_id})
        response.raise_for_status()
        results = parse_arxiv_feed(response.text)
        return results[0] if results else None


def parse_arxiv_feed(xml_text: str) -> List[Dict[str, Any]]:
    """Atom feed entries → normalised records."""
    root = ET.fromstring(xml_text)
    records = []
    for entry in root.findall('atom:entry', ATOM_NS):
        raw_id = (entry.findtext('atom:id', default='', namespaces=ATOM_NS) or '').strip()
        arxiv_id = raw_id.split('/abs/')[-1] if raw_id else None
        title = ' '.join((entry.findtext('atom:title', default='', namespaces=ATOM_NS) or '').split())
        if not title:
            continue
        published = (entry.findtext('atom:published', default='', namespaces=ATOM_NS) or '').strip()
        categories = [c.get('term') for c in entry.findall('atom:category', ATOM_NS) if c.get('term')]

        records.append({
            "paperId": f"arxiv:{arxiv_id}" if arxiv_id else None,
            "title": title,
            "abstract": (entry.findtext('atom:summary', default='', namespaces=ATOM_NS) or '').strip() or None,
            "year": int(published[:4]) if published[:4].isdigit() else None,
            "authors": [
                {"name": (a.findtext('atom:name', default='', namespaces=ATOM_NS) or '').strip()}
                for a in entry.findall('atom:author', ATOM_NS)
            ],
            "citationCount": None,
            "fieldsOfStudy": categories,
            "source": "arxiv",
        })
    return records


class HuggingFaceSource(SearchSource):
    name = "huggingface"

    BASE_URL = "https://huggingface.co/api/models"

    async def search(self, query: str) -> List[Dict[str, Any]]:
        response = await self.client.get(self.BASE_URL, params={"search": query, "limit": self.limit})
        response.raise_for_status()
        records = []
        for model in response.json() or []:
            model_id = model.get("modelId") or model.get("id")
            if not model_id:
                continue
            fields = [model["pipeline_tag"]] if model.get("pipeline_tag") else []
            records.append({
                "paperId": f"hf:{model_id}",
                "title": model_id,
                "abstract": None,
                "year": None,
                "authors": [model_id.split('/')[0]] if '/' in model_id else [],
                "citationCount": model.get("likes"),
                "fieldsOfStudy": fields,
                "source": self.name,
            })
        return records


class DataOracle:
    """Aggregates search sources; partial failures are tolerated."""

    def __init__(self, sources: Dict[str, SearchSource]):
        self.sources = sources

    @classmethod
    def from_settings(cls, settings) -> 'DataOracle':
        timeout = settings.search_timeout_seconds
        return cls({
            "semantic_scholar": SemanticScholarSource(api_key=settings.s2_api_key, timeout=timeout),
            "arxiv": ArxivSource(timeout=timeout),
            "huggingface": HuggingFaceSource(timeout=timeout),
        })

    async def search(self, query: str, sources: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        names = [s for s in (sources or ["semantic_scholar", "arxiv"]) if s in self.sources]
        if not names:
            return []

        results = await asyncio.gather(
            *(self.sources[name].search(query) for name in names),
            return_exceptions=True
        )

        merged: List[Dict[str, Any]] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"⚠️ [Oracle] {name} search failed for '{query}': {result}")
                continue
            merged.extend(result or [])
        return merged

    async def enrich(self, record_id: str, source: str = "semantic_scholar") -> Optional[Dict[str, Any]]:
        src = self.sources.get(source)
        if src is None:
            return None
        return await src.get_details(record_id)

    async def close(self):
        for source in self.sources.values():
            await source.close()

    def health_check(self) -> Dict[str, Any]:
        return {"status": "ok", "sources": list(self.sources.keys())}
