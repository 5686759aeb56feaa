"""
DataOracle tests against httpx MockTransport.
"""

import httpx
import pytest

from services.data_oracle import (
    DataOracle, SemanticScholarSource, ArxivSource, HuggingFaceSource, parse_arxiv_feed,
)


ARXIV_FEED = """<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/abs/1706.03762v7</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models are complex.  </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
    <category term="cs.CL"/>
    <category term="cs.LG"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/0000.00000v1</id>
    <title>   </title>
  </entry>
</feed>"""

S2_RESULTS = {
    "data": [
        {
            "paperId": "204e3073870fae3d05bcbc2f6a8e263d9b72e776",
            "title": "Attention Is All You Need",
            "authors": [{"authorId": "40348417", "name": "Ashish Vaswani"}],
            "year": 2017,
            "citationCount": 50000,
            "fieldsOfStudy": ["Computer Science"],
        }
    ]
}


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def failing_handler(request):
    return httpx.Response(500, json={"error": "down"})


class TestSemanticScholar:

    @pytest.mark.asyncio
    async def test_search(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["query"] = request.url.params["query"]
            seen["api_key"] = request.headers.get("x-api-key")
            return httpx.Response(200, json=S2_RESULTS)

        source = SemanticScholarSource(api_key="s2-key", client=client_for(handler))
        results = await source.search("attention")

        assert seen == {"path": "/graph/v1/paper/search", "query": "attention", "api_key": "s2-key"}
        assert results[0]["title"] == "Attention Is All You Need"
        assert results[0]["source"] == "semantic_scholar"

    @pytest.mark.asyncio
    async def test_retries_once_on_rate_limit(self):
        responses = [
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json=S2_RESULTS),
        ]

        def handler(request):
            return responses.pop(0)

        source = SemanticScholarSource(client=client_for(handler))
        results = await source.search("attention")
        assert len(results) == 1
        assert responses == []

    @pytest.mark.asyncio
    async def test_details_flatten_tldr(self):
        def handler(request):
            return httpx.Response(200, json={"paperId": "abc", "title": "T", "tldr": {"text": "Short."}})

        details = await SemanticScholarSource(client=client_for(handler)).get_details("abc")
        assert details["tldr"] == "Short."

    @pytest.mark.asyncio
    async def test_details_missing_paper(self):
        def handler(request):
            return httpx.Response(404, json={"error": "not found"})

        assert await SemanticScholarSource(client=client_for(handler)).get_details("nope") is None


class TestArxiv:

    def test_parse_feed(self):
        records = parse_arxiv_feed(ARXIV_FEED)

        assert len(records) == 1
        record = records[0]
        assert record["paperId"] == "arxiv:1706.03762v7"
        assert record["title"] == "Attention Is All You Need"
        assert record["year"] == 2017
        assert record["abstract"] == "The dominant sequence transduction models are complex."
        assert [a["name"] for a in record["authors"]] == ["Ashish Vaswani", "Noam Shazeer"]
        assert record["fieldsOfStudy"] == ["cs.CL", "cs.LG"]

    @pytest.mark.asyncio
    async def test_search(self):
        def handler(request):
            assert request.url.params["search_query"] == "all:attention"
            return httpx.Response(200, text=ARXIV_FEED)

        results = await ArxivSource(client=client_for(handler)).search("attention")
        assert results[0]["source"] == "arxiv"


class TestHuggingFace:

    @pytest.mark.asyncio
    async def test_search_models(self):
        def handler(request):
            return httpx.Response(200, json=[
                {"modelId": "google-bert/bert-base-uncased", "pipeline_tag": "fill-mask", "likes": 2000},
                {"id": ""},
            ])

        results = await HuggingFaceSource(client=client_for(handler)).search("bert")

        assert len(results) == 1
        assert results[0]["paperId"] == "hf:google-bert/bert-base-uncased"
        assert results[0]["authors"] == ["google-bert"]
        assert results[0]["fieldsOfStudy"] == ["fill-mask"]


class TestDataOracle:

    @pytest.mark.asyncio
    async def test_partial_failure_is_tolerated(self):
        oracle = DataOracle({
            "semantic_scholar": SemanticScholarSource(client=client_for(failing_handler)),
            "arxiv": ArxivSource(client=client_for(lambda request: httpx.Response(200, text=ARXIV_FEED))),
        })

        results = await oracle.search("attention", ["semantic_scholar", "arxiv"])

        assert [r["source"] for r in results] == ["arxiv"]
        await oracle.close()

    @pytest.mark.asyncio
    async def test_unknown_sources_yield_nothing(self):
        oracle = DataOracle({})
        assert await oracle.search("attention", ["nowhere"]) == []
        assert await oracle.enrich("abc", "nowhere") is None

    @pytest.mark.asyncio
    async def test_enrich_uses_named_source(self):
        def handler(request):
            return httpx.Response(200, json={"paperId": "abc", "title": "Enriched"})

        oracle = DataOracle({"semantic_scholar": SemanticScholarSource(client=client_for(handler))})
        details = await oracle.enrich("abc")
        assert details["title"] == "Enriched"

    def test_from_settings(self, settings):
        oracle = DataOracle.from_settings(settings)
        assert oracle.health_check()["sources"] == ["semantic_scholar", "arxiv", "huggingface"]
