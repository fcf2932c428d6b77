"""Tests for the HTTP embedding and vector index clients."""
import json
import httpx
import pytest
from src.contextengine.clients import (
    EmbeddingProviderError,
    HttpEmbeddingProvider,
    HttpVectorIndex,
    UpstreamServiceError,
    VectorIndexError,
)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_posts_text_and_parses_vector(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [[0.1, 0.2]]})

        async with _client(handler) as client:
            provider = HttpEmbeddingProvider("https://ai.test/", model="bge", api_key="k", client=client)
            assert await provider.embed("kale smoothie") == [0.1, 0.2]

        assert seen["url"] == "https://ai.test/embed"
        assert seen["auth"] == "Bearer k"
        assert seen["body"] == {"model": "bge", "text": ["kale smoothie"]}

    @pytest.mark.asyncio
    async def test_http_error_is_wrapped(self):
        async with _client(lambda request: httpx.Response(503)) as client:
            provider = HttpEmbeddingProvider("https://ai.test", model="bge", client=client)
            with pytest.raises(EmbeddingProviderError, match="503"):
                await provider.embed("x")

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            provider = HttpEmbeddingProvider("https://ai.test", model="bge", client=client)
            with pytest.raises(UpstreamServiceError):
                await provider.embed("x")

    @pytest.mark.asyncio
    async def test_empty_vector_is_an_error(self):
        async with _client(lambda request: httpx.Response(200, json={"data": []})) as client:
            provider = HttpEmbeddingProvider("https://ai.test", model="bge", client=client)
            with pytest.raises(EmbeddingProviderError):
                await provider.embed("x")


class TestHttpVectorIndex:
    @pytest.mark.asyncio
    async def test_query_payload_and_matches(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"matches": [
                {"id": "a", "score": 0.91, "metadata": {"chunk_text": "hello"}},
                {"id": "b", "score": "bad"},
                {"id": "c", "score": 0.5, "metadata": "oops"},
            ]})

        async with _client(handler) as client:
            index = HttpVectorIndex("https://vec.test", client=client)
            matches = await index.query([0.1, 0.2], top_k=40)

        assert seen["url"] == "https://vec.test/query"
        assert seen["body"] == {"vector": [0.1, 0.2], "topK": 40, "returnMetadata": "all"}
        assert [m.id for m in matches] == ["a", "c"]
        assert matches[0].metadata == {"chunk_text": "hello"}
        assert matches[1].metadata == {}

    @pytest.mark.asyncio
    async def test_invalid_json_is_wrapped(self):
        async with _client(lambda request: httpx.Response(200, content=b"<html>")) as client:
            index = HttpVectorIndex("https://vec.test", client=client)
            with pytest.raises(VectorIndexError):
                await index.query([0.1], top_k=5)

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        index = HttpVectorIndex("https://vec.test")
        async with index:
            pass
        assert index._client.is_closed
