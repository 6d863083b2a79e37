"""
Unit tests for the remote evaluation client.
"""

import httpx
import pytest
import pytest_asyncio
from httpx import Request, Response

from src.core.errors import EvaluationError
from src.practice.evaluation import EvaluationResult
from src.practice.http_evaluator import HttpEvaluator


@pytest.fixture
def sample_reply():
    """Sample successful evaluation reply."""
    return {
        "score": 0.82,
        "keyword_matches": ["routing", "network"],
        "feedback": "Solid explanation of route selection.",
        "suggestions": ["Mention administrative distance."],
    }


@pytest_asyncio.fixture
async def evaluator():
    """Create evaluator for testing."""
    client = HttpEvaluator(base_url="http://localhost:8100/", api_key="secret", backoff_base=0)
    yield client
    await client.close()


class TestPayloadAndParsing:
    def test_build_payload(self, item_factory):
        item = item_factory("q7", sample_answer="Routers choose the best path.")
        payload = HttpEvaluator.build_payload(item, "my answer")

        assert payload["question_id"] == "q7"
        assert payload["difficulty"] == "medium"
        assert payload["answer"] == "my answer"
        assert payload["keywords"] == ["routing", "protocol", "network"]

    def test_parse_result(self, sample_reply):
        result = HttpEvaluator.parse_result(sample_reply)

        assert isinstance(result, EvaluationResult)
        assert result.score == 0.82
        assert result.keyword_matches == ["routing", "network"]
        assert result.suggestions == ["Mention administrative distance."]

    def test_parse_result_requires_score(self):
        with pytest.raises(EvaluationError, match="missing score"):
            HttpEvaluator.parse_result({"feedback": "no score here"})

    def test_api_key_header(self, evaluator):
        assert evaluator.client.headers["X-API-Key"] == "secret"
        assert evaluator.base_url == "http://localhost:8100"


class TestEvaluate:
    """Requests, retries and error mapping."""

    @pytest.mark.asyncio
    async def test_success(self, evaluator, item_factory, sample_reply, monkeypatch):
        seen = {}

        async def mock_post(url, **kwargs):
            seen["url"] = url
            seen["json"] = kwargs["json"]
            request = Request("POST", url)
            return Response(200, json=sample_reply, request=request)

        monkeypatch.setattr(evaluator.client, "post", mock_post)

        result = await evaluator.evaluate(item_factory("q1"), "routing answer")

        assert result.score == 0.82
        assert seen["url"] == "http://localhost:8100/evaluate"
        assert seen["json"]["answer"] == "routing answer"

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, evaluator, item_factory, monkeypatch):
        calls = []

        async def mock_post(url, **kwargs):
            calls.append(url)
            request = Request("POST", url)
            return Response(422, json={"detail": "bad payload"}, request=request)

        monkeypatch.setattr(evaluator.client, "post", mock_post)

        with pytest.raises(EvaluationError, match="422"):
            await evaluator.evaluate(item_factory("q1"), "answer")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, evaluator, item_factory, sample_reply, monkeypatch):
        calls = []

        async def mock_post(url, **kwargs):
            calls.append(url)
            request = Request("POST", url)
            if len(calls) < 3:
                return Response(503, json={"detail": "busy"}, request=request)
            return Response(200, json=sample_reply, request=request)

        monkeypatch.setattr(evaluator.client, "post", mock_post)

        result = await evaluator.evaluate(item_factory("q1"), "answer")

        assert result.score == 0.82
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, evaluator, item_factory, monkeypatch):
        calls = []

        async def mock_post(url, **kwargs):
            calls.append(url)
            raise httpx.ConnectTimeout("timed out", request=Request("POST", url))

        monkeypatch.setattr(evaluator.client, "post", mock_post)

        with pytest.raises(EvaluationError, match="after 3 attempts"):
            await evaluator.evaluate(item_factory("q1"), "answer")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_malformed_body(self, evaluator, item_factory, monkeypatch):
        async def mock_post(url, **kwargs):
            request = Request("POST", url)
            return Response(200, content=b"not json", request=request)

        monkeypatch.setattr(evaluator.client, "post", mock_post)

        with pytest.raises(EvaluationError, match="Malformed"):
            await evaluator.evaluate(item_factory("q1"), "answer")
