"""
HTTP client for a remote answer evaluation service.

Posts the item and the learner's answer to {base_url}/evaluate and maps the
JSON reply onto an EvaluationResult. Retries timeouts, request errors and
5xx responses with exponential backoff.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from src.core.errors import EvaluationError
from src.core.types import Item
from src.practice.evaluation import EvaluationResult


class HttpEvaluator:
    """Evaluator backed by a remote scoring API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 30.0,
        retry_attempts: int = 3,
        backoff_base: float = 1.0,
    ):
        """
        Initialize the evaluation client.

        Args:
            base_url: Base URL for the evaluation API
            api_key: Optional key sent as X-API-Key
            timeout_seconds: Per-request timeout
            retry_attempts: Number of attempts before giving up
            backoff_base: Seconds for the first retry wait (doubles each time)
        """
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_base = backoff_base

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    async def __aenter__(self) -> HttpEvaluator:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    @staticmethod
    def build_payload(item: Item, answer_text: str) -> dict[str, Any]:
        return {
            "question_id": item.id,
            "question": item.content,
            "sample_answer": item.sample_answer,
            "keywords": item.keywords,
            "options": item.options,
            "correct_answer": item.correct_answer,
            "difficulty": item.difficulty.value,
            "answer": answer_text,
        }

    @staticmethod
    def parse_result(data: dict[str, Any]) -> EvaluationResult:
        """Parse result from API response."""
        if "score" not in data:
            raise EvaluationError("Evaluation response missing score")
        return EvaluationResult(
            score=float(data["score"]),
            keyword_matches=list(data.get("keyword_matches", [])),
            feedback=data.get("feedback", ""),
            suggestions=list(data.get("suggestions", [])),
        )

    async def evaluate(self, item: Item, answer_text: str) -> EvaluationResult:
        """
        Score an answer remotely with retry logic.

        Raises:
            EvaluationError: On 4xx responses or when retries are exhausted
        """
        last_error: Exception | None = None
        payload = self.build_payload(item, answer_text)

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(f"{self.base_url}/evaluate", json=payload)
                response.raise_for_status()
                return self.parse_result(response.json())

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    logger.error(f"Evaluation service rejected request: {e.response.status_code}")
                    raise EvaluationError(
                        f"Evaluation service returned {e.response.status_code}"
                    ) from e
                logger.warning(
                    f"Evaluation server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_error = e
                logger.warning(
                    f"Evaluation request error on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            except ValueError as e:
                raise EvaluationError(f"Malformed evaluation response: {e}") from e

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.backoff_base * 2 ** attempt)

        logger.error(f"Evaluation failed after {self.retry_attempts} attempts: {last_error}")
        raise EvaluationError(
            f"Evaluation failed after {self.retry_attempts} attempts"
        ) from last_error
