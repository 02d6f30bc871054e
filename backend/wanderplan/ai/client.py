from __future__ import annotations

import asyncio
import json
import secrets
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

import httpx
from pydantic import ValidationError

from wanderplan.ai.exceptions import AiClientError
from wanderplan.ai.mock_planner import build_mock_plan
from wanderplan.ai.models import AiGenerationRequest, AiTravelPlan
from wanderplan.ai.prompts import SYSTEM_PROMPT, build_travel_plan_prompt
from wanderplan.ai.resilience import CircuitBreaker
from wanderplan.core.logging import get_logger
from wanderplan.core.settings import settings


class AiClient:
    """Asynchronous client producing travel plans from the configured provider."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._provider = (self._settings.ai_provider or "disabled").strip().lower()
        self._model = self._settings.ai_model.strip()
        self._api_base = self._settings.ai_api_base.rstrip("/")
        self._transport = transport
        self._breaker = CircuitBreaker(
            failure_threshold=self._settings.ai_breaker_threshold,
            recovery_seconds=self._settings.ai_breaker_recovery_s,
        )
        self._logger = get_logger(__name__)

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def generate_travel_plan(self, request: AiGenerationRequest) -> AiTravelPlan:
        if not self._provider or self._provider == "disabled":
            raise AiClientError("not_configured", "AI provider is not configured")

        trace_id = self._build_trace_id()
        start = perf_counter()
        try:
            if self._provider == "mock":
                plan = await self._generate_mock(request)
            elif self._provider == "openrouter":
                plan = await self._generate_openrouter(request)
            else:
                raise AiClientError(
                    "provider_error",
                    f"unsupported provider: {self._provider}",
                )
        except AiClientError as exc:
            self._logger.warning(
                "ai_client.failed",
                extra={
                    "trace_id": trace_id,
                    "provider": self._provider,
                    "error_type": exc.type,
                    "attempts": exc.attempts,
                    "latency_ms": round((perf_counter() - start) * 1000, 3),
                },
            )
            raise

        self._logger.info(
            "ai_client.succeeded",
            extra={
                "trace_id": trace_id,
                "provider": self._provider,
                "days": len(plan.days),
                "activities": plan.activity_count,
                "latency_ms": round((perf_counter() - start) * 1000, 3),
            },
        )
        return plan

    async def _generate_mock(self, request: AiGenerationRequest) -> AiTravelPlan:
        delay = float(self._settings.ai_mock_delay_s or 0)
        if delay > 0:
            await asyncio.sleep(delay)
        return build_mock_plan(request)

    async def _generate_openrouter(self, request: AiGenerationRequest) -> AiTravelPlan:
        api_key = (self._settings.ai_api_key or "").strip()
        if not api_key:
            raise AiClientError("not_configured", "AI API key is not configured")

        url = f"{self._api_base}/chat/completions"
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_travel_plan_prompt(request)},
            ],
            "temperature": float(self._settings.ai_temperature),
            "max_tokens": int(self._settings.ai_max_tokens),
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Title": self._settings.app_name,
        }

        self._breaker.before_call()
        try:
            data = await self._post_with_retries(url, payload, headers)
        except AiClientError as exc:
            if exc.retryable:
                self._breaker.record_failure()
            else:
                # the provider answered, so it is up
                self._breaker.record_success()
            raise
        self._breaker.record_success()
        return self._parse_plan(self._extract_content(data))

    async def _post_with_retries(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> Any:
        max_retries = max(int(self._settings.ai_max_retries), 0)
        base_delay = max(float(self._settings.ai_retry_base_delay_s), 0.0)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._post_once(url, payload, headers)
            except AiClientError as exc:
                exc.attempts = attempt
                if not exc.retryable or attempt > max_retries:
                    raise
                delay = base_delay * 2 ** (attempt - 1)
                self._logger.warning(
                    "ai_client.retry",
                    extra={
                        "error_type": exc.type,
                        "attempt": attempt,
                        "max_retries": max_retries,
                        "delay_s": delay,
                    },
                )
                await asyncio.sleep(delay)

    async def _post_once(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> Any:
        timeout = httpx.Timeout(float(self._settings.ai_request_timeout_s))
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise self._http_error(exc) from exc
        except httpx.TimeoutException as exc:
            raise AiClientError(
                "timeout",
                "AI provider request timed out",
                details={"error": str(exc)},
            ) from exc
        except httpx.RequestError as exc:
            raise AiClientError(
                "network_error",
                "failed to reach AI provider",
                details={"error": str(exc)},
            ) from exc
        except json.JSONDecodeError as exc:
            raise AiClientError(
                "invalid_output",
                "provider returned a non-JSON body",
            ) from exc

    @staticmethod
    def _extract_content(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AiClientError(
                "invalid_output",
                "provider response has no message content",
            ) from exc
        if not isinstance(content, str) or not content.strip():
            raise AiClientError("invalid_output", "provider returned empty response")
        return content

    @staticmethod
    def _parse_plan(content: str) -> AiTravelPlan:
        text = content.strip()
        if text.startswith("```"):
            # models sometimes wrap JSON in a markdown fence
            text = text.strip("`")
            if text.lower().startswith("json"):
                text = text[4:]
        try:
            plan = AiTravelPlan.model_validate_json(text.strip())
        except ValidationError as exc:
            raise AiClientError(
                "invalid_output",
                "provider returned an invalid travel plan",
                details={"error": str(exc)[:500]},
            ) from exc
        if not plan.days:
            raise AiClientError("invalid_output", "provider returned no days")
        return plan

    @staticmethod
    def _build_trace_id() -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        suffix = secrets.token_hex(4)
        return f"ai-{timestamp}-{suffix}"

    @staticmethod
    def _http_error(exc: httpx.HTTPStatusError) -> AiClientError:
        status = exc.response.status_code
        if status in {401, 403}:
            error_type = "auth_error"
        elif status == 429:
            error_type = "rate_limited"
        elif status >= 500:
            error_type = "provider_unavailable"
        else:
            error_type = "provider_error"
        return AiClientError(
            error_type,
            f"provider returned status {status}",
            status_code=status,
            details={"body": exc.response.text[:200]},
        )


_ai_client: AiClient | None = None


def get_ai_client() -> AiClient:
    global _ai_client
    if _ai_client is None:
        _ai_client = AiClient()
    return _ai_client


def reset_ai_client() -> None:
    global _ai_client
    _ai_client = None
