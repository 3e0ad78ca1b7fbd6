from __future__ import annotations

import json
import os
from typing import Any, Optional

import httpx


DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash"


def ai_gateway_is_configured() -> bool:
    return bool(os.getenv("AI_GATEWAY_API_KEY"))


def ai_gateway_base_url() -> str:
    return (os.getenv("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL).rstrip("/")


def ai_gateway_model() -> str:
    return os.getenv("AI_GATEWAY_MODEL") or DEFAULT_MODEL


def _timeout_seconds() -> float:
    raw = os.getenv("AI_GATEWAY_TIMEOUT")
    try:
        return float(raw) if raw else 30.0
    except ValueError:
        return 30.0


class AIGatewayError(Exception):
    """Gateway call failed. status_code is the upstream HTTP status when there was one."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIGatewayClient:
    """OpenAI-compatible chat completions endpoint. One attempt per call."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url or ai_gateway_base_url()
        self.api_key = api_key or os.getenv("AI_GATEWAY_API_KEY")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=_timeout_seconds())

    def chat(self, payload: dict) -> dict:
        if not self.api_key:
            raise RuntimeError("AI_GATEWAY_API_KEY must be configured.")
        try:
            response = self._client.post(
                "/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise AIGatewayError(f"AI gateway unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise AIGatewayError(
                f"AI gateway error: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise AIGatewayError("AI gateway returned invalid JSON") from exc

    def call_tool(self, *, messages: list[dict], tool: dict, model: Optional[str] = None) -> Any:
        """Force a single function call and return its decoded arguments."""
        name = tool["function"]["name"]
        body = self.chat(
            {
                "model": model or ai_gateway_model(),
                "messages": messages,
                "tools": [tool],
                "tool_choice": {"type": "function", "function": {"name": name}},
            }
        )
        try:
            call = body["choices"][0]["message"]["tool_calls"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise AIGatewayError("Invalid AI response format") from exc
        if call.get("function", {}).get("name") != name:
            raise AIGatewayError("Invalid AI response format")
        try:
            return json.loads(call["function"].get("arguments") or "{}")
        except ValueError as exc:
            raise AIGatewayError("AI tool call arguments are not valid JSON") from exc
