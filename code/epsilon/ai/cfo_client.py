import logging
import os
from typing import Any, Dict
from urllib.parse import urlparse, urlunparse

import requests
from openai import OpenAI

logger = logging.getLogger(__name__)

LLM_BASE_URL = os.getenv("EPSILON_LLM_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai")
LLM_MODEL = os.getenv("EPSILON_LLM_MODEL", "gemini-2.5-flash")
LLM_TIMEOUT = float(os.getenv("EPSILON_LLM_TIMEOUT", "25"))
LLM_HEALTH_TIMEOUT = float(os.getenv("EPSILON_LLM_HEALTH_TIMEOUT", "1.0"))
LLM_MAX_RETRIES = max(0, int(os.getenv("EPSILON_LLM_MAX_RETRIES", "0")))
LLM_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("EPSILON_LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
LLM_DEFAULT_MAX_TOKENS = int(os.getenv("EPSILON_LLM_MAX_TOKENS", "800"))


def _base_url() -> str:
    parsed = urlparse(LLM_BASE_URL)
    path = parsed.path.rstrip("/")
    if path.endswith("/chat/completions"):
        path = path[: -len("/chat/completions")]
    elif path.endswith("/completions"):
        path = path[: -len("/completions")]
    base = parsed._replace(path=path, params="", query="", fragment="")
    return urlunparse(base)


def _get_client() -> OpenAI:
    return OpenAI(base_url=_base_url(), api_key=LLM_API_KEY, max_retries=LLM_MAX_RETRIES)


def check_cfo_online(timeout: float | None = None) -> bool:
    base = _base_url().rstrip("/")
    health_timeout = timeout if timeout is not None else LLM_HEALTH_TIMEOUT
    headers = {"Authorization": f"Bearer {LLM_API_KEY}"} if LLM_API_KEY else {}
    for path in ("/models", "/health"):
        try:
            resp = requests.get(f"{base}{path}", timeout=health_timeout, headers=headers)
        except requests.RequestException as e:
            logger.debug("Health probe %s failed: %s", path, e)
            continue
        # Anything below 5xx means the endpoint answered.
        if resp.status_code < 500:
            return True
    return False


def query_cfo(
    prompt: str,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> Dict[str, Any]:
    if not LLM_API_KEY:
        raise RuntimeError("Missing GEMINI_API_KEY. Set the environment variable and restart the app.")

    client = _get_client()
    token_limit = int(max_tokens) if max_tokens is not None else LLM_DEFAULT_MAX_TOKENS
    response = client.chat.completions.create(
        model=LLM_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=0.2 if temperature is None else float(temperature),
        max_tokens=token_limit,
        timeout=LLM_TIMEOUT,
    )
    return response.model_dump()


def extract_text(response: Dict[str, Any]) -> str:
    choices = response.get("choices") or []
    if not choices:
        return ""
    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
        return ""
    text = choice.get("text") if isinstance(choice, dict) else None
    if text:
        return str(text).strip()
    return ""
