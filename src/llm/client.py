"""
Claude API client for PediCare.

Plain-text completions for the clinical assistant, with an optional on-disk
cache of answers. The consistency and analytics core never calls it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path

from anthropic import Anthropic

from src.config import get_config

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM = "Eres un asistente médico."


class ResponseCache:
    """
    Answers stored as one JSON file per request.

    Each file records the model and the time of the answer next to the text,
    so a stale cache can be told apart from a fresh one by inspection.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def key(**request) -> str:
        payload = json.dumps(request, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(payload.encode()).hexdigest()[:16]

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text())["text"]

    def put(self, key: str, text: str, model: str) -> None:
        entry = {"text": text, "model": model, "created_at": datetime.now().isoformat()}
        self._path(key).write_text(json.dumps(entry, ensure_ascii=False))

    def clear(self) -> int:
        """Delete every cached answer. Returns the number removed."""
        removed = 0
        for path in self.directory.glob("*.json"):
            path.unlink()
            removed += 1
        return removed


class LLMClient:
    """
    Client for Claude API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        cache_dir: Path | None = None,
        enable_cache: bool = False,
    ):
        config = get_config()
        api_key = api_key or config.anthropic_api_key
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

        self.client = Anthropic(api_key=api_key)
        self.model = model or config.llm_model
        self.cache = (
            ResponseCache(cache_dir or Path.home() / ".pedicare" / "cache")
            if enable_cache else None
        )

    def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> str:
        """Return the text of a single-turn completion."""
        system = system or DEFAULT_SYSTEM

        key = None
        if self.cache is not None:
            key = ResponseCache.key(model=self.model, system=system, prompt=prompt, temperature=temperature)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit %s", key)
                return cached

        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
        )
        text = "".join(block.text for block in response.content if block.type == "text")

        if key is not None:
            self.cache.put(key, text, self.model)
        return text


# Singleton client instance
_client: LLMClient | None = None


def get_client() -> LLMClient:
    """Get the singleton LLM client."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def set_client(client: LLMClient | None) -> None:
    """Set the singleton LLM client."""
    global _client
    _client = client
