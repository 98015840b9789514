from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from market_bot.errors import AdviceUnavailableError

SYSTEM_PROMPT = (
    "You are an experienced cryptocurrency trader with 10+ years of trading experience. "
    "Provide short, concise, fact-based advice as a professional. "
    "Only facts, numbers, and specific actions. No fluff."
)


class ChatCompletionsProvider:
    """OpenAI-compatible chat completions endpoint (OpenAI, DeepSeek)."""

    def __init__(
        self,
        *,
        name: str,
        label: str,
        api_key: str,
        base_url: str,
        model: str,
        test_tokens: int = 50,
        system_prompt: Optional[str] = SYSTEM_PROMPT,
        temperature: float | None = None,
        session: Optional[Any] = None,
        timeout: float = 30,
    ) -> None:
        self.name = name
        self.label = label
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.test_tokens = test_tokens
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.session = session or requests
        self.timeout = timeout

    def _complete(self, messages: List[Dict[str, str]], **extra: Any) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/chat/completions",
            headers={
                "authorization": f"Bearer {self.api_key}",
                "content-type": "application/json",
            },
            json={"model": self.model, "messages": messages, **extra},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def is_available(self) -> bool:
        try:
            self._complete([{"role": "user", "content": "Test"}], max_tokens=self.test_tokens)
        except Exception as exc:
            print(f"[AI][unavailable] provider={self.name} error={exc}", flush=True)
            return False
        return True

    def generate(self, prompt: str) -> str:
        messages: List[Dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        extra: Dict[str, Any] = {}
        if self.temperature is not None:
            extra["temperature"] = self.temperature
        payload = self._complete(messages, **extra)

        choices = payload.get("choices") or []
        content = None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        if not content or not str(content).strip():
            raise AdviceUnavailableError(f"{self.name}: empty completion")

        usage = payload.get("usage") or {}
        print(
            f"[AI][tokens] provider={self.name} prompt={usage.get('prompt_tokens', 'N/A')} "
            f"completion={usage.get('completion_tokens', 'N/A')} total={usage.get('total_tokens', 'N/A')}",
            flush=True,
        )
        return str(content).strip()


class GeminiProvider:
    """Google Gemini generateContent REST endpoint."""

    _BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-1.5-flash",
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout: float = 30,
    ) -> None:
        self.name = "gemini"
        self.label = "Gemini"
        self.api_key = api_key
        self.model = model
        self.session = session or requests
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.timeout = timeout

    def _generate_content(self, text: str) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            headers={"content-type": "application/json", "x-goog-api-key": self.api_key},
            json={"contents": [{"parts": [{"text": text}]}]},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _extract_text(payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict)).strip()

    def is_available(self) -> bool:
        try:
            self._generate_content("Test")
        except Exception as exc:
            print(f"[AI][unavailable] provider={self.name} error={exc}", flush=True)
            return False
        return True

    def generate(self, prompt: str) -> str:
        payload = self._generate_content(prompt)
        text = self._extract_text(payload)
        if not text:
            raise AdviceUnavailableError("gemini: empty completion")

        usage = payload.get("usageMetadata") or {}
        print(
            f"[AI][tokens] provider={self.name} prompt={usage.get('promptTokenCount', 'N/A')} "
            f"completion={usage.get('candidatesTokenCount', 'N/A')}",
            flush=True,
        )
        return text


def build_ai_providers(settings, session: Optional[Any] = None) -> list:
    """Providers in priority order; only those with an API key configured."""
    providers: list = []
    if settings.OPENAI_API_KEY:
        providers.append(
            ChatCompletionsProvider(
                name="openai",
                label="GPT-3.5",
                api_key=settings.OPENAI_API_KEY,
                base_url="https://api.openai.com/v1",
                model="gpt-3.5-turbo-0125",
                test_tokens=settings.AI_TEST_TOKENS,
                temperature=0.3,
                session=session,
            )
        )
    if settings.GEMINI_API_KEY:
        providers.append(GeminiProvider(api_key=settings.GEMINI_API_KEY, session=session))
    if settings.DEEPSEEK_API_KEY:
        providers.append(
            ChatCompletionsProvider(
                name="deepseek",
                label="DeepSeek",
                api_key=settings.DEEPSEEK_API_KEY,
                base_url="https://api.deepseek.com/v1",
                model="deepseek-chat",
                test_tokens=settings.AI_TEST_TOKENS,
                system_prompt=None,
                session=session,
            )
        )
    return providers
