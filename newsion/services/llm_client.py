"""LLM Client abstraction for multiple providers."""
import os
import logging
from abc import ABC, abstractmethod
from typing import Optional

from newsion.services.errors import ProviderNotConfigured

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider = 'base'
    model = ''

    @abstractmethod
    def complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 4000,
                 temperature: float = 0.7) -> str:
        """Generate a text completion."""
        pass

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.model}>'


class OpenAIClient(BaseLLMClient):
    """OpenAI chat completions client."""

    provider = 'openai'

    def __init__(self, api_key: str, model: str = "gpt-4o", base_url: Optional[str] = None,
                 default_headers: Optional[dict] = None, timeout: float = DEFAULT_TIMEOUT):
        from openai import OpenAI
        self.client = OpenAI(api_key=api_key, base_url=base_url,
                             default_headers=default_headers, timeout=timeout)
        self.model = model

    def complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 4000,
                 temperature: float = 0.7) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
        )
        return response.choices[0].message.content or ''


class OpenRouterClient(OpenAIClient):
    """OpenRouter speaks the OpenAI protocol."""

    provider = 'openrouter'
    BASE_URL = 'https://openrouter.ai/api/v1'

    def __init__(self, api_key: str, model: str = "deepseek/deepseek-chat",
                 timeout: float = DEFAULT_TIMEOUT):
        headers = {'X-Title': 'Newsion'}
        referer = os.getenv('NEXTAUTH_URL')
        if referer:
            headers['HTTP-Referer'] = referer
        super().__init__(api_key, model=model, base_url=self.BASE_URL,
                         default_headers=headers, timeout=timeout)


class GroqClient(OpenAIClient):
    """Groq's OpenAI-compatible endpoint."""

    provider = 'groq'
    BASE_URL = 'https://api.groq.com/openai/v1'

    def __init__(self, api_key: str, model: str = "llama-3.3-70b-versatile",
                 timeout: float = DEFAULT_TIMEOUT):
        super().__init__(api_key, model=model, base_url=self.BASE_URL, timeout=timeout)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude API client."""

    provider = 'anthropic'

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022",
                 timeout: float = DEFAULT_TIMEOUT):
        import anthropic
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self.model = model

    def complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 4000,
                 temperature: float = 0.7) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        response = self.client.messages.create(**kwargs)
        return ''.join(block.text for block in response.content if getattr(block, 'text', None))


class GeminiClient(BaseLLMClient):
    """Google Gemini API client using the google-genai SDK."""

    provider = 'gemini'

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash",
                 timeout: float = DEFAULT_TIMEOUT):
        from google import genai
        from google.genai import types
        # HttpOptions.timeout is in milliseconds
        self.client = genai.Client(api_key=api_key,
                                   http_options=types.HttpOptions(timeout=int(timeout * 1000)))
        self.model = model

    def complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 4000,
                 temperature: float = 0.7) -> str:
        from google.genai import types

        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=max_tokens,
                temperature=temperature,
            )
        )
        return response.text or ''


# provider -> (client class, key env vars, default model)
PROVIDERS = {
    'openrouter': (OpenRouterClient, ('OPENROUTER_API_KEY',), 'deepseek/deepseek-chat'),
    'groq': (GroqClient, ('GROQ_API_KEY',), 'llama-3.3-70b-versatile'),
    'openai': (OpenAIClient, ('OPENAI_API_KEY',), 'gpt-4o'),
    'anthropic': (AnthropicClient, ('ANTHROPIC_API_KEY',), 'claude-3-5-sonnet-20241022'),
    'gemini': (GeminiClient, ('GOOGLE_GEMINI_API_KEY', 'GOOGLE_API_KEY'), 'gemini-2.5-flash'),
}
PROVIDERS['google'] = PROVIDERS['gemini']


def _api_key(env_vars) -> Optional[str]:
    for name in env_vars:
        if os.getenv(name):
            return os.getenv(name)
    return None


class LLMClientFactory:
    """Factory for creating LLM clients based on configuration."""

    _instances = {}

    @classmethod
    def create(cls, provider: Optional[str] = None, force_new: bool = False) -> BaseLLMClient:
        """
        Create or return a cached LLM client.

        Args:
            provider: one of PROVIDERS. If None, reads LLM_PROVIDER (default openrouter).
            force_new: If True, creates a new client even if one is cached.
        """
        provider = (provider or os.getenv('LLM_PROVIDER', 'openrouter')).lower()
        if provider in cls._instances and not force_new:
            return cls._instances[provider]

        if provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {provider}")

        client_class, env_vars, default_model = PROVIDERS[provider]
        api_key = _api_key(env_vars)
        if not api_key:
            raise ProviderNotConfigured(f"{env_vars[0]} environment variable not set")

        client = client_class(
            api_key=api_key,
            model=os.getenv('LLM_MODEL') or default_model,
            timeout=float(os.getenv('LLM_TIMEOUT_SECONDS', DEFAULT_TIMEOUT)),
        )
        logger.info(f"Created {provider} client with model {client.model}")

        cls._instances[provider] = client
        return client

    @classmethod
    def reset(cls):
        cls._instances = {}

    @classmethod
    def is_available(cls, provider: Optional[str] = None) -> bool:
        """Check if the provider has credentials configured."""
        provider = (provider or os.getenv('LLM_PROVIDER', 'openrouter')).lower()
        if provider not in PROVIDERS:
            return False
        return bool(_api_key(PROVIDERS[provider][1]))
