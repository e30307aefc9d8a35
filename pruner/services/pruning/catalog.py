# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Provider/model catalog.

Turns a ``(provider, model)`` pair into a LangChain chat model. Only
providers with credentials configured are listed; asking for any other
provider raises :class:`ModelUnavailableError`.

Routing:
  - openai                    ChatOpenAI
  - google                    ChatGoogleGenerativeAI (AI Studio API key)
  - deepseek, xai, alibaba,   ChatOpenAI against the provider's
    zai                       OpenAI-compatible endpoint
"""

import logging
from typing import Dict, Optional, Protocol, Set

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from pruner.services.errors import ModelUnavailableError

logger = logging.getLogger(__name__)

OPENAI_COMPATIBLE_BASE_URLS: Dict[str, str] = {
    "deepseek": "https://api.deepseek.com/v1",
    "xai": "https://api.x.ai/v1",
    "alibaba": "https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
    "zai": "https://api.z.ai/api/paas/v4",
}

ANALYSIS_TEMPERATURE = 0.0


class ModelCatalog(Protocol):
    """Collaborator contract for obtaining analysis models."""

    async def list_available_providers(self) -> Set[str]: ...

    async def get_model(self, provider_id: str, model_id: str) -> BaseChatModel: ...


class LangChainModelCatalog:
    """:class:`ModelCatalog` backed by LangChain chat model classes.

    Args:
        provider_keys (Dict[str, str]): Provider id to API key. Providers
            with an empty key are treated as unauthenticated.
        timeout (Optional[float]): Request timeout passed to each client.
    """

    def __init__(self, provider_keys: Dict[str, str], timeout: Optional[float] = None) -> None:
        self._keys = {p: k for p, k in provider_keys.items() if k}
        self._timeout = timeout

    async def list_available_providers(self) -> Set[str]:
        return set(self._keys)

    async def get_model(self, provider_id: str, model_id: str) -> BaseChatModel:
        """Build a chat model for ``provider_id/model_id``.

        Raises:
            ModelUnavailableError: Provider not authenticated or not
                supported.
        """
        key = self._keys.get(provider_id)
        if not key:
            raise ModelUnavailableError(provider_id, model_id, "provider not authenticated")

        if provider_id == "google":
            return ChatGoogleGenerativeAI(
                model=model_id,
                google_api_key=key,
                temperature=ANALYSIS_TEMPERATURE,
                timeout=self._timeout,
            )

        if provider_id == "openai":
            return ChatOpenAI(
                api_key=SecretStr(key),
                model=model_id,
                timeout=self._timeout,
            )

        base_url = OPENAI_COMPATIBLE_BASE_URLS.get(provider_id)
        if base_url is None:
            raise ModelUnavailableError(provider_id, model_id, "unsupported provider")
        return ChatOpenAI(
            api_key=SecretStr(key),
            base_url=base_url,
            model=model_id,
            temperature=ANALYSIS_TEMPERATURE,
            timeout=self._timeout,
        )
