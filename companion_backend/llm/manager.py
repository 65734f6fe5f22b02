"""
LLM Manager - Centralized LLM request management
Ensures all services use the latest configured model and a single shared
rate limiter
"""

from typing import Any, Dict, List, Optional

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.logger import get_logger

from .client import DEFAULT_SYSTEM_PROMPT, OllamaClient

logger = get_logger(__name__)


class LLMManager:
    """
    Centralized LLM request manager

    All generation requests should go through this manager instead of
    creating OllamaClient instances directly, so the minimum spacing between
    calls holds across the whole process.
    """

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        config=None,
        enabled: Optional[bool] = None,
    ):
        """
        Args:
            client: Client to use; built from config on first request when omitted
            config: ConfigLoader; the global one when omitted
            enabled: Overrides llm.enabled from config
        """
        self._client = client
        self._config = config
        self._enabled = enabled

    def _get_config(self):
        if self._config is None:
            from companion_backend.config.loader import get_config

            self._config = get_config()
        return self._config

    @property
    def enabled(self) -> bool:
        if self._enabled is not None:
            return self._enabled
        return bool(self._get_config().get("llm.enabled", True))

    def _ensure_client(self) -> OllamaClient:
        if self._client is None:
            self._client = OllamaClient.from_config(self._get_config())
            logger.debug(f"Created new OllamaClient for model {self._client.model}")
        return self._client

    async def generate(self, prompt: str, system: str = DEFAULT_SYSTEM_PROMPT) -> str:
        """
        Generate text with the configured model

        Raises:
            LLMUnavailableError: If generation is disabled or fails
        """
        if not self.enabled:
            raise LLMUnavailableError("LLM generation is disabled in configuration")
        return await self._ensure_client().generate(prompt, system=system)

    async def health_check(self) -> Dict[str, Any]:
        """
        Check if LLM service is available

        Returns:
            Dict with 'available' (bool), 'latency_ms' (int), and optional 'error' (str)
        """
        if not self.enabled:
            return {"available": False, "latency_ms": 0, "error": "LLM disabled"}
        return await self._ensure_client().health_check()

    async def list_models(self) -> List[str]:
        return await self._ensure_client().list_models()

    def get_active_model_info(self) -> Dict[str, Any]:
        client = self._ensure_client()
        return {"model": client.model, "base_url": client.base_url}

    async def force_reload(self) -> None:
        """Drop the client so the next request picks up configuration changes"""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        logger.debug("LLM client will be recreated on next request")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


# Global singleton instance
_llm_manager: Optional[LLMManager] = None


def get_llm_manager() -> LLMManager:
    """
    Get the global LLM manager instance

    Returns:
        LLMManager singleton
    """
    global _llm_manager
    if _llm_manager is None:
        _llm_manager = LLMManager()
    return _llm_manager


def reset_llm_manager() -> None:
    """Reset the LLM manager (mainly for testing)"""
    global _llm_manager
    _llm_manager = None
    logger.debug("LLM manager reset")
