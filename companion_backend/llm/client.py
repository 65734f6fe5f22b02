"""
Ollama-compatible text generation client
Non-streaming /api/generate calls with timeouts and minimum call spacing
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Set

import httpx

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a supportive ADHD productivity assistant. You MUST respond with ONLY "
    "valid JSON format. Never include explanations, markdown, or any text outside "
    "the JSON object."
)


class RateLimiter:
    """Keeps at least min_interval seconds between calls

    Callers arriving early sleep for the remaining delta while holding the
    lock, so concurrent callers are serialized.
    """

    def __init__(self, min_interval: float = 2.0):
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._last_call: Optional[float] = None

    async def acquire(self) -> float:
        """Wait for the next slot; returns the seconds slept"""
        async with self._lock:
            waited = 0.0
            if self._last_call is not None:
                elapsed = time.monotonic() - self._last_call
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug(f"Rate limiting LLM call, waiting {waited:.2f}s")
                    await asyncio.sleep(waited)
            self._last_call = time.monotonic()
            return waited


class OllamaClient:
    """HTTP client for an Ollama-style generation server"""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "mistral",
        timeout: float = 30.0,
        min_call_interval: float = 2.0,
        temperature: float = 0.3,
        num_predict: int = 300,
        top_p: float = 0.9,
        keep_model_loaded: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.num_predict = num_predict
        self.top_p = top_p
        self.keep_model_loaded = keep_model_loaded
        self.rate_limiter = RateLimiter(min_call_interval)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._background_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config) -> "OllamaClient":
        """Build from a ConfigLoader ([llm] section)"""
        host = config.get("llm.host", "localhost")
        port = config.get("llm.port", 11434)
        return cls(
            base_url=f"http://{host}:{port}",
            model=config.get("llm.model", "mistral"),
            timeout=float(config.get("llm.timeout", 30.0)),
            min_call_interval=float(config.get("llm.min_call_interval", 2.0)),
            temperature=float(config.get("llm.temperature", 0.3)),
            num_predict=int(config.get("llm.num_predict", 300)),
            top_p=float(config.get("llm.top_p", 0.9)),
            keep_model_loaded=bool(config.get("llm.keep_model_loaded", False)),
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        system: str = DEFAULT_SYSTEM_PROMPT,
        model: Optional[str] = None,
    ) -> str:
        """
        Generate a completion

        Args:
            prompt: User prompt
            system: System prompt
            model: Model override

        Returns:
            Generated text

        Raises:
            LLMUnavailableError: On transport errors, timeouts, error statuses
                or a payload without a 'response' string
        """
        await self.rate_limiter.acquire()

        payload: Dict[str, Any] = {
            "model": model or self.model,
            "prompt": prompt,
            "system": system,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.num_predict,
                "top_p": self.top_p,
            },
        }

        start_time = time.perf_counter()
        try:
            response = await self._get_client().post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise LLMUnavailableError(f"Generation timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise LLMUnavailableError(
                f"Generation failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise LLMUnavailableError(f"Generation request failed: {e}") from e
        except ValueError as e:
            raise LLMUnavailableError(f"Generation returned invalid JSON: {e}") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise LLMUnavailableError("Generation payload has no 'response' text")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"LLM generation completed in {latency_ms}ms ({len(text)} chars)")

        if not self.keep_model_loaded:
            self._schedule_unload(payload["model"])

        return text

    def _schedule_unload(self, model: str) -> None:
        task = asyncio.create_task(self.unload_model(model))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def unload_model(self, model: Optional[str] = None) -> bool:
        """Ask the server to release the model from memory"""
        try:
            response = await self._get_client().post(
                "/api/generate", json={"model": model or self.model, "keep_alive": 0}
            )
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"Model unload request failed: {e}")
            return False

    async def list_models(self) -> List[str]:
        """
        List model names installed on the server

        Raises:
            LLMUnavailableError: If the server cannot be reached
        """
        try:
            response = await self._get_client().get("/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LLMUnavailableError(f"Failed to list models: {e}") from e

        models = data.get("models", []) if isinstance(data, dict) else []
        return [item["name"] for item in models if isinstance(item, dict) and item.get("name")]

    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the generation server is available

        Returns:
            Dict with 'available' (bool), 'latency_ms' (int), 'model', and optional 'error'
        """
        start_time = time.perf_counter()
        try:
            response = await self._get_client().get("/api/tags")
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            if response.is_success:
                return {"available": True, "latency_ms": latency_ms, "model": self.model}
            return {
                "available": False,
                "latency_ms": latency_ms,
                "model": self.model,
                "error": f"HTTP {response.status_code}",
            }
        except httpx.HTTPError as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(f"LLM health check failed: {e}")
            return {
                "available": False,
                "latency_ms": latency_ms,
                "model": self.model,
                "error": str(e),
            }
