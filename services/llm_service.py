import logging

import requests

from config import settings
from core.exceptions import UpstreamFailure
from core.interfaces import ILLMService
from infrastructure.upstream import call_upstream

logger = logging.getLogger(settings.LOGGER_NAME)

class OllamaLLMService(ILLMService):
    """A service to interact with a local LLM API (Ollama /api/generate)."""

    def __init__(
        self,
        base_url: str = settings.OLLAMA_BASE_URL,
        model: str = settings.LLM_MODEL,
        temperature: float = settings.LLM_TEMPERATURE,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
    ):
        """
        Initializes the LLM service.

        Args:
            base_url: The base URL of the Ollama server.
            model: The name of the model to use.
            temperature: Sampling temperature passed in the request options.
            timeout: Deadline in seconds for one completion.
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    def _generate_sync(self, prompt: str) -> str:
        response = requests.post(
            f'{self.base_url}/api/generate',
            json={
                'model': self.model,
                'prompt': prompt,
                'stream': False,
                'options': {'temperature': self.temperature},
            },
            timeout=self.timeout
        )
        response.raise_for_status()  # Raises an HTTPError for bad responses (4xx or 5xx)

        result = response.json()
        answer = result.get('response') if isinstance(result, dict) else None
        if not answer or not answer.strip():
            logger.error("LLM response was empty or malformed.")
            raise UpstreamFailure("Empty response from LLM")
        return answer.strip()

    async def complete(self, prompt: str) -> str:
        """
        Sends a prompt to the LLM and returns the completion text.

        Raises:
            UpstreamTimeout: the deadline expired
            UpstreamFailure: connection/HTTP error or empty reply
        """
        if not prompt or not prompt.strip():
            raise ValueError("Empty prompt provided")

        logger.info(f"Sending prompt to LLM model '{self.model}'...")
        answer = await call_upstream(
            self._generate_sync, prompt, timeout=self.timeout, operation="LLM completion"
        )
        logger.info("Successfully received response from LLM.")
        return answer
