# llm_client.py
"""Chat-completion REST clients for conversation flow generation.

Talks to OpenAI-compatible ``/chat/completions`` endpoints (DeepSeek, OpenAI)
directly via requests.
"""

from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .exceptions import UpstreamServiceError
from .logging_utils import get_logger


class LLMClient:
    """REST client for one OpenAI-compatible chat-completion provider."""

    def __init__(
        self,
        provider: str,
        base_url: str,
        api_key: str,
        model: str,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        """Bind the client to one provider endpoint.

        Args:
            provider: Short provider name used in logs and results.
            base_url: API base URL, e.g. ``https://api.openai.com/v1``.
            api_key: Bearer token for the provider.
            model: Model name sent with every request.
            timeout: Request timeout in seconds. Defaults to config value.
            max_retries: Transport-level retries. Defaults to config value.
        """
        self.logger = get_logger(__name__)

        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT_SECONDS
        self.max_retries = (
            max_retries if max_retries is not None else config.LLM_MAX_RETRIES
        )
        self._api_key = api_key

        # Created on first request
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        """Get or create a requests session with retry configuration."""
        if self._session is None:
            self._session = requests.Session()

            retry_strategy = Retry(
                total=self.max_retries,
                backoff_factor=1.0,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["POST"],
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)

        return self._session

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _post_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        """POST one chat completion and return the decoded body.

        Raises:
            UpstreamServiceError: On transport failure or non-2xx response.
        """
        url = f"{self.base_url}/chat/completions"
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        self.logger.debug(
            "Sending chat completion",
            extra={
                "provider": self.provider,
                "model": self.model,
                "message_count": len(messages),
            }
        )

        try:
            response = self._get_session().post(
                url,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(
                f"{self.provider} transport error: {e}",
                extra={"provider": self.provider}
            )
            raise UpstreamServiceError(
                f"{self.provider} request failed: {e}", stage="completion"
            ) from e

        if not response.ok:
            self.logger.error(
                "Chat completion rejected",
                extra={
                    "provider": self.provider,
                    "status_code": response.status_code,
                    "response_text": response.text[:500],
                }
            )
            raise UpstreamServiceError(
                f"{self.provider} API error: {response.text[:500]}",
                stage="completion",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                f"{self.provider} returned a non-JSON body", stage="completion"
            ) from e

        self.logger.debug(
            "Chat completion received",
            extra={"provider": self.provider, "usage": result.get("usage", {})}
        )
        return result

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the assistant message text for one chat completion.

        Raises:
            UpstreamServiceError: If the request fails or the response has no
                message content.
        """
        result = self._post_completion(
            messages=messages,
            temperature=temperature if temperature is not None else config.LLM_TEMPERATURE,
            max_tokens=max_tokens,
        )

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            self.logger.error(
                f"Unexpected completion shape: {e}",
                extra={"provider": self.provider}
            )
            raise UpstreamServiceError(
                f"Invalid {self.provider} response structure", stage="completion"
            ) from e

        if not content:
            raise UpstreamServiceError(
                f"Empty content in {self.provider} response", stage="completion"
            )
        return content

    def close(self) -> None:
        """Release the pooled HTTP session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "LLMClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ProviderChain:
    """Ordered list of providers; the first successful completion wins.

    Attributes:
        clients: Providers in the order they are tried.
        last_provider: Provider that produced the most recent completion.
    """

    def __init__(self, clients: List[LLMClient]):
        self.logger = get_logger(__name__)
        self.clients = list(clients)
        self.last_provider: Optional[str] = None

    @classmethod
    def from_config(cls) -> "ProviderChain":
        """DeepSeek first, OpenAI second, each only when its key is set."""
        clients = []
        if config.DEEPSEEK_API_KEY:
            clients.append(LLMClient(
                provider="deepseek",
                base_url=config.DEEPSEEK_BASE_URL,
                api_key=config.DEEPSEEK_API_KEY,
                model=config.DEEPSEEK_MODEL,
            ))
        if config.OPENAI_API_KEY:
            clients.append(LLMClient(
                provider="openai",
                base_url=config.OPENAI_BASE_URL,
                api_key=config.OPENAI_API_KEY,
                model=config.OPENAI_MODEL,
            ))
        return cls(clients)

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the first provider's completion that succeeds.

        Raises:
            UpstreamServiceError: If no provider is configured or all fail;
                the last provider's error is re-raised.
        """
        if not self.clients:
            raise UpstreamServiceError(
                "No API keys available for conversation flow generation",
                stage="completion",
            )

        last_error: Optional[UpstreamServiceError] = None
        for client in self.clients:
            try:
                content = client.complete(
                    messages, temperature=temperature, max_tokens=max_tokens
                )
            except UpstreamServiceError as e:
                self.logger.warning(
                    f"Provider failed, trying next: {e}",
                    extra={"provider": client.provider}
                )
                last_error = e
                continue
            self.last_provider = client.provider
            return content

        raise last_error

    def close(self) -> None:
        for client in self.clients:
            client.close()
