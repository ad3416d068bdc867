# voice_provisioner.py
"""ElevenLabs conversational agent provisioning."""

from typing import Any, Dict, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .exceptions import VoiceProvisioningError
from .logging_utils import get_logger
from .models import VoiceStyle
from .prompt_builder import build_first_message

# Voice persona -> ElevenLabs voice id
VOICE_MAP: Dict[str, str] = {
    VoiceStyle.PROFESSIONAL.value: "pNInz6obpgDQGcFmaJgB",  # Adam
    VoiceStyle.FRIENDLY.value: "EXAVITQu4vr4xnSDxMaL",  # Sarah
    VoiceStyle.ENERGETIC.value: "yoZ06aMxZJJ28mfd3POQ",  # Josh
    VoiceStyle.CALM.value: "ThT5KcBeYPX3keUQqHPh",  # Emily
}

AGENT_DESCRIPTION = "An AI sales agent created with LinkedIn data"


def voice_id_for(voice_style: Union[VoiceStyle, str, None]) -> str:
    """Map a voice style to a vendor voice id; unknown styles use professional."""
    key = voice_style.value if isinstance(voice_style, VoiceStyle) else str(voice_style or "")
    return VOICE_MAP.get(key.lower(), VOICE_MAP[VoiceStyle.PROFESSIONAL.value])


class VoiceProvisioner:
    """Creates voice agents through the ElevenLabs conversational AI API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        """Initialize the provisioner.

        Args:
            api_key: ElevenLabs API key. Defaults to config value.
            base_url: API base URL. Defaults to config value.
            timeout: Request timeout in seconds. Defaults to config value.
        """
        self.logger = get_logger(__name__)

        self.api_key = api_key if api_key is not None else config.ELEVEN_LABS_API_KEY
        self.base_url = (base_url or config.ELEVEN_LABS_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.VOICE_TIMEOUT_SECONDS

        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            # Agent creation is not idempotent, so nothing is retried
            adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)
        return self._session

    def build_payload(
        self, name: str, prompt: str, voice_style: Union[VoiceStyle, str]
    ) -> Dict[str, Any]:
        return {
            "name": f"{name} - Sales Agent",
            "description": AGENT_DESCRIPTION,
            "tts": {"voice_id": voice_id_for(voice_style)},
            "agent": {
                "prompt": {"prompt": prompt},
                "language": "en",
                "first_message": build_first_message(name),
            },
        }

    def create_agent(
        self, name: str, prompt: str, voice_style: Union[VoiceStyle, str]
    ) -> Optional[str]:
        """Create a conversational agent.

        Args:
            name: Display name of the agent owner.
            prompt: Full agent prompt (system prompt plus conversation script).
            voice_style: Voice persona.

        Returns:
            The vendor's agent id, or None if the response carried none.

        Raises:
            VoiceProvisioningError: If no key is configured, the request fails
                or the vendor answers with a non-success status.
        """
        if not self.api_key:
            raise VoiceProvisioningError("ELEVEN_LABS_API_KEY is not configured")

        url = f"{self.base_url}/convai/agents"
        payload = self.build_payload(name, prompt, voice_style)

        self.logger.info(
            "Creating ElevenLabs voice agent",
            extra={"agent_name": payload["name"], "voice_id": payload["tts"]["voice_id"]}
        )

        try:
            response = self._get_session().post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(f"ElevenLabs request error: {e}")
            raise VoiceProvisioningError(f"Failed to create ElevenLabs agent: {e}") from e

        if not response.ok:
            self.logger.error(
                "ElevenLabs API error",
                extra={
                    "status_code": response.status_code,
                    "response_text": response.text[:500],
                }
            )
            raise VoiceProvisioningError(
                "Failed to create ElevenLabs agent",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise VoiceProvisioningError("ElevenLabs returned a non-JSON body") from e

        agent_id = data.get("agent_id") if isinstance(data, dict) else None
        self.logger.info("Voice agent created", extra={"agent_id": agent_id})
        return agent_id

    def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None
