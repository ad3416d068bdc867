# agent_service.py
"""Final agent submission: prompt derivation, voice provisioning, persistence."""

import asyncio
from typing import Optional

from .exceptions import FormValidationError
from .logging_utils import get_logger
from .models import AgentRecordData, CreateAgentRequest
from .profile_normalizer import normalize_profile
from .prompt_builder import build_knowledge_base, build_system_prompt, render_agent_prompt
from .storage import AgentRepository
from .voice_provisioner import VoiceProvisioner


def validate_submission(request: CreateAgentRequest) -> None:
    """Check the identity fields required before any network call.

    Raises:
        FormValidationError: For the first missing field.
    """
    if not request.name.strip():
        raise FormValidationError("fullName", "Please enter your full name or company name.")
    if not request.email.strip():
        raise FormValidationError("email", "Please enter your email address.")
    if not request.url.strip():
        kind = "company" if request.is_company else "personal"
        raise FormValidationError("url", f"Please enter your {kind} URL.")


class AgentProvisioningService:
    """Creates a voice agent for a submitted form and stores the record.

    There is no fallback here: a failure at any step aborts the submission
    and nothing is persisted.
    """

    def __init__(
        self,
        provisioner: Optional[VoiceProvisioner] = None,
        repository: Optional[AgentRepository] = None,
    ):
        self.logger = get_logger(__name__)
        self.provisioner = provisioner or VoiceProvisioner()
        self.repository = repository or AgentRepository()

    async def submit(self, request: CreateAgentRequest) -> AgentRecordData:
        """Provision and persist an agent.

        Args:
            request: Identity, profile snapshot and edited conversation flow.

        Returns:
            The persisted agent record.

        Raises:
            FormValidationError: If name, email or URL is missing, or the
                profile payload cannot be read.
            VoiceProvisioningError: If the voice agent could not be created.
            UpstreamServiceError: If the record could not be stored.
        """
        validate_submission(request)

        profile = None
        if request.structured_data:
            profile = normalize_profile(request.structured_data, request.is_company)

        system_prompt = build_system_prompt(profile, request.name, request.is_company)
        knowledge_base = build_knowledge_base(profile, request.is_company)
        agent_prompt = render_agent_prompt(system_prompt, request.conversation_flow)

        self.logger.info(
            "Submitting agent",
            extra={
                "use_case": request.use_case.value,
                "voice_style": request.voice_style.value,
                "scenario_count": len(request.conversation_flow),
            }
        )

        agent_id = await asyncio.to_thread(
            self.provisioner.create_agent,
            request.name,
            agent_prompt,
            request.voice_style,
        )

        return await self.repository.insert(
            name=request.name,
            email=request.email,
            is_company=request.is_company,
            url=request.url,
            use_case=request.use_case.value,
            voice_style=request.voice_style.value,
            scraped_data=request.structured_data,
            agent_prompt=agent_prompt,
            knowledge_base=knowledge_base,
            conversation_flow=[s.to_wire() for s in request.conversation_flow],
            eleven_labs_agent_id=agent_id,
            user_id=request.user_id,
        )
