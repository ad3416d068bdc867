# agent_form.py
"""Agent form session: the orchestration of one agent-building run.

The session owns the form data, the extracted profile and the conversation
flow, and sequences the collaborators:

1. Profile extraction (no fallback)
2. Conversation flow generation (falls back to a one-scenario greeting)
3. Optional editing through :class:`ConversationFlowEditor`
4. Submission: voice provisioning and persistence (no fallback)

Actions are coroutines run on a single event loop. Blocking collaborators run
in a worker thread. Every action clears the error slot when it starts, and
responses that arrive after :meth:`AgentFormSession.cancel_pending` or
:meth:`AgentFormSession.close` are discarded.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Union

from pydantic import ValidationError

from .agent_service import AgentProvisioningService, validate_submission
from .exceptions import EditorStateError, FormValidationError
from .flow_editor import ConversationFlowEditor
from .flow_generator import FlowGenerator
from .logging_utils import get_logger
from .models import (
    FAQ,
    AgentRecordData,
    CompanyContact,
    CompanyProfile,
    ConversationScenario,
    CreateAgentRequest,
    FormData,
    ProductService,
    StructuredProfile,
    UseCase,
    VoiceStyle,
)
from .profile_extractor import ProfileExtractor

logger = get_logger(__name__)

FORM_FIELDS = {
    "fullName": "full_name",
    "full_name": "full_name",
    "email": "email",
    "isCompany": "is_company",
    "is_company": "is_company",
    "url": "url",
    "useCase": "use_case",
    "use_case": "use_case",
    "voiceStyle": "voice_style",
    "voice_style": "voice_style",
}


class FormTab(str, Enum):
    DETAILS = "details"
    FLOW = "flow"


@dataclass
class Notification:
    """User-facing message about the progress or failure of an action."""

    title: str
    description: str
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class ErrorReporter(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class LoggingReporter:
    """Default reporter: writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        log = logger.error if notification.is_error else logger.info
        log(
            f"{notification.title}: {notification.description}",
            extra={"variant": notification.variant}
        )


def default_greeting(name: str) -> List[ConversationScenario]:
    """Single-scenario flow used when flow generation fails."""
    return [
        ConversationScenario(
            id="scenario-1",
            scenario="Default Greeting",
            user_inputs=["Hello", "Hi there", "Hey"],
            responses=[f"Hi, I'm {name}'s AI assistant. How can I help you today?"],
            follow_ups=["Is there something specific you'd like to know?"],
        )
    ]


DEMO_FORM_DATA = FormData(
    full_name="Alex Johnson",
    email="alex@techcompany.com",
    is_company=True,
    url="https://www.linkedin.com/company/tech-innovations",
    use_case=UseCase.SALES,
    voice_style=VoiceStyle.PROFESSIONAL,
)

DEMO_PROFILE = StructuredProfile(
    company_profile=CompanyProfile(
        name="Tech Innovations",
        tagline="Building the future of enterprise software",
        tone_of_voice="Professional, Innovative, Trustworthy",
        about=(
            "Tech Innovations was founded in 2015 with the mission to make enterprise "
            "software more accessible and user-friendly. We focus on cloud-native "
            "solutions that help businesses transform digitally."
        ),
        products_services=[
            ProductService(name="CloudManage", description="Cloud resource management platform"),
            ProductService(name="DataSync Pro", description="Enterprise data synchronization tool"),
            ProductService(name="SecureBiz", description="Business security and compliance solution"),
        ],
        industries_served=["Technology", "Finance", "Healthcare", "Manufacturing"],
        faqs=[
            FAQ(
                question="What makes your solutions different?",
                answer="Our solutions are built with user-experience first, ensuring high adoption rates and ROI.",
            ),
            FAQ(
                question="Do you offer custom implementations?",
                answer="Yes, we provide tailored implementations to meet your specific business needs.",
            ),
        ],
        contact_info=CompanyContact(
            website="https://www.techinnovations.example.com",
            email="info@techinnovations.example.com",
        ),
    )
)


class AgentFormSession:
    """State and actions of one agent form.

    Attributes:
        form_data: Current identity and classification fields.
        profile: Extracted (or demo) structured profile.
        conversation_flow: Flow owned by the session.
        system_prompt: System prompt of the last generated flow.
        flow_generated: Whether a flow was generated successfully.
        active_tab: Currently shown tab.
        error: Message of the last failed action, cleared when an action starts.
        agent: Persisted record after a successful submission.
    """

    def __init__(
        self,
        extractor: Optional[ProfileExtractor] = None,
        generator: Optional[FlowGenerator] = None,
        provisioning: Optional[AgentProvisioningService] = None,
        reporter: Optional[ErrorReporter] = None,
        on_change: Optional[Callable[[FormData], None]] = None,
        form_data: Optional[FormData] = None,
        user_id: Optional[str] = None,
    ):
        self.extractor = extractor or ProfileExtractor()
        self.generator = generator or FlowGenerator()
        self._provisioning = provisioning
        self.reporter = reporter or LoggingReporter()
        self.on_change = on_change
        self.user_id = user_id

        self.form_data = form_data or FormData()
        self.profile: Optional[StructuredProfile] = None
        self.conversation_flow: List[ConversationScenario] = []
        self.system_prompt = ""
        self.flow_generated = False
        self.active_tab = FormTab.DETAILS
        self.error: Optional[str] = None
        self.agent: Optional[AgentRecordData] = None

        self.is_extracting = False
        self.is_generating_flow = False
        self.is_submitting = False

        self._epoch = 0
        self._closed = False

    @property
    def provisioning(self) -> AgentProvisioningService:
        if self._provisioning is None:
            self._provisioning = AgentProvisioningService()
        return self._provisioning

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def flow_tab_enabled(self) -> bool:
        return self.profile is not None

    def _report(self, title: str, description: str, variant: str = "default") -> None:
        self.reporter.notify(Notification(title, description, variant))

    def _fail(self, title: str, message: str, description: Optional[str] = None) -> None:
        self.error = message
        self._report(title, description or message, "destructive")

    def _is_stale(self, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.info("Discarding response from a cancelled action", extra={"epoch": epoch})
            return True
        return False

    # -- form edits ------------------------------------------------------------

    def update_field(self, name: str, value: Any) -> FormData:
        """Set one form field and notify ``on_change``.

        Raises:
            FormValidationError: For an unknown field or an invalid value.
        """
        try:
            field = FORM_FIELDS[name]
        except KeyError:
            raise FormValidationError(name, f"Unknown form field: {name}") from None

        data = self.form_data.model_dump()
        data[field] = value
        try:
            self.form_data = FormData.model_validate(data)
        except ValidationError as e:
            raise FormValidationError(name, f"Invalid value for {name}: {value!r}") from e

        if self.on_change is not None:
            self.on_change(self.form_data)
        return self.form_data

    def set_company(self, is_company: bool) -> FormData:
        return self.update_field("isCompany", bool(is_company))

    def set_tab(self, tab: Union[FormTab, str]) -> None:
        """Switch tabs.

        Raises:
            EditorStateError: While submitting, or for the flow tab before a
                profile exists.
        """
        tab = FormTab(tab)
        if self.is_submitting:
            raise EditorStateError("Cannot switch tabs while the agent is being created")
        if tab == FormTab.FLOW and not self.flow_tab_enabled:
            raise EditorStateError("Extract profile information before editing the flow")
        self.active_tab = tab

    # -- actions -----------------------------------------------------------------

    async def extract_profile(self) -> Optional[StructuredProfile]:
        """Extract a profile for the form URL, then generate a flow for it."""
        if self._closed or self.is_extracting:
            return None
        self.error = None

        if not self.form_data.url.strip():
            self._fail(
                "Missing Information",
                "Please enter a URL to extract profile information.",
            )
            return None

        epoch = self._epoch
        self.is_extracting = True
        self._report("Extracting Information", "Analyzing your profile data...")
        try:
            profile = await asyncio.to_thread(
                self.extractor.extract,
                self.form_data.url,
                self.form_data.is_company,
                self.form_data.full_name,
                self.form_data.email,
            )
        except Exception as e:
            if self._is_stale(epoch):
                return None
            logger.error(f"Profile extraction failed: {e}")
            self._fail(
                "Error",
                str(e) or "Failed to extract profile information",
                f"Failed to extract profile information: {e}",
            )
            return None
        finally:
            if epoch == self._epoch:
                self.is_extracting = False

        if self._is_stale(epoch):
            return None

        self.profile = profile
        if not self.form_data.full_name and profile.name:
            self.update_field("fullName", profile.name)
        self._report("Information Extracted", "Profile data has been analyzed successfully.")

        await self.generate_flow(profile)
        return profile

    async def generate_flow(
        self, profile: Optional[StructuredProfile] = None
    ) -> Optional[List[ConversationScenario]]:
        """Generate a conversation flow for the given or stored profile.

        On failure the error is recorded and a one-scenario greeting flow
        is used instead.
        """
        if self._closed or self.is_generating_flow:
            return None
        self.error = None

        profile = profile or self.profile
        if profile is None:
            self._fail("Missing Information", "Please extract profile information first.")
            return None

        epoch = self._epoch
        self.is_generating_flow = True
        self._report("Generating Flow", "Creating a conversation flow based on the profile...")
        try:
            result = await asyncio.to_thread(
                self.generator.generate,
                profile=profile,
                use_case=self.form_data.use_case,
                entity_name=self.form_data.full_name,
                is_company=self.form_data.is_company,
                voice_style=self.form_data.voice_style,
            )
        except Exception as e:
            if self._is_stale(epoch):
                return None
            logger.error(f"Conversation flow generation failed: {e}")
            self._fail(
                "Error",
                str(e) or "Failed to generate conversation flow",
                f"Failed to generate conversation flow: {e}",
            )
            self.conversation_flow = default_greeting(self.form_data.full_name)
            self._report("Fallback Used", "Using basic conversation flow template due to error.")
            return list(self.conversation_flow)
        finally:
            if epoch == self._epoch:
                self.is_generating_flow = False

        if self._is_stale(epoch):
            return None

        self.conversation_flow = list(result.conversation_flow)
        self.system_prompt = result.system_prompt
        self.flow_generated = True
        # Tabs stay locked while a submission is in flight
        if not self.is_submitting:
            self.active_tab = FormTab.FLOW
        self._report("Flow Generated", "Conversation flow has been created successfully.")
        return list(self.conversation_flow)

    def save_conversation_flow(self, flow: List[ConversationScenario]) -> None:
        """Save callback for the flow editor."""
        self.conversation_flow = [s.model_copy(deep=True) for s in flow]

    def open_editor(self) -> ConversationFlowEditor:
        """Open an editor over a copy of the session's flow.

        Raises:
            EditorStateError: Before a profile exists.
        """
        if self.profile is None:
            raise EditorStateError("Extract profile information before editing the flow")
        editor = ConversationFlowEditor(
            profile=self.profile,
            use_case=self.form_data.use_case,
            entity_name=self.form_data.full_name,
            is_company=self.form_data.is_company,
            voice_style=self.form_data.voice_style,
            generator=self.generator,
            on_save=self.save_conversation_flow,
        )
        editor.open(self.conversation_flow or None)
        return editor

    def build_request(self) -> CreateAgentRequest:
        return CreateAgentRequest(
            name=self.form_data.full_name,
            email=self.form_data.email,
            is_company=self.form_data.is_company,
            url=self.form_data.url,
            use_case=self.form_data.use_case,
            voice_style=self.form_data.voice_style,
            structured_data=self.profile.to_wire() if self.profile else None,
            conversation_flow=[s.model_copy(deep=True) for s in self.conversation_flow],
            user_id=self.user_id,
        )

    async def submit(self) -> Optional[AgentRecordData]:
        """Provision the voice agent and persist the record."""
        if self._closed or self.is_submitting:
            return None
        self.error = None

        request = self.build_request()
        try:
            validate_submission(request)
        except FormValidationError as e:
            self._fail("Missing Information", str(e))
            return None

        epoch = self._epoch
        self.is_submitting = True
        self._report(
            "Agent Generation Started",
            "We're creating your AI sales agent now. This might take a minute or two.",
        )
        try:
            record = await self.provisioning.submit(request)
        except Exception as e:
            if self._is_stale(epoch):
                return None
            logger.error(f"Error creating agent: {e}")
            self._fail(
                "Error",
                "Failed to create agent",
                "There was a problem creating your AI agent. Please try again.",
            )
            return None
        finally:
            if epoch == self._epoch:
                self.is_submitting = False

        if self._is_stale(epoch):
            return None

        self.agent = record
        self._report("Success!", "Your AI agent has been created successfully.")
        return record

    def load_demo(self) -> None:
        """Load the demo form data and company profile."""
        self.error = None
        self.form_data = DEMO_FORM_DATA.model_copy(deep=True)
        self.profile = DEMO_PROFILE.model_copy(deep=True)
        if self.on_change is not None:
            self.on_change(self.form_data)
        self._report("Demo Agent Loaded", "We've loaded a sample AI agent for you to try.")

    def cancel_pending(self) -> None:
        """Discard the responses of all in-flight actions."""
        self._epoch += 1
        self.is_extracting = False
        self.is_generating_flow = False
        self.is_submitting = False

    def close(self) -> None:
        self.cancel_pending()
        self._closed = True
