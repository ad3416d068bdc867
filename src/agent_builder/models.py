"""Pydantic models for voice agent builder data structures.

JSON field names follow the camelCase wire format used by the web form
(``userInputs``, ``companyProfile`` ...); Python code uses snake_case
attribute names. Both spellings are accepted on input.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class UseCase(str, Enum):
    """What the voice agent is for."""

    SALES = "sales"
    CUSTOMER_SUPPORT = "customer-support"
    LEAD_QUALIFICATION = "lead-qualification"
    OTHER = "other"


class VoiceStyle(str, Enum):
    """Voice persona selector, mapped to a vendor voice id."""

    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    ENERGETIC = "energetic"
    CALM = "calm"


class ScenarioKind(str, Enum):
    """Display marker for a scenario in the editor list."""

    INTRO = "intro"
    QUESTION = "question"
    DECISION = "decision"
    GENERAL = "general"


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump to the camelCase JSON-compatible wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FormData(CamelModel):
    """Identity and classification fields collected by the form."""

    full_name: str = Field(default="", description="Person or company name")
    email: str = Field(default="", description="Contact email")
    is_company: bool = Field(default=False)
    url: str = Field(default="", description="Company website or profile URL")
    use_case: UseCase = Field(default=UseCase.SALES)
    voice_style: VoiceStyle = Field(default=VoiceStyle.PROFESSIONAL)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class ProductService(CamelModel):
    name: str
    description: str = ""


class FAQ(CamelModel):
    question: str
    answer: str = ""


class ExperienceEntry(CamelModel):
    title: str
    company: str = ""
    date: str = Field(default="", description="Date range, e.g. '2020 - Present'")


class CompanyContact(CamelModel):
    website: Optional[str] = None
    email: Optional[str] = None
    schedule_demo: Optional[str] = None


class IndividualContact(CamelModel):
    email: Optional[str] = None
    website: Optional[str] = None
    calendly: Optional[str] = None


class AgentFacingFields(CamelModel):
    """Optional fields written for the voice agent rather than a human reader."""

    tone_of_voice: Optional[str] = None
    target_audience: Optional[str] = None
    agent_greeting: Optional[str] = None
    agent_intro: Optional[str] = None
    value_offer: Optional[str] = None
    support_actions: List[str] = Field(default_factory=list)
    call_to_action: Optional[str] = None


class CompanyProfile(AgentFacingFields):
    """Canonical profile of a company."""

    name: str = ""
    tagline: str = ""
    about: str = ""
    products_services: List[ProductService] = Field(default_factory=list)
    use_cases: List[str] = Field(default_factory=list)
    industries_served: List[str] = Field(default_factory=list)
    faqs: List[FAQ] = Field(default_factory=list)
    contact_info: CompanyContact = Field(default_factory=CompanyContact)


class IndividualProfile(AgentFacingFields):
    """Canonical profile of an individual professional."""

    name: str = ""
    title: str = ""
    headline: str = ""
    about: str = ""
    core_skills: List[str] = Field(default_factory=list)
    services_offered: List[str] = Field(default_factory=list)
    experience_highlights: List[ExperienceEntry] = Field(default_factory=list)
    contact: IndividualContact = Field(default_factory=IndividualContact)


class StructuredProfile(CamelModel):
    """Extractor output: exactly one of the two profile variants."""

    company_profile: Optional[CompanyProfile] = None
    individual_profile: Optional[IndividualProfile] = None

    @model_validator(mode="after")
    def _exactly_one_variant(self) -> "StructuredProfile":
        if (self.company_profile is None) == (self.individual_profile is None):
            raise ValueError(
                "exactly one of companyProfile or individualProfile must be set"
            )
        return self

    @property
    def is_company(self) -> bool:
        return self.company_profile is not None

    @property
    def entity(self) -> Union[CompanyProfile, IndividualProfile]:
        """The populated profile variant."""
        return self.company_profile if self.company_profile is not None else self.individual_profile

    @property
    def name(self) -> str:
        return self.entity.name


# ---------------------------------------------------------------------------
# Conversation flow
# ---------------------------------------------------------------------------


class ConversationScenario(CamelModel):
    """One labeled unit of the voice agent's script."""

    id: Optional[str] = None
    scenario: str = Field(..., description="Short label, e.g. 'Pricing'")
    user_inputs: List[str] = Field(..., min_length=1)
    responses: List[str] = Field(..., min_length=1)
    follow_ups: List[str] = Field(default_factory=list)
    next_scenario_id: Optional[str] = None
    conditions: Optional[str] = None

    @field_validator("id", "next_scenario_id", mode="before")
    @classmethod
    def _numeric_id_to_str(cls, value: Any) -> Any:
        # Models often number their scenarios
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, (int, float)):
            return str(value)
        return value


class GenerationResult(CamelModel):
    """Output of a flow generation run."""

    system_prompt: str
    conversation_flow: List[ConversationScenario]
    knowledge_base: Dict[str, Any] = Field(default_factory=dict)
    fallback_used: bool = False
    provider: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# API requests and persisted records
# ---------------------------------------------------------------------------


class ExtractProfileRequest(CamelModel):
    url: str = ""
    is_company: bool = False
    name: str = ""
    email: str = ""


class GenerateFlowRequest(CamelModel):
    profile_data: Optional[Dict[str, Any]] = None
    use_case: UseCase = UseCase.SALES
    name: str = ""
    is_company: bool = False
    voice_style: VoiceStyle = VoiceStyle.PROFESSIONAL
    custom_prompt: Optional[str] = None


class CreateAgentRequest(CamelModel):
    """Final submission of the form."""

    name: str = ""
    email: str = ""
    is_company: bool = False
    url: str = ""
    use_case: UseCase = UseCase.SALES
    voice_style: VoiceStyle = VoiceStyle.PROFESSIONAL
    structured_data: Optional[Dict[str, Any]] = None
    conversation_flow: List[ConversationScenario] = Field(default_factory=list)
    user_id: Optional[str] = None


class AgentRecordData(BaseModel):
    """A persisted voice agent row, serialized with its column names."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    is_company: bool
    url: str
    use_case: str
    voice_style: str
    scraped_data: Optional[Dict[str, Any]] = None
    agent_prompt: Optional[str] = None
    knowledge_base: Optional[Dict[str, Any]] = None
    conversation_flow: List[Dict[str, Any]] = Field(default_factory=list)
    eleven_labs_agent_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
