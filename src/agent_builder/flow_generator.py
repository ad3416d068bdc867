# flow_generator.py
"""Conversation flow generation.

The FlowGenerator builds the system prompt and knowledge base for a profile,
asks a chat-completion provider for a JSON array of scenarios and parses the
answer. When the provider fails or its answer cannot be parsed, a
deterministic template flow keyed on the use case is returned instead (unless
the caller asks for the error).
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from .config import config
from .exceptions import FlowParseError, ProfileMissingError, UpstreamServiceError
from .llm_client import ProviderChain
from .logging_utils import get_logger
from .models import (
    ConversationScenario,
    GenerationResult,
    StructuredProfile,
    UseCase,
    VoiceStyle,
)
from .profile_normalizer import normalize_profile
from .prompt_builder import (
    build_flow_messages,
    build_knowledge_base,
    build_system_prompt,
)

logger = get_logger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)

# Keys under which a model sometimes wraps the scenario array
WRAPPER_KEYS = ("conversationFlow", "conversation_flow", "scenarios", "flow")


def strip_code_fences(content: str) -> str:
    """Remove Markdown code fence delimiters around a JSON payload."""
    return CODE_FENCE.sub("", content).strip()


def _unwrap(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    for key in WRAPPER_KEYS:
        if isinstance(data.get(key), list):
            return data[key]
    lists = [value for value in data.values() if isinstance(value, list)]
    if len(lists) == 1:
        return lists[0]
    return data


def parse_flow_response(content: str) -> List[ConversationScenario]:
    """Parse model output into a list of scenarios.

    Tries a direct JSON parse first, then again with code fences stripped.

    Raises:
        FlowParseError: If the content is not JSON, not a non-empty list, or
            an element does not fit the scenario model.
    """
    try:
        data = json.loads(content.strip())
    except json.JSONDecodeError:
        try:
            data = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise FlowParseError(f"Model output is not valid JSON: {e}", content) from e

    data = _unwrap(data)
    if not isinstance(data, list):
        raise FlowParseError("Model output is not a JSON array of scenarios", content)
    if not data:
        raise FlowParseError("Model returned an empty conversation flow", content)

    try:
        return [ConversationScenario.model_validate(item) for item in data]
    except ValidationError as e:
        raise FlowParseError(f"Invalid scenario in model output: {e}", content) from e


def positional_id(index: int) -> str:
    return f"scenario-{index + 1}"


def assign_positional_ids(
    flow: Sequence[ConversationScenario],
    replace_existing: bool = False,
) -> List[ConversationScenario]:
    """Return a copy of ``flow`` where every scenario has a unique id.

    Missing or duplicate ids are synthesized from the scenario position. With
    ``replace_existing`` every id is replaced and ``next_scenario_id``
    pointers are remapped to the new ids.
    """
    reserved = set() if replace_existing else {s.id for s in flow if s.id}
    used: set = set()
    mapping: Dict[str, str] = {}
    result = []

    for index, scenario in enumerate(flow):
        new_id = scenario.id
        if replace_existing or not new_id or new_id in used:
            new_id = positional_id(index)
            suffix = 1
            while new_id in used or (new_id in reserved and new_id != scenario.id):
                suffix += 1
                new_id = f"{positional_id(index)}-{suffix}"
        if scenario.id and scenario.id not in mapping:
            mapping[scenario.id] = new_id
        used.add(new_id)
        result.append(scenario.model_copy(update={"id": new_id}, deep=True))

    if replace_existing:
        result = [
            s.model_copy(update={"next_scenario_id": mapping.get(s.next_scenario_id, s.next_scenario_id)})
            if s.next_scenario_id else s
            for s in result
        ]
    return result


def fallback_flow(
    use_case: Union[UseCase, str],
    name: str,
    knowledge_base: Dict[str, Any],
    is_company: bool,
) -> List[ConversationScenario]:
    """Deterministic template flow used when generation fails.

    Always starts with an "Introduction" scenario followed by the scenarios
    for the use case.
    """
    use_case = UseCase(use_case)
    flow = [
        ConversationScenario(
            scenario="Introduction",
            user_inputs=["Hi there", "Hello", "Who are you?"],
            responses=[
                f"Hi, I'm {name}'s AI assistant. How can I help you today?",
                f"Hello! I'm an AI voice agent for {name}. What can I assist you with?",
            ],
            follow_ups=[
                "Is there something specific you'd like to know?",
                "How can I help you today?",
            ],
        )
    ]

    if use_case == UseCase.SALES:
        if is_company:
            offer = (
                f"At {name}, we offer a range of solutions including "
                f"{', '.join(knowledge_base.get('products', []))}. "
                "Would you like to learn more about any specific one?"
            )
        else:
            offer = (
                f"{name} specializes in {', '.join(knowledge_base.get('top_skills', []))}. "
                "Would you like to hear more about these services?"
            )
        flow += [
            ConversationScenario(
                scenario="Products/Services",
                user_inputs=["What do you offer?", "Tell me about your products", "What services do you provide?"],
                responses=[offer],
                follow_ups=[
                    "Would you like more details on any specific offering?",
                    "Do you have any questions about our solutions?",
                ],
            ),
            ConversationScenario(
                scenario="Pricing",
                user_inputs=["How much does it cost?", "What are your prices?", "Tell me about pricing"],
                responses=[
                    "Our pricing is customized based on your specific requirements. "
                    "Would you like to schedule a consultation to discuss your needs?"
                ],
                follow_ups=[
                    "What particular service are you interested in?",
                    "Would you like me to have someone from our team reach out with pricing details?",
                ],
            ),
            ConversationScenario(
                scenario="Call to Action",
                user_inputs=["How do we get started?", "I want to work with you", "Next steps"],
                responses=[
                    "Would you like to schedule a call to discuss how we can help you?",
                    "What's the best way to reach you so we can provide more detailed information?",
                ],
                follow_ups=["What's your email address?", "When would be a good time for a follow-up call?"],
            ),
        ]
    elif use_case == UseCase.CUSTOMER_SUPPORT:
        flow += [
            ConversationScenario(
                scenario="Issue Troubleshooting",
                user_inputs=["I have a problem", "Something's not working", "Need help with an issue"],
                responses=[
                    "I'm sorry to hear you're having an issue. Could you please tell me more "
                    "about what's happening so I can help you better?"
                ],
                follow_ups=["When did you first notice this issue?", "Have you tried any solutions already?"],
            ),
            ConversationScenario(
                scenario="Follow-up",
                user_inputs=["What happens next?", "Will someone contact me?", "How do I check status?"],
                responses=[
                    "Let me connect you with our support team who can help resolve this right away.",
                    "Would you like me to have someone from our team contact you directly?",
                ],
                follow_ups=["What's the best way to reach you?", "Do you have a case number from a previous interaction?"],
            ),
        ]
    elif use_case == UseCase.LEAD_QUALIFICATION:
        flow += [
            ConversationScenario(
                scenario="Qualification",
                user_inputs=[
                    "I'm interested in your services",
                    "I want to know if we're a good fit",
                    "Tell me if you can help with...",
                ],
                responses=[
                    "To help understand if we're a good fit, may I ask about your current needs and challenges?"
                ],
                follow_ups=["What specific problems are you trying to solve?", "What solutions have you tried before?"],
            ),
            ConversationScenario(
                scenario="Next Steps",
                user_inputs=["What now?", "How do we proceed?", "I think we're a good match"],
                responses=[
                    "Based on what you've shared, I think we could definitely help. "
                    "Would you be interested in speaking with one of our specialists?",
                    "It sounds like you could benefit from our services. Would you like to schedule a demo?",
                ],
                follow_ups=["What times work best for you?", "Who else from your team should be involved in the next discussion?"],
            ),
        ]

    return assign_positional_ids(flow)


class FlowGenerator:
    """Generates conversation flows for a profile.

    Attributes:
        llm: Provider chain used for completions, created from config on
            first use when not injected.
    """

    def __init__(self, llm: Optional[ProviderChain] = None):
        self.logger = get_logger(__name__)
        self._llm = llm

    @property
    def llm(self) -> ProviderChain:
        if self._llm is None:
            self._llm = ProviderChain.from_config()
        return self._llm

    def generate(
        self,
        profile: Union[StructuredProfile, Dict[str, Any], None],
        use_case: Union[UseCase, str],
        entity_name: str,
        is_company: bool,
        voice_style: Union[VoiceStyle, str],
        custom_prompt: Optional[str] = None,
        allow_fallback: bool = True,
    ) -> GenerationResult:
        """Generate a system prompt and conversation flow.

        Args:
            profile: Structured profile, or a raw profile payload in either
                serialization.
            use_case: What the agent is for; selects the fallback template.
            entity_name: Name from the form, used when the profile has none.
            is_company: Which profile variant to read.
            voice_style: Voice persona the responses should match.
            custom_prompt: Replaces the synthesized system prompt verbatim.
            allow_fallback: When False, upstream and parse failures are
                raised instead of answered with the template flow.

        Raises:
            ProfileMissingError: If no profile was given.
            UpstreamServiceError: Provider failure with ``allow_fallback=False``.
            FlowParseError: Unparseable output with ``allow_fallback=False``.
        """
        if not profile:
            raise ProfileMissingError("Profile data is required")

        use_case = UseCase(use_case)
        voice_style = VoiceStyle(voice_style)
        profile = normalize_profile(profile, is_company)

        system_prompt = build_system_prompt(profile, entity_name, is_company, custom_prompt)
        knowledge_base = build_knowledge_base(profile, is_company)
        messages = build_flow_messages(
            system_prompt, knowledge_base, is_company, use_case, voice_style
        )

        self.logger.info(
            "Generating conversation flow",
            extra={
                "use_case": use_case.value,
                "voice_style": voice_style.value,
                "is_company": is_company,
                "custom_prompt": bool(custom_prompt and custom_prompt.strip()),
            }
        )

        try:
            content = self.llm.complete(messages, max_tokens=config.LLM_MAX_TOKENS)
            flow = parse_flow_response(content)
        except (UpstreamServiceError, FlowParseError) as e:
            self.logger.warning(
                f"Conversation flow generation failed: {e}",
                extra={"stage": e.stage, "allow_fallback": allow_fallback}
            )
            if not allow_fallback:
                raise
            name = profile.name or entity_name or (
                knowledge_base.get("company_name") if is_company else knowledge_base.get("name")
            )
            return GenerationResult(
                system_prompt=system_prompt,
                conversation_flow=fallback_flow(use_case, name, knowledge_base, is_company),
                knowledge_base=knowledge_base,
                fallback_used=True,
                error=str(e),
            )

        flow = assign_positional_ids(flow)
        self.logger.info(
            "Conversation flow generated",
            extra={"scenario_count": len(flow), "provider": self.llm.last_provider}
        )
        return GenerationResult(
            system_prompt=system_prompt,
            conversation_flow=flow,
            knowledge_base=knowledge_base,
            provider=self.llm.last_provider,
        )
