# prompt_builder.py
"""Prompt templates for system prompts, knowledge bases and flow generation."""

import json
from typing import Any, Dict, List, Optional, Sequence

from .models import (
    AgentFacingFields,
    CompanyProfile,
    ConversationScenario,
    IndividualProfile,
    StructuredProfile,
    UseCase,
    VoiceStyle,
)

DEFAULT_COMPANY_INDUSTRY = "technology"
DEFAULT_COMPANY_TONE = "professional, friendly, helpful"
DEFAULT_PROFESSION = "Professional"
DEFAULT_SKILLS = ["Professional skills"]
DEFAULT_INDIVIDUAL_TONE = "friendly, professional"

FLOW_DESIGNER_MESSAGE = (
    "You are an expert AI conversation designer who creates well-structured "
    "conversation flows."
)

VOICE_STYLE_DESCRIPTIONS = {
    VoiceStyle.FRIENDLY: "Warm, conversational, approachable",
    VoiceStyle.PROFESSIONAL: "Clear, authoritative, poised",
    VoiceStyle.ENERGETIC: "Dynamic, enthusiastic, engaging",
    VoiceStyle.CALM: "Soothing, composed, reassuring",
}

COMPANY_SYSTEM_PROMPT = """You are an AI voice agent representing {company_name}, a business that specializes in {industry}.

Your goal is to introduce the company, explain its services/products, answer client inquiries, and direct people to the right resource.

Your tone is {tone}, and you speak clearly and confidently about the company's:
- Mission and values
- Products or services
- Client success stories
- How to get started or speak to a real person

When uncertain, answer generally or offer to connect the user to support or sales."""

INDIVIDUAL_SYSTEM_PROMPT = """You are an AI voice assistant representing {full_name}, a {profession} with expertise in {skills}.

Your goal is to explain their background, services, and value clearly and confidently. Your personality is {tone}, and your responses should reflect {full_name}'s tone, achievements, and personal brand.

You answer questions about {full_name}'s:
- Work experience
- Skills and achievements
- Projects or clients
- Availability or how to get in touch

If the question is unrelated, respond politely or guide the person back to relevant topics. Offer to share links or book a meeting when appropriate."""

FLOW_PROMPT = """
You are an expert AI conversation designer. Create a detailed conversation flow for an AI voice agent based on the following information:

SYSTEM PROMPT:
{system_prompt}

KNOWLEDGE BASE:
{knowledge_base}

AGENT TYPE: {agent_type}
USE CASE: {use_case}
VOICE STYLE: {voice_style} ({voice_description})

Create a comprehensive conversation flow with at least 8 different conversation scenarios that this AI voice agent would handle.
Each scenario should include:
1. The scenario name/type (e.g., "Introduction", "Product Questions", "Pricing", etc.)
2. 2-4 example user inputs/questions for this scenario
3. 2-4 diverse AI responses for this scenario, matching the specified voice style
4. Next steps or follow-up questions the AI might ask

Format your response as a valid JSON array like this example:
[
  {{
    "scenario": "Introduction",
    "userInputs": ["Hi there", "Hello", "Who are you?"],
    "responses": ["Hi, I'm Sarah's AI assistant. How can I help you today?", "Hello! I'm an AI assistant for ABC Company. How may I assist you?"],
    "followUps": ["Would you like to learn more about our services?", "Is there something specific I can help you with today?"]
  }},
  {{
    "scenario": "Another scenario name",
    "userInputs": ["example question 1", "example question 2"],
    "responses": ["example response 1", "example response 2"],
    "followUps": ["follow-up 1", "follow-up 2"]
  }}
]

Important: Make sure the conversation flow:
1. Is highly personalized to the specific knowledge base and system prompt
2. Matches the selected voice style ({voice_style})
3. Is optimized for the use case ({use_case})
4. Uses natural, conversational language
5. Has responses that sound like they come from a real person
6. Returns ONLY valid JSON that can be parsed (no explanations or other text)
"""


def _value(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


def build_system_prompt(
    profile: Optional[StructuredProfile],
    entity_name: str,
    is_company: bool,
    custom_prompt: Optional[str] = None,
) -> str:
    """Build the agent's system prompt.

    A non-blank ``custom_prompt`` is returned verbatim. Otherwise the
    company or individual template is filled from the profile, falling back
    to ``entity_name`` and fixed defaults for every missing field.
    """
    if custom_prompt and custom_prompt.strip():
        return custom_prompt

    if is_company:
        company = profile.company_profile if profile else None
        company = company or CompanyProfile()
        return COMPANY_SYSTEM_PROMPT.format(
            company_name=company.name or entity_name,
            industry=(company.industries_served[:1] or [DEFAULT_COMPANY_INDUSTRY])[0],
            tone=company.tone_of_voice or DEFAULT_COMPANY_TONE,
        )

    individual = profile.individual_profile if profile else None
    individual = individual or IndividualProfile()
    return INDIVIDUAL_SYSTEM_PROMPT.format(
        full_name=individual.name or entity_name,
        profession=individual.title or DEFAULT_PROFESSION,
        skills=", ".join(individual.core_skills or DEFAULT_SKILLS),
        tone=individual.tone_of_voice or DEFAULT_INDIVIDUAL_TONE,
    )


def _agent_facing(entity: AgentFacingFields) -> Dict[str, Any]:
    extra: Dict[str, Any] = {}
    for key in ("target_audience", "agent_greeting", "value_offer", "call_to_action"):
        value = getattr(entity, key)
        if value:
            extra[key] = value
    if entity.support_actions:
        extra["support_actions"] = list(entity.support_actions)
    return extra


def build_knowledge_base(profile: Optional[StructuredProfile], is_company: bool) -> Dict[str, Any]:
    """Flatten a profile into the key/value grounding context for generation."""
    if is_company:
        company = (profile.company_profile if profile else None) or CompanyProfile()
        knowledge_base = {
            "company_name": company.name or "Company Name",
            "industry": (company.industries_served[:1] or ["Technology"])[0],
            "summary": company.about or "Company description",
            "products": [p.name for p in company.products_services] or ["Products and services"],
            "ideal_clients": list(company.industries_served) or ["Businesses"],
            "case_study": (
                "We have helped numerous clients achieve their goals through "
                "our innovative solutions."
            ),
            "website": company.contact_info.website or "company.com",
            "contact": company.contact_info.email or "contact@example.com",
        }
        knowledge_base.update(_agent_facing(company))
        return knowledge_base

    individual = (profile.individual_profile if profile else None) or IndividualProfile()
    knowledge_base = {
        "name": individual.name or "Professional Name",
        "title": individual.title or DEFAULT_PROFESSION,
        "summary": individual.about or "Professional description",
        "top_skills": list(individual.core_skills) or list(DEFAULT_SKILLS),
        "clients": list(individual.services_offered) or ["Clients"],
        "portfolio_url": individual.contact.website or "personal-website.com",
        "contact": individual.contact.email or "contact@example.com",
    }
    knowledge_base.update(_agent_facing(individual))
    return knowledge_base


def build_flow_prompt(
    system_prompt: str,
    knowledge_base: Dict[str, Any],
    is_company: bool,
    use_case: UseCase,
    voice_style: VoiceStyle,
) -> str:
    """Build the instruction asking the model for a JSON scenario array."""
    return FLOW_PROMPT.format(
        system_prompt=system_prompt,
        knowledge_base=json.dumps(knowledge_base, indent=2),
        agent_type="Company" if is_company else "Individual",
        use_case=_value(use_case),
        voice_style=_value(voice_style),
        voice_description=VOICE_STYLE_DESCRIPTIONS.get(
            VoiceStyle(_value(voice_style)), "Professional, clear, friendly"
        ),
    )


def build_flow_messages(
    system_prompt: str,
    knowledge_base: Dict[str, Any],
    is_company: bool,
    use_case: UseCase,
    voice_style: VoiceStyle,
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": FLOW_DESIGNER_MESSAGE},
        {
            "role": "user",
            "content": build_flow_prompt(
                system_prompt, knowledge_base, is_company, use_case, voice_style
            ),
        },
    ]


def render_agent_prompt(
    system_prompt: str,
    conversation_flow: Sequence[ConversationScenario],
) -> str:
    """Combine the system prompt and the edited script into the voice agent prompt."""
    if not conversation_flow:
        return system_prompt

    lines = [system_prompt, "", "CONVERSATION SCRIPT:"]
    for number, scenario in enumerate(conversation_flow, start=1):
        lines.append(f"{number}. {scenario.scenario}")
        lines.append(f"   When the caller says things like: {' | '.join(scenario.user_inputs)}")
        lines.append(f"   Respond with one of: {' | '.join(scenario.responses)}")
        if scenario.follow_ups:
            lines.append(f"   Then ask: {' | '.join(scenario.follow_ups)}")
        if scenario.next_scenario_id:
            condition = f" if {scenario.conditions}" if scenario.conditions else ""
            lines.append(f"   Continue with scenario '{scenario.next_scenario_id}'{condition}.")
    return "\n".join(lines)


def build_first_message(name: str) -> str:
    return f"Hi there! I'm {name}, your AI assistant. How can I help you today?"
