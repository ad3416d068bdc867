# src/agent_builder/tests/test_prompt_builder.py
"""
Unit tests for prompt construction.

Tests cover:
- Company and individual system prompts with defaults
- Custom prompt replacing the synthesized prompt verbatim
- Knowledge base projection and literal defaults
- Flow instruction prompt contents
- Voice agent prompt rendering with the conversation script
"""
import json

import pytest

from agent_builder.models import ConversationScenario, UseCase, VoiceStyle
from agent_builder.prompt_builder import (
    build_first_message,
    build_flow_messages,
    build_flow_prompt,
    build_knowledge_base,
    build_system_prompt,
    render_agent_prompt,
)


class TestSystemPrompt:
    """Tests for build_system_prompt()."""

    @pytest.mark.unit
    def test_company_prompt_uses_profile(self, company_profile):
        prompt = build_system_prompt(company_profile, "Form Name", is_company=True)

        assert "representing Acme, a business that specializes in Aerospace" in prompt
        assert "Your tone is bold, upbeat" in prompt

    @pytest.mark.unit
    def test_company_prompt_defaults(self):
        prompt = build_system_prompt(None, "Form Name", is_company=True)

        assert "representing Form Name" in prompt
        assert "specializes in technology" in prompt
        assert "professional, friendly, helpful" in prompt

    @pytest.mark.unit
    def test_individual_prompt(self, individual_profile):
        prompt = build_system_prompt(individual_profile, "Form Name", is_company=False)

        assert "representing Jane Doe, a Growth Consultant with expertise in Growth, Marketing" in prompt
        assert "friendly, professional" in prompt

    @pytest.mark.unit
    def test_individual_prompt_defaults(self):
        prompt = build_system_prompt(None, "Sam", is_company=False)
        assert "Sam, a Professional with expertise in Professional skills" in prompt

    @pytest.mark.unit
    def test_custom_prompt_verbatim(self, company_profile):
        assert build_system_prompt(company_profile, "X", True, "Be a pirate.") == "Be a pirate."

    @pytest.mark.unit
    def test_blank_custom_prompt_ignored(self, company_profile):
        prompt = build_system_prompt(company_profile, "X", True, "   ")
        assert prompt.startswith("You are an AI voice agent representing Acme")


class TestKnowledgeBase:
    """Tests for build_knowledge_base()."""

    @pytest.mark.unit
    def test_company_keys(self, company_profile):
        kb = build_knowledge_base(company_profile, is_company=True)

        assert kb["company_name"] == "Acme"
        assert kb["industry"] == "Aerospace"
        assert kb["products"] == ["Rocket", "Launchpad"]
        assert kb["ideal_clients"] == ["Aerospace", "Logistics"]
        assert kb["website"] == "https://acme.io"
        assert kb["contact"] == "hi@acme.io"
        assert "case_study" in kb

    @pytest.mark.unit
    def test_company_defaults(self):
        kb = build_knowledge_base(None, is_company=True)

        assert kb["company_name"] == "Company Name"
        assert kb["products"] == ["Products and services"]
        assert kb["contact"] == "contact@example.com"

    @pytest.mark.unit
    def test_individual_keys(self, individual_profile):
        kb = build_knowledge_base(individual_profile, is_company=False)

        assert kb["name"] == "Jane Doe"
        assert kb["title"] == "Growth Consultant"
        assert kb["top_skills"] == ["Growth", "Marketing"]
        assert kb["clients"] == ["Advisory"]
        assert kb["portfolio_url"] == "https://jane.dev"


class TestFlowPrompt:
    """Tests for the flow instruction prompt."""

    @pytest.mark.unit
    def test_prompt_contents(self, company_profile):
        kb = build_knowledge_base(company_profile, True)
        prompt = build_flow_prompt("SYSTEM", kb, True, UseCase.SALES, VoiceStyle.CALM)

        assert "SYSTEM" in prompt
        assert json.dumps(kb, indent=2) in prompt
        assert "AGENT TYPE: Company" in prompt
        assert "USE CASE: sales" in prompt
        assert "VOICE STYLE: calm (Soothing, composed, reassuring)" in prompt
        assert "at least 8" in prompt

    @pytest.mark.unit
    def test_messages(self):
        messages = build_flow_messages("SYSTEM", {}, False, UseCase.OTHER, VoiceStyle.FRIENDLY)

        assert [m["role"] for m in messages] == ["system", "user"]
        assert "AGENT TYPE: Individual" in messages[1]["content"]


class TestAgentPrompt:
    """Tests for render_agent_prompt() and build_first_message()."""

    @pytest.mark.unit
    def test_renders_script(self):
        flow = [
            ConversationScenario(
                scenario="Pricing",
                user_inputs=["How much?"],
                responses=["It depends."],
                follow_ups=["What's your budget?"],
                next_scenario_id="scenario-3",
                conditions="caller asks for a quote",
            )
        ]
        prompt = render_agent_prompt("SYSTEM", flow)

        assert prompt.startswith("SYSTEM\n\nCONVERSATION SCRIPT:")
        assert "1. Pricing" in prompt
        assert "How much?" in prompt
        assert "Then ask: What's your budget?" in prompt
        assert "Continue with scenario 'scenario-3' if caller asks for a quote." in prompt

    @pytest.mark.unit
    def test_empty_flow_returns_system_prompt(self):
        assert render_agent_prompt("SYSTEM", []) == "SYSTEM"

    @pytest.mark.unit
    def test_first_message(self):
        assert build_first_message("Acme") == (
            "Hi there! I'm Acme, your AI assistant. How can I help you today?"
        )
