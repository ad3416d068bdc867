# src/agent_builder/tests/test_flow_generator.py
"""
Unit tests for conversation flow generation.

Tests cover:
- Parsing raw, fenced and wrapped JSON model output
- Numeric scenario ids from the model
- Rejection of invalid, empty and non-list output
- Positional id assignment and pointer remapping
- Fallback flows per use case
- FlowGenerator success, fallback and no-fallback paths
- Missing profile handling and custom prompts
"""
from unittest.mock import MagicMock

import pytest

from agent_builder.exceptions import FlowParseError, ProfileMissingError, UpstreamServiceError
from agent_builder.flow_generator import (
    FlowGenerator,
    assign_positional_ids,
    fallback_flow,
    parse_flow_response,
    strip_code_fences,
)
from agent_builder.models import ConversationScenario, UseCase

SCENARIO_JSON = '[{"scenario": "Intro", "userInputs": ["Hi"], "responses": ["Hello"], "followUps": []}]'


class TestParseFlowResponse:
    """Tests for parse_flow_response()."""

    @pytest.mark.unit
    def test_plain_json(self):
        flow = parse_flow_response(SCENARIO_JSON)
        assert len(flow) == 1
        assert flow[0].scenario == "Intro"

    @pytest.mark.unit
    def test_fenced_json(self):
        flow = parse_flow_response(f"```json\n{SCENARIO_JSON}\n```")
        assert flow[0].user_inputs == ["Hi"]

    @pytest.mark.unit
    def test_wrapped_json(self):
        flow = parse_flow_response(f'{{"conversationFlow": {SCENARIO_JSON}}}')
        assert flow[0].responses == ["Hello"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "content",
        [
            "Sorry, I cannot help with that.",
            "[]",
            '{"scenario": "Intro"}',
            '[{"scenario": "Intro", "userInputs": [], "responses": ["Hello"]}]',
        ],
    )
    def test_invalid_output_raises(self, content):
        with pytest.raises(FlowParseError) as exc_info:
            parse_flow_response(content)
        assert exc_info.value.stage == "parse"

    @pytest.mark.unit
    def test_numeric_ids_become_strings(self):
        flow = parse_flow_response(
            '[{"id": 1, "scenario": "Intro", "userInputs": ["Hi"], "responses": ["Hello"], '
            '"nextScenarioId": 2}, '
            '{"id": 2, "scenario": "Pricing", "userInputs": ["Price?"], "responses": ["Quotes"]}]'
        )

        assert [s.id for s in flow] == ["1", "2"]
        assert flow[0].next_scenario_id == "2"

    @pytest.mark.unit
    def test_strip_code_fences(self):
        assert strip_code_fences("```\n[1]\n```") == "[1]"
        assert strip_code_fences("```JSON [1]```") == "[1]"


class TestAssignPositionalIds:
    """Tests for assign_positional_ids()."""

    @staticmethod
    def _scenario(id=None, next_id=None):
        return ConversationScenario(
            id=id, scenario="S", user_inputs=["a"], responses=["b"], next_scenario_id=next_id
        )

    @pytest.mark.unit
    def test_fills_missing_ids(self):
        flow = assign_positional_ids([self._scenario(), self._scenario("keep"), self._scenario()])
        assert [s.id for s in flow] == ["scenario-1", "keep", "scenario-3"]

    @pytest.mark.unit
    def test_ids_unique(self):
        flow = assign_positional_ids([
            self._scenario("scenario-2"), self._scenario(), self._scenario("scenario-2"),
        ])
        ids = [s.id for s in flow]
        assert len(set(ids)) == 3
        assert ids[0] == "scenario-2"

    @pytest.mark.unit
    def test_replace_existing_remaps_pointers(self):
        flow = assign_positional_ids(
            [self._scenario("a", next_id="c"), self._scenario("b"), self._scenario("c")],
            replace_existing=True,
        )
        assert [s.id for s in flow] == ["scenario-1", "scenario-2", "scenario-3"]
        assert flow[0].next_scenario_id == "scenario-3"

    @pytest.mark.unit
    def test_does_not_mutate_input(self):
        original = [self._scenario()]
        assign_positional_ids(original)
        assert original[0].id is None


class TestFallbackFlow:
    """Tests for fallback_flow()."""

    KB_COMPANY = {"products": ["Rocket", "Launchpad"]}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "use_case,labels",
        [
            (UseCase.SALES, ["Introduction", "Products/Services", "Pricing", "Call to Action"]),
            (UseCase.CUSTOMER_SUPPORT, ["Introduction", "Issue Troubleshooting", "Follow-up"]),
            (UseCase.LEAD_QUALIFICATION, ["Introduction", "Qualification", "Next Steps"]),
            (UseCase.OTHER, ["Introduction"]),
        ],
    )
    def test_labels_per_use_case(self, use_case, labels):
        flow = fallback_flow(use_case, "Acme", self.KB_COMPANY, True)
        assert [s.scenario for s in flow] == labels
        assert all(s.user_inputs and s.responses for s in flow)

    @pytest.mark.unit
    def test_sales_company_lists_products(self):
        flow = fallback_flow("sales", "Acme", self.KB_COMPANY, True)
        assert "At Acme, we offer a range of solutions including Rocket, Launchpad." in flow[1].responses[0]

    @pytest.mark.unit
    def test_sales_individual_lists_skills(self):
        flow = fallback_flow("sales", "Jane", {"top_skills": ["Growth"]}, False)
        assert flow[1].responses[0].startswith("Jane specializes in Growth.")

    @pytest.mark.unit
    def test_fallback_has_ids(self):
        flow = fallback_flow(UseCase.SALES, "Acme", self.KB_COMPANY, True)
        assert [s.id for s in flow] == ["scenario-1", "scenario-2", "scenario-3", "scenario-4"]


class TestFlowGenerator:
    """Tests for FlowGenerator.generate()."""

    @pytest.mark.unit
    def test_successful_generation(self, company_profile, mock_llm):
        result = FlowGenerator(llm=mock_llm).generate(
            company_profile, "sales", "Acme", True, "professional"
        )

        assert result.fallback_used is False
        assert result.provider == "deepseek"
        assert [s.scenario for s in result.conversation_flow] == ["Introduction", "Pricing"]
        assert [s.id for s in result.conversation_flow] == ["scenario-1", "scenario-2"]
        assert "representing Acme" in result.system_prompt
        assert result.knowledge_base["company_name"] == "Acme"

        messages = mock_llm.complete.call_args[0][0]
        assert "Acme" in messages[1]["content"]

    @pytest.mark.unit
    def test_accepts_raw_profile_payload(self, mock_llm):
        result = FlowGenerator(llm=mock_llm).generate(
            {"companyProfile": {"company_name": "Acme"}}, "sales", "", True, "friendly"
        )
        assert result.knowledge_base["company_name"] == "Acme"

    @pytest.mark.unit
    @pytest.mark.parametrize("support_actions", [None, ""])
    def test_flat_profile_with_failing_provider_falls_back(self, mock_llm, support_actions):
        mock_llm.complete.side_effect = UpstreamServiceError("down", stage="completion")

        result = FlowGenerator(llm=mock_llm).generate(
            {"companyProfile": {"company_name": "Acme", "support_actions": support_actions}},
            "sales", "", True, "professional",
        )

        assert result.fallback_used is True
        assert "Acme" in result.system_prompt
        assert [s.scenario for s in result.conversation_flow] == [
            "Introduction", "Products/Services", "Pricing", "Call to Action",
        ]

    @pytest.mark.unit
    def test_custom_prompt_used_verbatim(self, company_profile, mock_llm):
        result = FlowGenerator(llm=mock_llm).generate(
            company_profile, "sales", "Acme", True, "calm", custom_prompt="Be a pirate."
        )
        assert result.system_prompt == "Be a pirate."
        assert "Be a pirate." in mock_llm.complete.call_args[0][0][1]["content"]

    @pytest.mark.unit
    def test_missing_profile_raises(self, mock_llm):
        with pytest.raises(ProfileMissingError):
            FlowGenerator(llm=mock_llm).generate(None, "sales", "Acme", True, "calm")
        mock_llm.complete.assert_not_called()

    @pytest.mark.unit
    def test_unparseable_output_falls_back(self, company_profile, mock_llm):
        mock_llm.complete.return_value = "I'd be happy to help!"

        result = FlowGenerator(llm=mock_llm).generate(
            company_profile, "customer-support", "Acme", True, "calm"
        )

        assert result.fallback_used is True
        assert result.error
        assert [s.scenario for s in result.conversation_flow] == [
            "Introduction", "Issue Troubleshooting", "Follow-up",
        ]

    @pytest.mark.unit
    def test_upstream_failure_falls_back(self, company_profile, mock_llm):
        mock_llm.complete.side_effect = UpstreamServiceError("503", stage="completion", status_code=503)

        result = FlowGenerator(llm=mock_llm).generate(
            company_profile, "sales", "Acme", True, "calm"
        )

        assert result.fallback_used is True
        assert result.conversation_flow[0].responses[0] == (
            "Hi, I'm Acme's AI assistant. How can I help you today?"
        )
        assert "Rocket" in result.conversation_flow[1].responses[0]

    @pytest.mark.unit
    def test_no_fallback_raises(self, company_profile, mock_llm):
        mock_llm.complete.return_value = "not json"

        with pytest.raises(FlowParseError):
            FlowGenerator(llm=mock_llm).generate(
                company_profile, "sales", "Acme", True, "calm", allow_fallback=False
            )

    @pytest.mark.unit
    def test_llm_created_lazily(self):
        generator = FlowGenerator()
        assert generator._llm is None

        chain = MagicMock()
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("agent_builder.flow_generator.ProviderChain.from_config", lambda: chain)
            assert generator.llm is chain
