# src/agent_builder/tests/test_profile_normalizer.py
"""
Unit tests for profile normalization.

Tests cover:
- Nested (original) company and individual shapes
- Flat (normalized) shapes with originalData, flat fields taking precedence
- Inference of the variant from the wrapper key
- Bare entity dicts and StructuredProfile passthrough
- Rejection of malformed payloads
- Blank optional list fields in the flat shape
"""
import pytest

from agent_builder.exceptions import FormValidationError
from agent_builder.profile_normalizer import normalize_profile


class TestNestedShape:
    """Tests for the nested camelCase shape."""

    @pytest.mark.unit
    def test_company(self):
        profile = normalize_profile({
            "companyProfile": {
                "name": "Acme",
                "toneOfVoice": "bold",
                "productsServices": [{"name": "Rocket", "description": "Small rocket"}],
                "industriesServed": ["Aerospace"],
                "contactInfo": {"website": "https://acme.io"},
            }
        }, is_company=True)

        company = profile.company_profile
        assert company.name == "Acme"
        assert company.tone_of_voice == "bold"
        assert company.products_services[0].name == "Rocket"
        assert company.industries_served == ["Aerospace"]
        assert company.contact_info.website == "https://acme.io"

    @pytest.mark.unit
    def test_individual_inferred_from_wrapper(self):
        profile = normalize_profile({
            "individualProfile": {"name": "Jane", "title": "Consultant", "coreSkills": ["Growth"]}
        })
        assert profile.is_company is False
        assert profile.individual_profile.core_skills == ["Growth"]


class TestFlatShape:
    """Tests for the flat snake_case shape."""

    @pytest.mark.unit
    def test_company_flat_fields_override_original_data(self):
        profile = normalize_profile({
            "companyProfile": {
                "company_name": "Acme Corp",
                "about_us": "We build rockets.",
                "voice_tone": "friendly",
                "services_or_products": ["Rocket", {"name": "Launchpad", "description": "Pads"}],
                "use_case": "Sales calls",
                "call_to_action": "Book a demo",
                "originalData": {
                    "name": "Old Acme",
                    "about": "Old text",
                    "productsServices": [{"name": "Legacy"}],
                    "industriesServed": ["Aerospace"],
                },
            }
        }, is_company=True)

        company = profile.company_profile
        assert company.name == "Acme Corp"
        assert company.about == "We build rockets."
        assert company.tone_of_voice == "friendly"
        assert [p.name for p in company.products_services] == ["Rocket", "Launchpad"]
        assert company.industries_served == ["Aerospace"]
        assert company.use_cases == ["Sales calls"]
        assert company.call_to_action == "Book a demo"

    @pytest.mark.unit
    def test_company_original_data_only(self):
        profile = normalize_profile({
            "companyProfile": {"originalData": {"name": "Acme", "productsServices": [{"name": "Rocket"}]}}
        })
        assert profile.company_profile.name == "Acme"
        assert profile.company_profile.products_services[0].name == "Rocket"

    @pytest.mark.unit
    def test_individual_flat_fields(self):
        profile = normalize_profile({
            "individualProfile": {
                "full_name": "Jane Doe",
                "bio": "Helps startups grow.",
                "profession_or_role": "Growth Consultant",
                "skills": ["Growth", "Marketing"],
                "services": ["Advisory"],
            }
        }, is_company=False)

        individual = profile.individual_profile
        assert individual.name == "Jane Doe"
        assert individual.about == "Helps startups grow."
        assert individual.title == "Growth Consultant"
        assert individual.core_skills == ["Growth", "Marketing"]
        assert individual.services_offered == ["Advisory"]


class TestEdgeCases:
    """Tests for passthrough, bare dicts and malformed input."""

    @pytest.mark.unit
    def test_structured_profile_passthrough(self, company_profile):
        assert normalize_profile(company_profile) is company_profile

    @pytest.mark.unit
    def test_bare_entity_dict(self):
        profile = normalize_profile({"company_name": "Acme"}, is_company=True)
        assert profile.company_profile.name == "Acme"

    @pytest.mark.unit
    def test_missing_variant_uses_empty_profile(self):
        profile = normalize_profile({"individualProfile": {"name": "Jane"}}, is_company=True)
        assert profile.company_profile.name == ""

    @pytest.mark.unit
    def test_unknown_variant_rejected(self):
        with pytest.raises(FormValidationError):
            normalize_profile({"name": "Acme"})

    @pytest.mark.unit
    def test_non_mapping_rejected(self):
        with pytest.raises(FormValidationError):
            normalize_profile(["not", "a", "dict"], is_company=True)

    @pytest.mark.unit
    def test_invalid_field_type_rejected(self):
        with pytest.raises(FormValidationError):
            normalize_profile({"companyProfile": {"faqs": "not a list"}}, is_company=True)

    @pytest.mark.unit
    @pytest.mark.parametrize("blank", [None, "", []])
    def test_blank_support_actions_become_empty_list(self, blank):
        company = normalize_profile(
            {"companyProfile": {"company_name": "Acme", "support_actions": blank}}, is_company=True
        ).company_profile
        individual = normalize_profile(
            {"individualProfile": {"full_name": "Jane", "support_actions": blank}}, is_company=False
        ).individual_profile

        assert company.name == "Acme"
        assert company.support_actions == []
        assert individual.support_actions == []

    @pytest.mark.unit
    def test_support_actions_from_string_or_original_data(self):
        flat = normalize_profile(
            {"companyProfile": {"support_actions": "Refunds, Returns"}}, is_company=True
        )
        nested = normalize_profile(
            {"companyProfile": {"originalData": {"supportActions": ["Refunds"]}}}, is_company=True
        )

        assert flat.company_profile.support_actions == ["Refunds", "Returns"]
        assert nested.company_profile.support_actions == ["Refunds"]
