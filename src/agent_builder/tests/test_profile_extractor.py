# src/agent_builder/tests/test_profile_extractor.py
"""
Unit tests for profile extraction.

Tests cover:
- Name derivation from LinkedIn company/person URLs and website hosts
- Company and individual template profiles
- Preference of the form name and email over derived values
- Rejection of a missing URL
"""
import pytest

from agent_builder.exceptions import FormValidationError
from agent_builder.profile_extractor import ProfileExtractor, extract_name_from_url


class TestExtractNameFromUrl:
    """Tests for extract_name_from_url()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.linkedin.com/company/tech-innovations", "Tech Innovations"),
            ("https://www.linkedin.com/company/tech-innovations/about/", "Tech Innovations"),
            ("https://linkedin.com/in/jane-doe?trk=abc", "Jane Doe"),
            ("https://www.acme.io", "Acme"),
            ("https://shop.example.com/products", "Shop"),
            ("not a url", "Unknown"),
        ],
    )
    def test_name_derivation(self, url, expected):
        assert extract_name_from_url(url) == expected


class TestProfileExtractor:
    """Tests for ProfileExtractor.extract()."""

    @pytest.mark.unit
    def test_company_profile(self):
        profile = ProfileExtractor().extract("https://www.acme.io", is_company=True)

        assert profile.is_company is True
        company = profile.company_profile
        assert company.name == "Acme"
        assert len(company.products_services) == 3
        assert company.contact_info.website == "https://www.acme.io"
        assert company.contact_info.email == "contact@company.com"
        assert company.faqs[0].question == "What does Acme do?"

    @pytest.mark.unit
    def test_individual_profile_prefers_form_values(self):
        profile = ProfileExtractor().extract(
            "https://linkedin.com/in/jane-doe",
            is_company=False,
            name="Jane Q. Doe",
            email="jane@example.com",
        )

        individual = profile.individual_profile
        assert individual.name == "Jane Q. Doe"
        assert individual.contact.email == "jane@example.com"
        assert individual.title == "Sales Professional"
        assert individual.core_skills

    @pytest.mark.unit
    @pytest.mark.parametrize("url", ["", "   "])
    def test_missing_url_rejected(self, url):
        with pytest.raises(FormValidationError) as exc_info:
            ProfileExtractor().extract(url, is_company=True)
        assert exc_info.value.field == "url"
