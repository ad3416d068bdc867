# profile_extractor.py
"""Profile extraction for companies and individuals.

Extraction is simulated: the profile is assembled from static templates plus
whatever can be derived from the URL and the form fields. A real scraping or
enrichment service can replace :class:`ProfileExtractor` as long as it returns
a :class:`~agent_builder.models.StructuredProfile`.
"""

from typing import Optional
from urllib.parse import urlparse

from .exceptions import FormValidationError
from .logging_utils import get_logger
from .models import (
    FAQ,
    CompanyContact,
    CompanyProfile,
    ExperienceEntry,
    IndividualContact,
    IndividualProfile,
    ProductService,
    StructuredProfile,
)

LINKEDIN_COMPANY_MARKER = "linkedin.com/company/"
LINKEDIN_PERSON_MARKER = "linkedin.com/in/"


def _title_case_slug(slug: str) -> str:
    words = slug.replace("-", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def extract_name_from_url(url: str) -> str:
    """Derive a display name from a LinkedIn or company website URL.

    ``https://www.linkedin.com/company/tech-innovations`` gives
    ``"Tech Innovations"``; ``https://www.acme.io`` gives ``"Acme"``.
    Returns ``"Unknown"`` when nothing usable can be derived.
    """
    for marker in (LINKEDIN_COMPANY_MARKER, LINKEDIN_PERSON_MARKER):
        if marker in url:
            slug = url.split(marker, 1)[1].split("/")[0].split("?")[0]
            name = _title_case_slug(slug)
            return name or "Unknown"

    hostname = urlparse(url).hostname
    if not hostname:
        return "Unknown"
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    label = hostname.split(".")[0]
    if not label:
        return "Unknown"
    return label[:1].upper() + label[1:]


class ProfileExtractor:
    """Builds a structured profile for a URL.

    Attributes:
        default_company_email: Contact email used when the form has none.
        default_individual_email: Contact email used when the form has none.
    """

    def __init__(
        self,
        default_company_email: str = "contact@company.com",
        default_individual_email: str = "contact@individual.com",
    ):
        self.logger = get_logger(__name__)
        self.default_company_email = default_company_email
        self.default_individual_email = default_individual_email

    def extract(
        self,
        url: str,
        is_company: bool,
        name: str = "",
        email: str = "",
    ) -> StructuredProfile:
        """Extract a profile for the given URL.

        Args:
            url: Company website or personal profile URL.
            is_company: Whether the URL describes a company.
            name: Name from the form, preferred over the URL-derived name.
            email: Email from the form, used as contact email.

        Raises:
            FormValidationError: If no URL was given.
        """
        if not url or not url.strip():
            raise FormValidationError("url", "URL is required")

        url = url.strip()
        self.logger.info(
            "Extracting structured information",
            extra={
                "entity_type": "company" if is_company else "individual",
                "url": url,
                "is_linkedin": "linkedin.com" in url.lower(),
            }
        )

        display_name = name.strip() if name and name.strip() else extract_name_from_url(url)

        if is_company:
            return StructuredProfile(
                company_profile=self._company_profile(url, display_name, email)
            )
        return StructuredProfile(
            individual_profile=self._individual_profile(display_name, email)
        )

    def _company_profile(self, url: str, name: str, email: Optional[str]) -> CompanyProfile:
        return CompanyProfile(
            name=name,
            tagline="AI-Powered solutions for business growth",
            tone_of_voice="Professional, Insightful, Conversational",
            about=(
                "A leading provider of innovative solutions helping businesses "
                "grow and succeed in the digital age. Focused on delivering "
                "exceptional value and measurable results for clients across "
                "various industries."
            ),
            products_services=[
                ProductService(
                    name="AI Sales Agents",
                    description="Conversational AI that understands your products and helps close sales",
                ),
                ProductService(
                    name="Customer Support Bots",
                    description="24/7 automated customer service that feels personal",
                ),
                ProductService(
                    name="Lead Qualification",
                    description="AI-powered lead scoring and qualification",
                ),
            ],
            use_cases=[
                "AI Sales Agents for eCommerce",
                "Support Bots for SaaS onboarding",
                "Lead qualification and nurturing",
            ],
            industries_served=["Technology", "Retail", "Financial Services", "Healthcare"],
            faqs=[
                FAQ(
                    question=f"What does {name} do?",
                    answer=(
                        f"{name} provides AI-powered sales and support automation to help "
                        "businesses increase revenue and customer satisfaction."
                    ),
                ),
                FAQ(
                    question="How do I get started?",
                    answer="You can schedule a demo through our website or contact our sales team directly.",
                ),
                FAQ(
                    question="Can I talk to a real representative?",
                    answer="Yes, you can schedule a call with one of our sales representatives through our website.",
                ),
            ],
            contact_info=CompanyContact(
                website=url,
                schedule_demo="#schedule-demo",
                email=email or self.default_company_email,
            ),
        )

    def _individual_profile(self, name: str, email: Optional[str]) -> IndividualProfile:
        return IndividualProfile(
            name=name,
            title="Sales Professional",
            headline="Helping businesses grow through innovative solutions",
            tone_of_voice="Professional, Friendly, Knowledgeable",
            about=(
                "Experienced sales professional with a passion for helping "
                "businesses leverage technology to achieve their goals. "
                "Specializes in understanding client needs and providing "
                "tailored solutions that deliver measurable results."
            ),
            core_skills=[
                "Consultative Sales",
                "Relationship Building",
                "Solution Design",
                "Customer Success",
            ],
            services_offered=["Sales Consulting", "Business Development Strategy"],
            experience_highlights=[
                ExperienceEntry(
                    title="Senior Sales Manager",
                    company="Tech Innovations Inc.",
                    date="2020 - Present",
                ),
                ExperienceEntry(
                    title="Sales Representative",
                    company="Digital Solutions Co.",
                    date="2018 - 2020",
                ),
            ],
            contact=IndividualContact(
                email=email or self.default_individual_email,
                calendly="#schedule-meeting",
            ),
        )
