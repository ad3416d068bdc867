"""Shared fixtures for agent builder tests."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agent_builder.models import (
    CompanyContact,
    CompanyProfile,
    ConversationScenario,
    IndividualContact,
    IndividualProfile,
    ProductService,
    StructuredProfile,
)
from agent_builder.storage import AgentRepository, Base, create_test_engine


@pytest.fixture
def company_profile():
    """Canonical company profile for Acme."""
    return StructuredProfile(
        company_profile=CompanyProfile(
            name="Acme",
            about="Acme builds rockets for small businesses.",
            tone_of_voice="bold, upbeat",
            products_services=[
                ProductService(name="Rocket", description="A small rocket"),
                ProductService(name="Launchpad", description="Launch infrastructure"),
            ],
            industries_served=["Aerospace", "Logistics"],
            contact_info=CompanyContact(website="https://acme.io", email="hi@acme.io"),
        )
    )


@pytest.fixture
def individual_profile():
    """Canonical individual profile for Jane Doe."""
    return StructuredProfile(
        individual_profile=IndividualProfile(
            name="Jane Doe",
            title="Growth Consultant",
            about="Helps startups grow.",
            core_skills=["Growth", "Marketing"],
            services_offered=["Advisory"],
            contact=IndividualContact(email="jane@example.com", website="https://jane.dev"),
        )
    )


@pytest.fixture
def sample_flow():
    """Three-scenario flow with stable ids."""
    return [
        ConversationScenario(
            id="intro",
            scenario="Introduction",
            user_inputs=["Hi"],
            responses=["Hello!"],
            follow_ups=["How can I help?"],
        ),
        ConversationScenario(
            id="pricing",
            scenario="Pricing",
            user_inputs=["How much?"],
            responses=["It depends."],
        ),
        ConversationScenario(
            id="close",
            scenario="Call to Action",
            user_inputs=["Next steps"],
            responses=["Let's book a call."],
        ),
    ]


@pytest.fixture
def mock_llm():
    """Provider chain double answering with a two-scenario flow."""
    llm = MagicMock()
    llm.complete.return_value = (
        '[{"scenario": "Introduction", "userInputs": ["Hi"], "responses": ["Hello from Acme"], '
        '"followUps": ["Anything else?"]}, '
        '{"scenario": "Pricing", "userInputs": ["Price?"], "responses": ["Custom quotes"], '
        '"followUps": []}]'
    )
    llm.last_provider = "deepseek"
    return llm


@pytest_asyncio.fixture
async def repository(tmp_path):
    """Agent repository backed by a throwaway SQLite database."""
    engine = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'agents.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield AgentRepository(session_factory)

    await engine.dispose()
