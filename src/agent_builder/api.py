#!/usr/bin/env python3
"""HTTP API for the voice agent builder.

Endpoints:
    POST /extract-profile              Structured profile for a URL
    POST /generate-conversation-flow   System prompt and conversation flow
    POST /create-agent                 Provision and store a voice agent
    GET  /agents                       Stored agents, newest first
    GET  /health                       Health check

Every failure answers ``{"success": false, "message": ...}``: 400 for
validation errors, 500 for everything else.

Usage:
    uvicorn agent_builder.api:app --host 0.0.0.0 --port 8080
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .agent_service import AgentProvisioningService
from .config import ConfigError, config
from .exceptions import AgentBuilderError, FormValidationError, ProfileMissingError
from .flow_generator import FlowGenerator
from .logging_utils import get_logger, setup_logging
from .models import CreateAgentRequest, ExtractProfileRequest, GenerateFlowRequest
from .profile_extractor import ProfileExtractor
from .storage import AgentRepository, DatabaseManager
from .voice_provisioner import VoiceProvisioner

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def create_app(
    extractor: Optional[ProfileExtractor] = None,
    generator: Optional[FlowGenerator] = None,
    repository: Optional[AgentRepository] = None,
    provisioner: Optional[VoiceProvisioner] = None,
    manage_database: bool = True,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        extractor: Profile extractor. Defaults to the template extractor.
        generator: Flow generator. Defaults to one using the configured providers.
        repository: Agent repository. Defaults to the configured database.
        provisioner: ElevenLabs provisioner. Defaults to the configured key.
        manage_database: Create tables on startup and dispose of the engine
            on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Agent builder API starting...")
        for check, consequence in (
            (config.validate_for_generation, "conversation flows will use templates"),
            (config.validate_for_voice, "agent creation will fail"),
        ):
            try:
                check()
            except ConfigError as e:
                logger.warning(f"{e}; {consequence}")
        if manage_database:
            await DatabaseManager.create_tables()
        logger.info("Agent builder API ready")

        yield

        logger.info("Agent builder API shutting down...")
        app.state.service.provisioner.close()
        if manage_database:
            await DatabaseManager.close()

    app = FastAPI(
        title="Voice Agent Builder",
        description="Profile extraction, conversation flow generation and voice agent provisioning",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.extractor = extractor or ProfileExtractor()
    app.state.generator = generator or FlowGenerator()
    app.state.repository = repository or AgentRepository()
    app.state.service = AgentProvisioningService(
        provisioner=provisioner or VoiceProvisioner(),
        repository=app.state.repository,
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(
            "Invalid request body",
            extra={"path": request.url.path, "errors": str(exc.errors())[:500]}
        )
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError) -> JSONResponse:
        logger.warning(str(exc), extra={"path": request.url.path, "field": exc.field})
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(ProfileMissingError)
    async def profile_missing_handler(request: Request, exc: ProfileMissingError) -> JSONResponse:
        logger.warning(str(exc), extra={"path": request.url.path})
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(AgentBuilderError)
    async def agent_builder_error_handler(request: Request, exc: AgentBuilderError) -> JSONResponse:
        logger.error(
            f"Request failed: {exc}",
            extra={"path": request.url.path, "stage": getattr(exc, "stage", None)}
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error: %s %s - %s",
            request.method,
            request.url.path,
            str(exc),
            exc_info=True,
        )
        message = str(exc) if config.DEBUG else "An unexpected error occurred"
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "agent-builder",
            "version": __version__,
            "llm_configured": bool(config.DEEPSEEK_API_KEY or config.OPENAI_API_KEY),
            "voice_configured": bool(config.ELEVEN_LABS_API_KEY),
        }

    @app.post("/extract-profile")
    async def extract_profile(body: ExtractProfileRequest, request: Request) -> Dict[str, Any]:
        profile = await asyncio.to_thread(
            request.app.state.extractor.extract,
            body.url,
            body.is_company,
            body.name,
            body.email,
        )
        return {"success": True, "data": profile.to_wire()}

    @app.post("/generate-conversation-flow")
    async def generate_conversation_flow(body: GenerateFlowRequest, request: Request) -> Dict[str, Any]:
        result = await asyncio.to_thread(
            request.app.state.generator.generate,
            profile=body.profile_data,
            use_case=body.use_case,
            entity_name=body.name,
            is_company=body.is_company,
            voice_style=body.voice_style,
            custom_prompt=body.custom_prompt,
        )
        return {
            "success": True,
            "data": {
                "systemPrompt": result.system_prompt,
                "conversationFlow": [s.to_wire() for s in result.conversation_flow],
                "fallbackUsed": result.fallback_used,
            },
        }

    @app.post("/create-agent")
    async def create_agent(body: CreateAgentRequest, request: Request) -> Dict[str, Any]:
        record = await request.app.state.service.submit(body)
        return {
            "success": True,
            "message": "Agent created successfully",
            "data": record.model_dump(mode="json"),
        }

    @app.get("/agents")
    async def list_agents(
        request: Request,
        user_id: Optional[str] = Query(default=None, alias="userId"),
    ) -> Dict[str, Any]:
        agents = await request.app.state.repository.list_agents(user_id=user_id)
        return {"success": True, "data": [a.model_dump(mode="json") for a in agents]}

    return app


app = create_app()


def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    setup_logging()
    logger.info("Starting agent builder API on %s:%d", config.API_HOST, config.API_PORT)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    run()
