"""
Voice Agent Builder Test Package.

This package contains unit tests for the agent builder modules.

Test categories:
- test_config.py: Configuration and environment variable loading
- test_logging_utils.py: Structured and human-readable log formatting
- test_models.py: Pydantic model validation and wire format
- test_profile_normalizer.py: Mapping both profile shapes onto the canonical model
- test_profile_extractor.py: Template extraction and URL name derivation
- test_llm_client.py: Chat-completion client and provider chain
- test_prompt_builder.py: System prompt, knowledge base and flow prompt
- test_flow_generator.py: Response parsing, fallback flows and generation
- test_preview.py: Preview traversal over a flow
- test_flow_editor.py: Editing operations, undo, regenerate and preview modes
- test_voice_provisioner.py: ElevenLabs agent creation
- test_storage.py: Agent record persistence
- test_agent_service.py: Submission pipeline
- test_agent_form.py: Form session orchestration
- test_api.py: HTTP endpoints
"""

__all__ = []
