# exceptions.py
"""Error types raised across the voice agent builder."""

from typing import Optional


class AgentBuilderError(Exception):
    """Base class for all agent builder errors."""

    pass


class FormValidationError(AgentBuilderError):
    """A required form field is missing or invalid.

    Raised before any network call is made.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ProfileMissingError(AgentBuilderError):
    """Flow generation was requested without a structured profile."""

    stage = "profile"


class UpstreamServiceError(AgentBuilderError):
    """An external collaborator failed or returned a non-success response.

    Attributes:
        stage: Which step failed (e.g. "extraction", "completion", "voice").
        status_code: HTTP status code when the failure was an HTTP response.
    """

    def __init__(
        self,
        message: str,
        stage: str = "upstream",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.status_code = status_code


class FlowParseError(AgentBuilderError):
    """Model output could not be parsed into a conversation flow."""

    stage = "parse"

    def __init__(self, message: str, raw_content: str = ""):
        super().__init__(message)
        self.raw_content = raw_content


class VoiceProvisioningError(UpstreamServiceError):
    """The speech vendor could not create the voice agent."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, stage="voice", status_code=status_code)


class EditRejectedError(AgentBuilderError):
    """An editor operation would break a conversation flow invariant."""

    pass


class EditorStateError(AgentBuilderError):
    """An editor operation is not allowed in the editor's current mode."""

    pass
