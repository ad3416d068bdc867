# flow_editor.py
"""Conversation flow editor.

Editing operations are pure functions over an immutable :class:`EditorState`;
:class:`ConversationFlowEditor` keeps the current state, a history for undo,
the editor mode and the preview walk. Operations that would break a flow
invariant raise :class:`~agent_builder.exceptions.EditRejectedError` and
leave the state unchanged.
"""

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .exceptions import EditorStateError, EditRejectedError
from .flow_generator import FlowGenerator, assign_positional_ids
from .logging_utils import get_logger
from .models import (
    ConversationScenario,
    GenerationResult,
    ScenarioKind,
    StructuredProfile,
    UseCase,
    VoiceStyle,
)
from .preview import PreviewTraversal

logger = get_logger(__name__)

SCALAR_FIELDS = {
    "scenario": "scenario",
    "nextScenarioId": "next_scenario_id",
    "next_scenario_id": "next_scenario_id",
    "conditions": "conditions",
}

ARRAY_FIELDS = {
    "userInputs": "user_inputs",
    "user_inputs": "user_inputs",
    "responses": "responses",
    "followUps": "follow_ups",
    "follow_ups": "follow_ups",
}

ITEM_LABELS = {
    "user_inputs": "user input",
    "responses": "response",
    "follow_ups": "follow-up",
}


class EditorMode(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    PREVIEWING = "previewing"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class EditorState:
    """Snapshot of the flow being edited, the selection and the prompt it came with."""

    flow: Tuple[ConversationScenario, ...] = ()
    selected: int = 0
    system_prompt: str = ""


def new_scenario_id() -> str:
    return f"scenario-{uuid.uuid4().hex[:12]}"


def placeholder_scenario(scenario_id: Optional[str] = None) -> ConversationScenario:
    return ConversationScenario(
        id=scenario_id or new_scenario_id(),
        scenario="New Scenario",
        user_inputs=["Sample question 1", "Sample question 2"],
        responses=["Sample response"],
        follow_ups=["Sample follow-up question"],
    )


def _check_index(state: EditorState, index: int) -> None:
    if not 0 <= index < len(state.flow):
        raise EditRejectedError(f"No scenario at position {index}")


def _scalar_field(field: str) -> str:
    try:
        return SCALAR_FIELDS[field]
    except KeyError:
        raise EditRejectedError(f"Unknown scenario field: {field}") from None


def _array_field(field: str) -> str:
    try:
        return ARRAY_FIELDS[field]
    except KeyError:
        raise EditRejectedError(f"Unknown list field: {field}") from None


def _replace_scenario(
    state: EditorState, index: int, **update: Any
) -> EditorState:
    flow = list(state.flow)
    flow[index] = flow[index].model_copy(update=update)
    return replace(state, flow=tuple(flow))


def add_scenario(state: EditorState, scenario_id: Optional[str] = None) -> EditorState:
    """Append a placeholder scenario and select it."""
    flow = state.flow + (placeholder_scenario(scenario_id),)
    return replace(state, flow=flow, selected=len(flow) - 1)


def delete_scenario(state: EditorState, index: int) -> EditorState:
    """Remove a scenario; the last remaining scenario cannot be deleted.

    The selection stays at the same position, clamped to the new bounds, and
    shifts down by one when an earlier scenario was removed.
    """
    _check_index(state, index)
    if len(state.flow) <= 1:
        raise EditRejectedError(
            "Cannot delete: you must have at least one scenario in your conversation flow."
        )

    flow = state.flow[:index] + state.flow[index + 1:]
    selected = state.selected
    if selected > index:
        selected -= 1
    selected = min(selected, len(flow) - 1)
    return replace(state, flow=flow, selected=selected)


def move_scenario(
    state: EditorState, index: int, direction: Union[Direction, str]
) -> EditorState:
    """Swap a scenario with its neighbour; no-op at either boundary."""
    _check_index(state, index)
    direction = Direction(direction)
    target = index - 1 if direction == Direction.UP else index + 1
    if not 0 <= target < len(state.flow):
        return state

    flow = list(state.flow)
    flow[index], flow[target] = flow[target], flow[index]
    return replace(state, flow=tuple(flow), selected=target)


def update_scenario_field(
    state: EditorState, index: int, field: str, value: Union[str, Sequence[str], None]
) -> EditorState:
    """Replace one scalar or list field of a scenario."""
    _check_index(state, index)

    if field in ARRAY_FIELDS:
        name = ARRAY_FIELDS[field]
        if isinstance(value, str) or value is None:
            raise EditRejectedError(f"{field} must be a list of strings")
        items = [str(item) for item in value]
        if not items:
            raise EditRejectedError(
                f"Cannot delete: you must have at least one {ITEM_LABELS[name]} in your scenario."
            )
        return _replace_scenario(state, index, **{name: items})

    name = _scalar_field(field)
    if value is not None and not isinstance(value, str):
        raise EditRejectedError(f"{field} must be a string")
    if name in ("next_scenario_id", "conditions"):
        value = value.strip() if value else None
        value = value or None
    else:
        value = value or ""
    return _replace_scenario(state, index, **{name: value})


def add_array_item(
    state: EditorState, index: int, field: str, value: str = ""
) -> EditorState:
    _check_index(state, index)
    name = _array_field(field)
    items = list(getattr(state.flow[index], name)) + [value]
    return _replace_scenario(state, index, **{name: items})


def update_array_item(
    state: EditorState, index: int, field: str, item_index: int, value: str
) -> EditorState:
    _check_index(state, index)
    name = _array_field(field)
    items = list(getattr(state.flow[index], name))
    if not 0 <= item_index < len(items):
        raise EditRejectedError(f"No {ITEM_LABELS[name]} at position {item_index}")
    items[item_index] = value
    return _replace_scenario(state, index, **{name: items})


def remove_array_item(
    state: EditorState, index: int, field: str, item_index: int
) -> EditorState:
    """Remove one list item; the last remaining item cannot be removed."""
    _check_index(state, index)
    name = _array_field(field)
    items = list(getattr(state.flow[index], name))
    if not 0 <= item_index < len(items):
        raise EditRejectedError(f"No {ITEM_LABELS[name]} at position {item_index}")
    if len(items) <= 1:
        raise EditRejectedError(
            f"Cannot delete: you must have at least one {ITEM_LABELS[name]} in your scenario."
        )
    del items[item_index]
    return _replace_scenario(state, index, **{name: items})


def select_scenario(state: EditorState, index: int) -> EditorState:
    _check_index(state, index)
    return replace(state, selected=index)


def classify_scenario(scenario: ConversationScenario) -> ScenarioKind:
    """Pick the list marker for a scenario; the first matching rule wins."""
    label = (scenario.scenario or "").lower()
    if "intro" in label or "greeting" in label:
        return ScenarioKind.INTRO
    if any("?" in text for text in scenario.user_inputs) or "question" in label:
        return ScenarioKind.QUESTION
    if scenario.next_scenario_id or scenario.conditions:
        return ScenarioKind.DECISION
    return ScenarioKind.GENERAL


class ConversationFlowEditor:
    """Editing session over one conversation flow.

    The editor works on its own copy of the flow and hands changes back to
    the owner through ``on_save``.

    Args:
        profile: Profile the flow is generated from.
        use_case: Use case passed to the generator.
        entity_name: Name from the form.
        is_company: Which profile variant is in use.
        voice_style: Voice persona passed to the generator.
        generator: FlowGenerator used for (re)generation.
        on_save: Called with a copy of the flow on :meth:`save`.
    """

    def __init__(
        self,
        profile: Optional[StructuredProfile],
        use_case: Union[UseCase, str],
        entity_name: str,
        is_company: bool,
        voice_style: Union[VoiceStyle, str],
        generator: Optional[FlowGenerator] = None,
        on_save: Optional[Callable[[List[ConversationScenario]], None]] = None,
    ):
        self.profile = profile
        self.use_case = UseCase(use_case)
        self.entity_name = entity_name
        self.is_company = is_company
        self.voice_style = VoiceStyle(voice_style)
        self.generator = generator or FlowGenerator()
        self.on_save = on_save

        self._state = EditorState()
        self._history: List[EditorState] = []
        self._mode = EditorMode.IDLE
        self._preview: Optional[PreviewTraversal] = None

    # -- read access ---------------------------------------------------------

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def flow(self) -> List[ConversationScenario]:
        return list(self._state.flow)

    @property
    def system_prompt(self) -> str:
        return self._state.system_prompt

    @property
    def selected_index(self) -> int:
        return self._state.selected

    @property
    def selected_scenario(self) -> Optional[ConversationScenario]:
        if not self._state.flow:
            return None
        return self._state.flow[self._state.selected]

    @property
    def preview(self) -> Optional[PreviewTraversal]:
        return self._preview

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def scenario_kinds(self) -> List[ScenarioKind]:
        return [classify_scenario(s) for s in self._state.flow]

    # -- lifecycle -------------------------------------------------------------

    def open(
        self, initial_flow: Optional[Sequence[ConversationScenario]] = None
    ) -> List[ConversationScenario]:
        """Start editing a supplied flow, or a freshly generated one."""
        if initial_flow:
            self.load(initial_flow)
        else:
            self.regenerate()
        return self.flow

    def load(self, flow: Sequence[ConversationScenario]) -> None:
        """Replace the flow with a previously saved one and start editing."""
        if not flow:
            raise EditRejectedError("Cannot load an empty conversation flow")
        self._history.clear()
        self._state = replace(self._state, flow=tuple(assign_positional_ids(flow)), selected=0)
        self._mode = EditorMode.EDITING

    def _apply(self, operation: Callable[..., EditorState], *args: Any) -> EditorState:
        if self._mode == EditorMode.PREVIEWING:
            raise EditorStateError("Leave the preview before editing the flow")
        if self._mode == EditorMode.IDLE:
            raise EditorStateError("No conversation flow loaded")
        new_state = operation(self._state, *args)
        if new_state is not self._state:
            self._history.append(self._state)
            self._state = new_state
        return new_state

    # -- editing operations ----------------------------------------------------

    def add_scenario(self) -> ConversationScenario:
        self._apply(add_scenario)
        return self._state.flow[-1]

    def delete_scenario(self, index: int) -> None:
        self._apply(delete_scenario, index)

    def move_scenario(self, index: int, direction: Union[Direction, str]) -> None:
        self._apply(move_scenario, index, direction)

    def update_scenario_field(
        self, index: int, field: str, value: Union[str, Sequence[str], None]
    ) -> None:
        self._apply(update_scenario_field, index, field, value)

    def add_array_item(self, index: int, field: str, value: str = "") -> None:
        self._apply(add_array_item, index, field, value)

    def update_array_item(self, index: int, field: str, item_index: int, value: str) -> None:
        self._apply(update_array_item, index, field, item_index, value)

    def remove_array_item(self, index: int, field: str, item_index: int) -> None:
        self._apply(remove_array_item, index, field, item_index)

    def select(self, index: int) -> None:
        self._apply(select_scenario, index)

    def undo(self) -> bool:
        """Restore the state before the last operation."""
        if self._mode == EditorMode.PREVIEWING:
            raise EditorStateError("Leave the preview before editing the flow")
        if not self._history:
            return False
        self._state = self._history.pop()
        return True

    def save(self) -> List[ConversationScenario]:
        """Hand a copy of the current flow to the owner."""
        flow = [s.model_copy(deep=True) for s in self._state.flow]
        if self.on_save is not None:
            self.on_save(flow)
        logger.info("Conversation flow saved", extra={"scenario_count": len(flow)})
        return flow

    def regenerate(self, custom_prompt: Optional[str] = None) -> GenerationResult:
        """Replace the flow with a newly generated one.

        On failure the current flow is left untouched and the error raised.

        Raises:
            EditRejectedError: If ``custom_prompt`` was given but is blank.
            EditorStateError: While previewing.
        """
        if self._mode == EditorMode.PREVIEWING:
            raise EditorStateError("Leave the preview before regenerating the flow")
        if custom_prompt is not None and not custom_prompt.strip():
            raise EditRejectedError("Please enter a custom prompt.")

        result = self.generator.generate(
            profile=self.profile,
            use_case=self.use_case,
            entity_name=self.entity_name,
            is_company=self.is_company,
            voice_style=self.voice_style,
            custom_prompt=custom_prompt,
            allow_fallback=False,
        )

        flow = tuple(assign_positional_ids(result.conversation_flow, replace_existing=True))
        if self._state.flow:
            self._history.append(self._state)
        self._state = EditorState(flow=flow, selected=0, system_prompt=result.system_prompt)
        self._mode = EditorMode.EDITING
        return result

    # -- preview ---------------------------------------------------------------

    def start_preview(self) -> ConversationScenario:
        if self._mode != EditorMode.EDITING:
            raise EditorStateError("Preview is only available while editing")
        self._preview = PreviewTraversal(self._state.flow)
        self._mode = EditorMode.PREVIEWING
        return self._preview.current

    def advance_preview(self) -> Optional[ConversationScenario]:
        """Continue the preview; returns None and leaves preview at the end."""
        if self._mode != EditorMode.PREVIEWING or self._preview is None:
            raise EditorStateError("Preview has not been started")
        scenario = self._preview.advance()
        if scenario is None:
            logger.debug("End of conversation flow reached in preview")
            self.stop_preview()
        return scenario

    def restart_preview(self) -> ConversationScenario:
        if self._mode != EditorMode.PREVIEWING or self._preview is None:
            raise EditorStateError("Preview has not been started")
        return self._preview.restart()

    def stop_preview(self) -> None:
        if self._mode == EditorMode.PREVIEWING:
            self._mode = EditorMode.EDITING
        self._preview = None
