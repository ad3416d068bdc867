# preview.py
"""Step-by-step preview walk over a conversation flow."""

from typing import Dict, List, Optional, Sequence, Tuple

from .models import ConversationScenario


class PreviewTraversal:
    """Manually advanced walk over a snapshot of a conversation flow.

    Starts at the first scenario. Each :meth:`advance` follows the current
    scenario's ``next_scenario_id`` when it names an existing scenario, and
    otherwise moves to the next position. The walk never modifies the flow.

    Attributes:
        current_index: Index of the current scenario, None once finished.
        path: Indices visited so far, in order.
    """

    def __init__(self, flow: Sequence[ConversationScenario]):
        self._flow: Tuple[ConversationScenario, ...] = tuple(flow)
        self._index_by_id: Dict[str, int] = {}
        for index, scenario in enumerate(self._flow):
            if scenario.id and scenario.id not in self._index_by_id:
                self._index_by_id[scenario.id] = index
        self.current_index: Optional[int] = None
        self.path: List[int] = []
        self.restart()

    def __len__(self) -> int:
        return len(self._flow)

    @property
    def finished(self) -> bool:
        return self.current_index is None

    @property
    def current(self) -> Optional[ConversationScenario]:
        if self.current_index is None:
            return None
        return self._flow[self.current_index]

    def restart(self) -> Optional[ConversationScenario]:
        """Go back to the first scenario."""
        self.current_index = 0 if self._flow else None
        self.path = [] if self.current_index is None else [0]
        return self.current

    def next_index(self) -> Optional[int]:
        """Index the next :meth:`advance` would move to, None at the end."""
        if self.current_index is None:
            return None
        scenario = self._flow[self.current_index]
        if scenario.next_scenario_id and scenario.next_scenario_id in self._index_by_id:
            return self._index_by_id[scenario.next_scenario_id]
        following = self.current_index + 1
        return following if following < len(self._flow) else None

    def advance(self) -> Optional[ConversationScenario]:
        """Move to the next scenario.

        Returns:
            The new current scenario, or None when the end of the flow was
            reached (the walk is then finished).
        """
        self.current_index = self.next_index()
        if self.current_index is not None:
            self.path.append(self.current_index)
        return self.current

    def visit_order(self) -> List[int]:
        """Walk a fresh traversal to the end and return the visited indices.

        Stops before revisiting an index, so branch cycles terminate.
        """
        walk = PreviewTraversal(self._flow)
        seen = set(walk.path)
        while True:
            nxt = walk.next_index()
            if nxt is None or nxt in seen:
                return list(walk.path)
            walk.advance()
            seen.add(nxt)
