"""Manipulation session shared by all manipulators during one run.

A session carries the user-supplied properties, the execution root and one
state object per manipulator type. Manipulators register their state in
``init`` and read it back in ``scan`` / ``apply_changes``.

@QK
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Type, TypeVar

from .errors import ManipulationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManipulationState:
    """Base class for per-manipulator configuration.

    Subclasses are read-only; they are built once from user properties and
    never mutated afterwards.
    """

    enabled: bool = False


S = TypeVar("S", bound=ManipulationState)


class ManipulationSession:
    def __init__(
        self,
        user_properties: Optional[Mapping[str, str]] = None,
        execution_root: Optional[Path] = None,
    ) -> None:
        self.user_properties: Dict[str, str] = dict(user_properties or {})
        self.execution_root = execution_root
        self._states: Dict[Type[ManipulationState], ManipulationState] = {}

    def set_state(self, state: ManipulationState) -> None:
        if not isinstance(state, ManipulationState):
            raise TypeError(f"Not a manipulation state: {state!r}")
        logger.debug("Registering %s (enabled=%s)", type(state).__name__, state.enabled)
        self._states[type(state)] = state

    def get_state(self, state_type: Type[S]) -> S:
        try:
            return self._states[state_type]  # type: ignore[return-value]
        except KeyError:
            raise ManipulationError(f"No state registered for {state_type.__name__}") from None

    def is_enabled(self, state_type: Type[ManipulationState]) -> bool:
        state = self._states.get(state_type)
        return state is not None and state.enabled

    def any_state_enabled(self, excluded: Iterable[Type[ManipulationState]] = ()) -> bool:
        """True if any registered state outside *excluded* is enabled."""
        skip = set(excluded)
        return any(s.enabled for t, s in self._states.items() if t not in skip)
