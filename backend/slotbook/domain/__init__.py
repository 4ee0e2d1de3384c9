from typing import Any, NamedTuple, Tuple


class Transition(NamedTuple):
    """Result of a domain operation: the new state and the events it raised."""

    state: Any
    events: Tuple[Any, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.events)
