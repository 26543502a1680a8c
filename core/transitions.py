# core/transitions.py
from dataclasses import dataclass
from typing import Optional

from .models import ERROR, IN_STOCK


@dataclass(frozen=True)
class Transition:
    previous: Optional[str]
    current: str
    notify: bool
    persist: bool


def decide_transition(previous: Optional[str], current: str) -> Transition:
    """
    Decide what to do with a freshly observed status.
    - ERROR never changes anything; the previous status is kept.
    - Entering IN_STOCK from anything else (including never seen) notifies.
    - Any other change of a valid status is persisted silently.
    """
    if current == ERROR:
        return Transition(previous, current, notify=False, persist=False)

    if current == IN_STOCK and previous != IN_STOCK:
        return Transition(previous, current, notify=True, persist=True)

    return Transition(previous, current, notify=False, persist=previous != current)
