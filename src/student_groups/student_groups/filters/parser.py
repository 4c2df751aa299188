from __future__ import annotations

from typing import Optional

from ..core.constants import ROLL_STATES_SEPARATOR
from ..core.enums import Comparator
from ..core.exceptions import ConfigurationError

_ALIASES = {"==": Comparator.EQ}


def parse_roll_states(raw: Optional[str]) -> frozenset[str]:
    """Split a stored "late,absent" string into a set of state labels."""

    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(ROLL_STATES_SEPARATOR) if part.strip())


def join_roll_states(states) -> str:
    """Inverse of parse_roll_states, keeping first-seen order."""

    seen: list[str] = []
    for state in states:
        state = str(state).strip()
        if state and state not in seen:
            seen.append(state)
    return ROLL_STATES_SEPARATOR.join(seen)


def parse_comparator(op: Optional[str]) -> Comparator:
    if not isinstance(op, str):
        raise ConfigurationError(f"Unsupported comparison operator: {op!r}")
    token = op.strip()
    if token in _ALIASES:
        return _ALIASES[token]
    try:
        return Comparator(token)
    except ValueError:
        raise ConfigurationError(f"Unsupported comparison operator: {op!r}") from None
