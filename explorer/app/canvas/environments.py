"""Helpers for environment tag badges and the add-environment dialog."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from explorer.app.contracts import EnvironmentTag


def environment_choices(current: Iterable[str], typed: str = "") -> List[Tuple[str, bool]]:
    """Return dialog entries as ``(name, is_new)`` pairs.

    Known environments keep their order; text typed by the user is offered as
    a new environment when it does not already exist.
    """

    choices: List[Tuple[str, bool]] = []
    seen = set()
    for name in current:
        if name in seen:
            continue
        seen.add(name)
        choices.append((name, False))
    candidate = typed.strip()
    if candidate and candidate not in seen:
        choices.append((candidate, True))
    return choices


def badge_initial(tag: EnvironmentTag) -> str:
    return tag.name[:1].upper()


def inherited_from_description(tag: EnvironmentTag) -> Optional[str]:
    """Describe the ancestor a tag is inherited from, if any."""

    if not tag.inherited_from:
        return None
    ancestor = tag.inherited_from[-1]
    return f'Inherited from {ancestor.type} "{ancestor.id}"'
