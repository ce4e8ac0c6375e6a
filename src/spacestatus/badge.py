"""Open/closed badge derived from the rendered status document.

Badges are rendered by shields.io static badge URLs, where ``-`` separates
the label, message and colour and ``_`` stands for a space. Literal ``-``
and ``_`` are escaped by doubling them.
"""

from __future__ import annotations

from enum import StrEnum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from spacestatus.exceptions import StatusNotInitializedError
from spacestatus.models.status import StatusDocument

BADGE_BASE_URL = "https://img.shields.io/badge"


class BadgeColor(StrEnum):
    OPEN = "green"
    CLOSED = "red"
    MEMBERS_ONLY = "orange"


class BadgeStyle(StrEnum):
    SIMPLE = "simple"
    FULL = "full"


def sanitize_badge_text(text: str) -> str:
    """Double every ``_`` and ``-`` so they survive the badge URL scheme."""
    return text.replace("_", "__").replace("-", "--")


class Badge(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    message: str
    color: BadgeColor

    @property
    def url(self) -> str:
        label = quote(sanitize_badge_text(self.label), safe="")
        message = quote(sanitize_badge_text(self.message), safe="")
        return f"{BADGE_BASE_URL}/{label}-{message}-{self.color.value}"


def badge_for_status(document: StatusDocument, style: BadgeStyle = BadgeStyle.SIMPLE) -> Badge:
    """Reduce *document* to a two-state (three with members-only) badge.

    Raises :class:`StatusNotInitializedError` when the document has no
    open/closed state, which cannot happen once the aggregator has started.
    """
    state = document.state
    if state is None or state.open is None:
        raise StatusNotInitializedError("Status document has no open/closed state")

    if state.open and state.ext_members_only:
        message, color = "members only", BadgeColor.MEMBERS_ONLY
    elif state.open:
        message, color = "open", BadgeColor.OPEN
    else:
        message, color = "closed", BadgeColor.CLOSED

    if style == BadgeStyle.FULL and state.message:
        message = f"{message}: {state.message}"

    return Badge(label=document.space, message=message, color=color)
