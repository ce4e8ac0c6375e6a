from __future__ import annotations

import pytest

from spacestatus.badge import BadgeColor, BadgeStyle, badge_for_status, sanitize_badge_text
from spacestatus.exceptions import StatusNotInitializedError
from spacestatus.makerspace import base_status
from spacestatus.models.status import State


def test_sanitize_doubles_underscores_and_hyphens() -> None:
    assert sanitize_badge_text("maker_space-ncl") == "maker__space--ncl"
    assert sanitize_badge_text("plain text") == "plain text"


def test_closed_badge_is_red() -> None:
    badge = badge_for_status(base_status())

    assert badge.label == "Maker Space"
    assert badge.message == "closed"
    assert badge.color == BadgeColor.CLOSED
    assert badge.url == "https://img.shields.io/badge/Maker%20Space-closed-red"


def test_open_badge_is_green() -> None:
    document = base_status()
    document.state = State(open=True, message="Come on in")

    simple = badge_for_status(document, BadgeStyle.SIMPLE)
    full = badge_for_status(document, BadgeStyle.FULL)

    assert simple.color == BadgeColor.OPEN
    assert simple.message == "open"
    assert full.message == "open: Come on in"


def test_members_only_badge_uses_third_color() -> None:
    document = base_status()
    document.state = State(open=True, ext_members_only=True)

    badge = badge_for_status(document)

    assert badge.color == BadgeColor.MEMBERS_ONLY
    assert badge.message == "members only"


def test_members_only_ignored_when_closed() -> None:
    document = base_status()
    document.state = State(open=False, ext_members_only=True)

    assert badge_for_status(document).color == BadgeColor.CLOSED


def test_badge_url_escapes_label_punctuation() -> None:
    document = base_status()
    document.space = "maker_space-ncl"

    badge = badge_for_status(document)

    assert badge.url.startswith("https://img.shields.io/badge/maker__space--ncl-closed-")


def test_badge_without_state_is_an_invariant_violation() -> None:
    document = base_status()
    document.state = None

    with pytest.raises(StatusNotInitializedError):
        badge_for_status(document)
