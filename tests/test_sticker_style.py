import uuid

import pytest

from clurb.domains.annotations.entities import (
    StickerStyle, StickyNote, clamp_position, drag_position
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("heart:circle:pink", "heart:circle:pink"),
        ("ROCKET:Hexagon:Holographic", "rocket:hexagon:holographic"),
        ("unicorn:blob:teal", "star:rounded:purple"),
        ("brain:square:teal", "brain:square:purple"),
        ("#F472B6", "star:rounded:pink"),
        ("#60a5fa", "star:rounded:blue"),
        ("#123456", "star:rounded:purple"),
        ("emerald", "star:rounded:emerald"),
        ("sparkles:circle", "star:rounded:purple"),
        ("", "star:rounded:purple"),
        (None, "star:rounded:purple"),
    ],
)
def test_style_parsing_falls_back_to_defaults(raw, expected) -> None:
    assert StickerStyle.parse(raw).encode() == expected


def test_style_equality_uses_encoded_form() -> None:
    assert StickerStyle.parse("fire:square:amber") == StickerStyle("fire", "square", "amber")
    assert StickerStyle.parse("fire:square:amber") != StickerStyle()


def test_clamp_keeps_sticker_inside_page() -> None:
    assert clamp_position(1.3, -0.2) == (0.95, 0.05)
    assert clamp_position(0.4, 0.6) == (0.4, 0.6)


def test_drag_divides_pointer_delta_by_scaled_container() -> None:
    x, y = drag_position((0.5, 0.5), (100, -50), (1000, 500), scale=2.0)
    assert x == pytest.approx(0.55)
    assert y == pytest.approx(0.45)


def test_drag_result_is_clamped() -> None:
    assert drag_position((0.9, 0.1), (500, -500), (1000, 1000)) == (0.95, 0.05)


def test_drag_rejects_empty_container() -> None:
    with pytest.raises(ValueError):
        drag_position((0.5, 0.5), (10, 10), (0, 600))
    with pytest.raises(ValueError):
        drag_position((0.5, 0.5), (10, 10), (800, 600), scale=0)


def test_clamp_rejects_non_finite_positions() -> None:
    with pytest.raises(ValueError):
        clamp_position(float("nan"), 0.5)
    with pytest.raises(ValueError):
        drag_position((0.5, 0.5), (float("inf"), 0), (800, 600))
    with pytest.raises(ValueError):
        StickyNote.place(uuid.uuid4(), uuid.uuid4(), 2, "look", (0.5, float("nan")))


def test_placed_note_is_clamped() -> None:
    note = StickyNote.place(uuid.uuid4(), uuid.uuid4(), 2, "look", (1.3, -0.2))
    assert note.position == (0.95, 0.05)
    assert note.style.encode() == "star:rounded:purple"
