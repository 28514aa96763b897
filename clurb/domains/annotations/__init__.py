from clurb.domains.annotations.entities import (
    StickyNote, StickerStyle, clamp_position, drag_position
)
from clurb.domains.annotations.schemas import AnnotationCreate, PositionUpdate, AnnotationResponse

__all__ = [
    "StickyNote", "StickerStyle", "clamp_position", "drag_position",
    "AnnotationCreate", "PositionUpdate", "AnnotationResponse"
]
