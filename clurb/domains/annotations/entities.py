import math
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

POSITION_MIN = 0.05
POSITION_MAX = 0.95

ICONS = (
    "star", "heart", "fire", "sparkles", "bookmark", "lightbulb",
    "question", "exclaim", "check", "eyes", "brain", "rocket",
)
SHAPES = ("circle", "rounded", "square", "hexagon")
COLORS = ("purple", "blue", "pink", "amber", "emerald", "holographic")

DEFAULT_ICON = "star"
DEFAULT_SHAPE = "rounded"
DEFAULT_COLOR = "purple"

# Цвета заметок до появления стикеров
LEGACY_HEX_COLORS = {
    "#fbbf24": "amber",
    "#f472b6": "pink",
    "#60a5fa": "blue",
    "#34d399": "emerald",
}


def _clamp(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("Position must be a finite number")
    return min(max(value, POSITION_MIN), POSITION_MAX)


def clamp_position(x: float, y: float) -> Tuple[float, float]:
    """Ограничение нормализованной позиции стикера рамками страницы"""
    return _clamp(x), _clamp(y)


def drag_position(
    start: Tuple[float, float],
    delta_px: Tuple[float, float],
    container_px: Tuple[float, float],
    scale: float = 1.0
) -> Tuple[float, float]:
    """Новая позиция после перетаскивания

    Смещение указателя в пикселях делится на размер контейнера при текущем
    масштабе и прибавляется к исходной доле, результат ограничивается
    отрезком [0.05, 0.95] по обеим осям.
    """
    width, height = container_px
    if width <= 0 or height <= 0 or scale <= 0:
        raise ValueError("Container size and scale must be positive")
    x = start[0] + delta_px[0] / width / scale
    y = start[1] + delta_px[1] / height / scale
    return clamp_position(x, y)


class StickerStyle:
    """Оформление стикера, хранится компактной строкой "icon:shape:color"

    parse() принимает и старый формат (hex-цвет заметки): иконка и форма
    берутся по умолчанию, цвет сопоставляется по таблице LEGACY_HEX_COLORS,
    все прочее становится фиолетовым.
    """

    def __init__(self, icon: str = DEFAULT_ICON, shape: str = DEFAULT_SHAPE, color: str = DEFAULT_COLOR):
        self.icon = icon
        self.shape = shape
        self.color = color

    @classmethod
    def parse(cls, raw: Optional[str]) -> "StickerStyle":
        if not raw:
            return cls()
        value = raw.strip()
        if value.startswith("#"):
            return cls(color=LEGACY_HEX_COLORS.get(value.lower(), DEFAULT_COLOR))

        parts = value.split(":")
        if len(parts) != 3:
            return cls(color=value.lower() if value.lower() in COLORS else DEFAULT_COLOR)

        icon, shape, color = (part.strip().lower() for part in parts)
        return cls(
            icon=icon if icon in ICONS else DEFAULT_ICON,
            shape=shape if shape in SHAPES else DEFAULT_SHAPE,
            color=color if color in COLORS else DEFAULT_COLOR
        )

    def encode(self) -> str:
        return f"{self.icon}:{self.shape}:{self.color}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, StickerStyle):
            return False
        return self.encode() == other.encode()

    def __repr__(self) -> str:
        return f"StickerStyle({self.encode()})"


class StickyNote:
    """Стикер: заметка, привязанная к точке страницы"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        author_id: uuid.UUID,
        page_number: int,
        content: str,
        position_x: float,
        position_y: float,
        style: Optional[StickerStyle] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.author_id = author_id
        self.page_number = page_number
        self.content = content
        self.position_x, self.position_y = clamp_position(position_x, position_y)
        self.style = style or StickerStyle()
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    @property
    def position(self) -> Tuple[float, float]:
        return self.position_x, self.position_y

    @classmethod
    def place(
        cls,
        document_id: uuid.UUID,
        author_id: uuid.UUID,
        page_number: int,
        content: str,
        position: Tuple[float, float],
        style: Optional[StickerStyle] = None
    ) -> "StickyNote":
        """Создание стикера в указанной точке (позиция ограничивается рамками страницы)"""
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            author_id=author_id,
            page_number=page_number,
            content=content,
            position_x=position[0],
            position_y=position[1],
            style=style
        )

    def __repr__(self) -> str:
        return f"StickyNote(uuid={self.uuid}, page={self.page_number}, position={self.position})"
