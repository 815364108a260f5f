"""Static content categories and media catalog used to enrich chat answers."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from app.core.v1.exceptions import ValidationException
from app.core.v1.log_manager import LogManager

logger = LogManager(__name__)


@dataclass(frozen=True)
class ContentCategory:
    """A classification label with the phrases the keyword matcher looks for."""
    id: str
    label: str
    triggers: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MediaItem:
    """An image or video that can be attached to an answer."""
    url: str
    title: str
    category: str
    kind: str = "video"
    thumbnail: Optional[str] = None
    description: Optional[str] = None


CONTENT_CATEGORIES: Tuple[ContentCategory, ...] = (
    ContentCategory(
        id="hospital",
        label="แนะนำโรงพยาบาล/วรรณสิริ (Hospital introduction)",
        triggers=(
            "ถามเกี่ยวกับโรงพยาบาลวรรณสิริ",
            "ขอแนะนำโรงพยาบาล",
            "อยากรู้จักโรงพยาบาล",
            "โรงพยาบาลที่ไหนดี",
            "hospital recommendation",
            "introduce hospital",
            "about wanssiri hospital",
            "where is the hospital",
            "병원 추천",
            "医院推荐",
            "病院の紹介",
        ),
    ),
    ContentCategory(
        id="review",
        label="รีวิว/ประสบการณ์ (Reviews and testimonials)",
        triggers=(
            "รีวิว",
            "ประสบการณ์",
            "ผลลัพธ์",
            "review",
            "testimonial",
            "experience",
            "후기",
            "レビュー",
        ),
    ),
    ContentCategory(
        id="procedure",
        label="ขั้นตอน/วิธีการ (Procedure and preparation)",
        triggers=(
            "ขั้นตอน",
            "วิธีการ",
            "เตรียมตัว",
            "procedure",
            "preparation",
            "준비",
            "步骤",
        ),
    ),
)

CATEGORY_IDS = frozenset(category.id for category in CONTENT_CATEGORIES)

MEDIA_CATALOG: Tuple[MediaItem, ...] = (
    MediaItem(
        url="https://youtu.be/a6mrb-A0W9U",
        title="แนะนำโรงพยาบาลวรรณสิริ - ศูนย์ผ่าตัดแปลงเพศ",
        category="hospital",
        kind="video",
        thumbnail="https://img.youtube.com/vi/a6mrb-A0W9U/mqdefault.jpg",
        description="วิดีโอแนะนำโรงพยาบาลวรรณสิริ สถานที่ บรรยากาศ และทีมแพทย์",
    ),
    MediaItem(
        url="https://img.youtube.com/vi/a6mrb-A0W9U/hqdefault.jpg",
        title="โรงพยาบาลวรรณสิริ",
        category="hospital",
        kind="image",
        description="Wansiri Hospital",
    ),
)


def load_catalog_file(path: str) -> List[MediaItem]:
    """
    Read extra media items from a JSON file.

    The file holds a list of objects with ``url``, ``title`` and ``category``
    and optionally ``kind``, ``thumbnail`` and ``description``. Items whose
    category is unknown are rejected.

    Raises:
        ValidationException: If the file is unreadable or an item is invalid.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise ValidationException(f"Cannot read media catalog {path}: {err}") from err

    if not isinstance(raw, list):
        raise ValidationException(f"Media catalog {path} must contain a JSON list")

    items = []
    for position, entry in enumerate(raw):
        try:
            item = MediaItem(
                url=entry["url"],
                title=entry["title"],
                category=entry["category"],
                kind=entry.get("kind", "video"),
                thumbnail=entry.get("thumbnail"),
                description=entry.get("description"),
            )
        except (KeyError, TypeError, AttributeError) as err:
            raise ValidationException(f"Invalid media catalog entry #{position}: {err}") from err

        if item.category not in CATEGORY_IDS:
            raise ValidationException(
                f"Media catalog entry #{position} has unknown category '{item.category}'"
            )
        if item.kind not in ("image", "video"):
            raise ValidationException(
                f"Media catalog entry #{position} has unknown kind '{item.kind}'"
            )
        items.append(item)

    return items


def build_catalog(extra_path: Optional[str] = None) -> Tuple[MediaItem, ...]:
    """Return the built-in catalog, extended by ``extra_path`` when given."""
    if not extra_path:
        return MEDIA_CATALOG

    extra = load_catalog_file(extra_path)
    logger.info("Loaded extra media catalog entries", path=extra_path, count=len(extra))
    return MEDIA_CATALOG + tuple(extra)


def categories_prompt_table(categories: Iterable[ContentCategory] = CONTENT_CATEGORIES) -> str:
    """Render categories as prompt lines: ``- "id": label (trigger, trigger)``."""
    return "\n".join(
        f'- "{category.id}": {category.label} ({", ".join(category.triggers)})'
        for category in categories
    )
