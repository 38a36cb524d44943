"""Position list generation.

Positions paginate the whole reading order at a fixed granularity of one
position per 1024 characters, so readers can track progress without
laying the publication out.

Two passes:
1. Measure every reading-order resource (whole read). Each resource gets
   ceil(chars / 1024) positions, at least one even when empty. A resource
   that cannot be read is logged and left out of the list.
2. Emit positions in reading order. ``position`` counts from 1 across the
   publication; ``progression`` runs 0..1 within a resource;
   ``totalProgression`` is the share of all measured characters that come
   before the position, capped at 1.0.

Characters are counted as the byte length of the resource content.
"""

from dataclasses import dataclass
from typing import Any

from folio.logging import get_logger
from folio.publication.reader import Publication, ResourceError
from folio.services.hrefs import relative_href

logger = get_logger(__name__)

CHARS_PER_POSITION = 1024


@dataclass(frozen=True)
class ResourceInfo:
    href: str
    media_type: str | None
    char_count: int
    position_count: int


@dataclass(frozen=True)
class Position:
    href: str
    position: int
    progression: float
    total_progression: float
    media_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"href": self.href}
        if self.media_type:
            item["type"] = self.media_type
        item["locations"] = {
            "position": self.position,
            "progression": self.progression,
            "totalProgression": self.total_progression,
        }
        return item


def position_count_for(char_count: int) -> int:
    """Number of positions a resource of char_count characters spans (>= 1)."""
    return max(1, -(-char_count // CHARS_PER_POSITION))


def measure_reading_order(publication: Publication) -> list[ResourceInfo]:
    """First pass: size every readable reading-order resource."""
    infos: list[ResourceInfo] = []
    for link in publication.manifest.reading_order:
        try:
            data = publication.get(link).read()
        except ResourceError as exc:
            logger.warning("positions.resource_skipped", href=link.href, error=str(exc))
            continue

        char_count = len(data)
        infos.append(
            ResourceInfo(
                href=link.href,
                media_type=link.media_type,
                char_count=char_count,
                position_count=position_count_for(char_count),
            )
        )
    return infos


def compute_positions(infos: list[ResourceInfo]) -> list[Position]:
    """Second pass: lay out positions over measured resources."""
    total_chars = sum(info.char_count for info in infos)
    positions: list[Position] = []
    position_counter = 1
    cumulative_chars = 0

    for info in infos:
        n = info.position_count
        href = relative_href(info.href)

        for i in range(n):
            progression = i / (n - 1) if n > 1 else 0.0

            total_progression = 0.0
            if total_chars > 0:
                chars_at_position = cumulative_chars + (i * info.char_count // n)
                chars_at_position = min(max(chars_at_position, 0), total_chars)
                total_progression = min(chars_at_position / total_chars, 1.0)

            positions.append(
                Position(
                    href=href,
                    position=position_counter + i,
                    progression=progression,
                    total_progression=total_progression,
                    media_type=info.media_type,
                )
            )

        cumulative_chars += info.char_count
        position_counter += n

    return positions


def build_positions(publication: Publication) -> list[Position]:
    """Build the position list for a publication's reading order."""
    return compute_positions(measure_reading_order(publication))


def positions_document(positions: list[Position]) -> dict[str, Any]:
    """The readium/positions.json document."""
    return {
        "total": len(positions),
        "positions": [p.to_dict() for p in positions],
    }
