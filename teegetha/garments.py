"""
Garment resolution: map a roster member onto Printify blueprint/variant ids.

Resolution never raises for a missing catalog entry; it returns None and
the caller drops that line item.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from loguru import logger

from teegetha.config import GarmentCatalog
from teegetha.models import GarmentGroup, Member


KID_HINTS = ('kid', 'child', 'son', 'daughter', 'boy', 'girl', 'toddler', 'infant')
WOMEN_HINTS = ('mom', 'mother', 'wife', 'her ', ' she ', 'sister', 'aunt', 'grandma', 'woman', 'girl')

COLOR_FALLBACKS = ('Black', 'White')
DEFAULT_COLOR = 'Black'

EXPLICIT = 'explicit'
INFERRED = 'inferred'


@dataclass(frozen=True)
class GroupResolution:
    """Garment group plus whether the user chose it or it was guessed from text"""
    group: GarmentGroup
    source: str

    @property
    def is_inferred(self) -> bool:
        return self.source == INFERRED


def classify_member_group(name: Optional[str], description: Optional[str]) -> GarmentGroup:
    """Keyword heuristic over name + description; defaults to MEN."""
    parts = [text.lower() for text in (name, description) if isinstance(text, str)]
    text = ' '.join(parts)

    if any(hint in text for hint in KID_HINTS):
        return GarmentGroup.KIDS
    if any(hint in text for hint in WOMEN_HINTS):
        return GarmentGroup.WOMEN
    return GarmentGroup.MEN


def resolve_group(member: Member) -> GroupResolution:
    if member.shirt_type is not None:
        return GroupResolution(GarmentGroup(member.shirt_type), EXPLICIT)
    return GroupResolution(classify_member_group(member.name, member.description), INFERRED)


def resolve_variant(catalog: GarmentCatalog, group: GarmentGroup, size: str,
                    color: Optional[str] = None) -> Optional[int]:
    """
    Look up the variant id for (group, size, color).

    KIDS ignores color. Other groups try the requested color, then Black,
    then White. Returns None if nothing matches.
    """
    size = getattr(size, 'value', size)

    if group == GarmentGroup.KIDS:
        return catalog.variants_kids.get(size) or None

    table = catalog.variants_women if group == GarmentGroup.WOMEN else catalog.variants_men
    for candidate in (color, *COLOR_FALLBACKS):
        if candidate and candidate in table:
            return table[candidate].get(size) or None
    return None


def resolve_blueprint(catalog: GarmentCatalog, group: GarmentGroup) -> int:
    """Blueprint id for a group; unconfigured groups fall back to the MEN blueprint."""
    if group == GarmentGroup.KIDS and catalog.blueprint_kids:
        return catalog.blueprint_kids
    if group == GarmentGroup.WOMEN and catalog.blueprint_women:
        return catalog.blueprint_women
    return catalog.blueprint_men or 0


def resolve_line(catalog: GarmentCatalog, member: Member,
                 default_color: Optional[str] = None) -> Optional[Tuple[int, int]]:
    """Return (blueprint_id, variant_id) for a member, or None if unresolvable."""
    resolution = resolve_group(member)
    color = member.shirt_color_name or default_color or DEFAULT_COLOR

    blueprint_id = resolve_blueprint(catalog, resolution.group)
    variant_id = resolve_variant(catalog, resolution.group, member.size, color)
    if not blueprint_id or not variant_id:
        logger.warning(
            f"No catalog mapping for member {member.id} "
            f"({resolution.group.value}/{resolution.source}, size={member.size.value}, color={color})"
        )
        return None

    if resolution.is_inferred:
        logger.debug(f"Member {member.id} garment group inferred as {resolution.group.value}")
    return blueprint_id, variant_id
