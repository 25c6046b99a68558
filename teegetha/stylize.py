"""
Stylization pipeline: turns photos into shirt artwork.

The family front is stylized once from the group photo. Member backs are
derived from that front when detection on the stylized art lines up with
the roster; otherwise each member is stylized on its own. Every artwork
finishes with background removal and a name overlay.
"""

from typing import Callable, Dict, Optional

from loguru import logger

from teegetha.errors import (
    ConfigurationError, MemberBusyError, TeeGethaError,
    ValidationError, VendorAuthorizationError, VendorTransientError
)
from teegetha.geometry import crop_to_box, encode_data_url, is_data_url, overlay_text, strip_neutral_background
from teegetha.models import Member, OrderDraft, get_style


FAMILY_FRONT_DESCRIPTION = (
    "A stylized family portrait illustration of the whole family, designed for the front of a t-shirt. "
    "Show exactly the people from the supplied photo and do not add any new or extra characters."
)
DEFAULT_FAMILY_LABEL = "Our Family"
DEFAULT_PROMPT_LABEL = "our family shirt design"


def member_description(member: Member, family_label: str) -> str:
    """Prompt for one member's back artwork, tied to the family front."""
    label = (family_label or "").strip() or DEFAULT_PROMPT_LABEL
    base = member.description or f"A portrait of {member.first_name}"
    return (
        f"{base}. Match the art style, clothing, and overall look of the family front illustration "
        f'for "{label}". Only show this one person, no extra characters or additional people. '
        "Use a simple, clear background suitable for the back of a t-shirt."
    )


class StylizationPipeline:
    """Runs vision-vendor calls and post-processing against an OrderDraft."""

    def __init__(self, vision, remover=None, fetch: Optional[Callable[[str], bytes]] = None):
        self._vision = vision
        self.remover = remover
        self.fetch = fetch

    @property
    def vision(self):
        if self._vision is None:
            raise ConfigurationError(
                "Missing Gemini API key. Set GEMINI_API_KEY in .env.",
                suggestions=["Set GEMINI_API_KEY or enable TEST_MODE for offline runs"]
            )
        return self._vision

    def remove_background(self, image: str) -> str:
        """
        Background-free version of ``image``.

        Falls back to the local neutral-background heuristic when the
        removal service is missing or fails. Authorization errors propagate.
        """
        if self.remover is not None:
            try:
                return self.remover.remove_background(image)
            except VendorAuthorizationError:
                raise
            except (VendorTransientError, ConfigurationError) as e:
                logger.warning(f"Background removal failed, using local heuristic: {e}")
        return encode_data_url(strip_neutral_background(image, self.fetch), 'image/png')

    def label(self, image: str, text: str) -> str:
        return encode_data_url(overlay_text(image, text, self.fetch), 'image/png')

    def _finish(self, image: str, text: str) -> str:
        return self.label(self.remove_background(image), text)

    def generate_family_front(self, draft: OrderDraft) -> str:
        if not draft.group_photo:
            raise ValidationError("Upload a group photo before generating the family design")

        style = get_style(draft.family_front_style_id or draft.selected_style_id)
        raw = self.vision.generate_stylized(draft.group_photo, FAMILY_FRONT_DESCRIPTION, style.prompt_modifier)

        self.try_derive_backs(draft, raw)

        label = (draft.family_label or "").strip() or DEFAULT_FAMILY_LABEL
        draft.family_front_image = self._finish(raw, label)
        logger.info(f"Generated family front artwork in style {style.id}")
        return draft.family_front_image

    def try_derive_backs(self, draft: OrderDraft, stylized_front: str) -> bool:
        """
        Cut each member's back artwork out of the stylized family front.

        Only runs when the front is inline data and detection finds exactly
        one valid box per roster member. Returns False to signal that
        per-member generation is still needed.
        """
        if not is_data_url(stylized_front):
            return False

        try:
            people = self.vision.analyze_group_photo(stylized_front)
        except VendorAuthorizationError:
            raise
        except TeeGethaError as e:
            logger.warning(f"Detection on stylized family failed, falling back: {e}")
            return False

        if not people or len(people) != len(draft.members):
            logger.warning(
                f"Stylized family shows {len(people)} people for {len(draft.members)} members; "
                "falling back to per-member designs"
            )
            return False
        if not all(person.has_valid_box for person in people):
            logger.warning("Stylized family detection returned invalid boxes; falling back to per-member designs")
            return False

        for member, person in zip(draft.members, people):
            try:
                cropped = encode_data_url(crop_to_box(stylized_front, person.box_2d), 'image/jpeg')
                member.generated_image = self._finish(cropped, member.first_name)
            except VendorAuthorizationError:
                raise
            except TeeGethaError as e:
                logger.error(f"Failed to derive back from stylized family for member {member.id}: {e}")
        return True

    def generate_member_design(self, draft: OrderDraft, member: Member) -> str:
        if member.is_generating:
            raise MemberBusyError(member.id)

        style = get_style(member.style_id or draft.selected_style_id)
        member.is_generating = True
        try:
            raw = self.vision.generate_stylized(
                member.original_image or draft.group_photo,
                member_description(member, draft.family_label),
                style.prompt_modifier,
            )
            member.generated_image = self._finish(raw, member.first_name)
            logger.info(f"Generated design for member {member.id} in style {style.id}")
            return member.generated_image
        finally:
            member.is_generating = False

    def generate_all(self, draft: OrderDraft) -> Dict[str, str]:
        """
        Generate the family front (if needed) then every missing member design,
        one at a time. Returns failures keyed by member id (``family-front``
        for the front); authorization and configuration errors abort the run.
        """
        failures = {}
        if draft.group_photo and not draft.family_front_image:
            try:
                self.generate_family_front(draft)
            except (VendorAuthorizationError, ConfigurationError):
                raise
            except TeeGethaError as e:
                logger.error(f"Failed to generate family front image: {e}")
                failures['family-front'] = e.message

        for member in list(draft.members):
            if member.generated_image:
                continue
            try:
                self.generate_member_design(draft, member)
            except (VendorAuthorizationError, ConfigurationError):
                raise
            except TeeGethaError as e:
                logger.error(f"Generation error for member {member.id}: {e}")
                failures[member.id] = e.message
        return failures

    def generate_family_preview(self, draft: OrderDraft) -> str:
        """Photo-style preview of the family wearing the front design."""
        if not draft.group_photo or not draft.family_front_image:
            raise ValidationError("Generate the family front design before requesting a preview")

        label = (draft.family_label or "").strip() or DEFAULT_FAMILY_LABEL
        draft.family_preview = self.vision.generate_family_preview(
            draft.group_photo, draft.family_front_image, label
        )
        return draft.family_preview
