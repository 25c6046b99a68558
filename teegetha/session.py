"""
Wizard session: the single owner of one user's OrderDraft and step state.

Every mutation the presentation layer can request is a named method here.
Step changes go through the WorkflowStateMachine with the precondition
for that step evaluated against the draft.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from teegetha.errors import (
    ImageProcessingError, InvalidTransitionError, MemberNotFoundError,
    ValidationError, VendorAuthorizationError
)
from teegetha.garments import resolve_group
from teegetha.geometry import crop_to_box, encode_data_url
from teegetha.models import (
    COLOR_OPTIONS_BY_GROUP, SHIRT_COLORS, STYLES, GarmentGroup, Member,
    OrderConfirmation, OrderDraft, PaymentDetails, ShippingDetails
)
from teegetha.workflow import WizardStep, WorkflowStateMachine


FALLBACK_MEMBER_DESCRIPTION = 'A cheerful family member'

# Accept both snake_case and the camelCase names the browser sends
_EDITABLE_FIELDS = set(Member.model_fields) - {'id', 'is_generating'}
_FIELD_NAMES = {to_camel(name): name for name in _EDITABLE_FIELDS}


def _pydantic_message(error: PydanticValidationError) -> str:
    return '; '.join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors())


class WizardSession:
    """One user's pass through the wizard."""

    def __init__(self, services):
        self.services = services
        self.draft = OrderDraft()
        self.workflow = WorkflowStateMachine()
        self.needs_reauthentication = False

    # -- state ------------------------------------------------------------

    @property
    def step(self) -> WizardStep:
        return self.workflow.step

    @property
    def members(self) -> List[Member]:
        return self.draft.members

    def total_cost(self) -> float:
        return self.draft.total_cost(self.services.config.UNIT_PRICE)

    def _require_step(self, step: WizardStep, action: str) -> None:
        if self.workflow.step != step:
            raise InvalidTransitionError(self.workflow.step.value, step.value, f"{action} is only available on {step.value}")

    def _member(self, member_id: str) -> Member:
        member = self.draft.find_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    @contextmanager
    def _vendor_call(self):
        try:
            yield
        except VendorAuthorizationError:
            self.needs_reauthentication = True
            raise

    def reauthenticated(self) -> None:
        self.needs_reauthentication = False

    def _new_member(self, index: int, **fields) -> Member:
        values = {
            'name': f"Member {index}",
            'shirt_type': GarmentGroup.MEN,
            'shirt_color_name': self.draft.shirt_color_name,
            'style_id': self.draft.selected_style_id,
        }
        values.update(fields)
        try:
            return Member(**values)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid member: {_pydantic_message(e)}")

    # -- navigation -------------------------------------------------------

    def start(self) -> WizardStep:
        return self.workflow.advance(WizardStep.UPLOAD)

    def back(self) -> WizardStep:
        return self.workflow.back()

    def jump_to(self, step: WizardStep) -> WizardStep:
        return self.workflow.jump_to(WizardStep(step))

    def reset(self) -> WizardStep:
        self.draft = OrderDraft()
        self.needs_reauthentication = False
        logger.info("Wizard session reset")
        return self.workflow.reset()

    # -- roster -----------------------------------------------------------

    def upload_group_photo(self, image: str) -> List[Member]:
        """
        Analyze a group photo and seed the roster from it.

        Each detection with a valid box gets a cropped portrait; when nobody
        is detected the whole photo becomes a single member.
        """
        self._require_step(WizardStep.UPLOAD, "Group photo upload")
        self.draft.group_photo = image

        with self._vendor_call():
            people = self.services.pipeline.vision.analyze_group_photo(image)

        members = []
        for i, person in enumerate(people, start=1):
            portrait = None
            if person.has_valid_box:
                try:
                    portrait = encode_data_url(crop_to_box(image, person.box_2d), 'image/jpeg')
                except ImageProcessingError as e:
                    logger.error(f"Failed to crop detected person {i}: {e}")
            members.append(self._new_member(i, role='Family', description=person.description,
                                            original_image=portrait))

        if not members:
            members = [self._new_member(1, original_image=image, description=FALLBACK_MEMBER_DESCRIPTION)]

        self.draft.members = members
        logger.info(f"Roster seeded with {len(members)} members from group photo")
        self.workflow.advance(WizardStep.ROSTER, precondition=bool(self.draft.members),
                              reason="roster is empty")
        return members

    def start_manual_roster(self) -> List[Member]:
        self._require_step(WizardStep.UPLOAD, "Manual roster")
        self.draft.members = [self._new_member(1, style_id=None)]
        self.workflow.advance(WizardStep.ROSTER, precondition=True)
        return self.draft.members

    def add_member(self, **fields) -> Member:
        member = self._new_member(len(self.draft.members) + 1, **fields)
        self.draft.members.append(member)
        return member

    def update_member(self, member_id: str, **fields) -> Member:
        """
        Change one or more member fields (snake_case or camelCase names).

        Changing the shirt type resets a color that the new group does not
        offer; an explicitly chosen color must be offered by the group.
        """
        member = self._member(member_id)
        changes = {_FIELD_NAMES.get(key, key): value for key, value in fields.items()}
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown member fields: {', '.join(sorted(unknown))}",
                                  details={'member_id': member_id})

        try:
            updated = Member.model_validate({**member.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid member update: {_pydantic_message(e)}",
                                  details={'member_id': member_id})

        group = resolve_group(updated).group
        palette = COLOR_OPTIONS_BY_GROUP[group]
        if updated.shirt_color_name and updated.shirt_color_name not in palette:
            if 'shirt_color_name' in changes:
                raise ValidationError(
                    f"Color {updated.shirt_color_name} is not offered for {group.value} shirts",
                    suggestions=[f"Choose one of: {', '.join(palette)}"]
                )
            if 'shirt_type' in changes:
                updated.shirt_color_name = palette[0]

        for name in _EDITABLE_FIELDS:
            setattr(member, name, getattr(updated, name))
        return member

    def replace_member_photo(self, member_id: str, image: str) -> Member:
        member = self._member(member_id)
        member.original_image = image
        return member

    def remove_member(self, member_id: str) -> None:
        member = self._member(member_id)
        self.draft.members.remove(member)

    def continue_to_design(self) -> WizardStep:
        return self.workflow.advance(WizardStep.DESIGN, precondition=bool(self.draft.members),
                                     reason="add at least one family member")

    # -- design -----------------------------------------------------------

    def select_style(self, style_id: str, member_id: Optional[str] = None,
                     family_front: bool = False) -> None:
        """Set the global style, one member's style, or the family front style."""
        if style_id not in {style.id for style in STYLES}:
            raise ValidationError(f"Unknown style: {style_id}")
        if member_id is not None:
            self._member(member_id).style_id = style_id
        elif family_front:
            self.draft.family_front_style_id = style_id
        else:
            self.draft.selected_style_id = style_id

    def select_shirt_color(self, color_name: str) -> None:
        if color_name not in {color.name for color in SHIRT_COLORS}:
            raise ValidationError(f"Unknown shirt color: {color_name}")
        self.draft.shirt_color_name = color_name

    def set_family_label(self, label: str) -> None:
        self.draft.family_label = label

    def generate_family_front(self) -> str:
        with self._vendor_call():
            return self.services.pipeline.generate_family_front(self.draft)

    def generate_member_design(self, member_id: str) -> str:
        member = self._member(member_id)
        with self._vendor_call():
            return self.services.pipeline.generate_member_design(self.draft, member)

    def generate_all(self) -> Dict[str, str]:
        with self._vendor_call():
            return self.services.pipeline.generate_all(self.draft)

    def generate_family_preview(self) -> str:
        with self._vendor_call():
            return self.services.pipeline.generate_family_preview(self.draft)

    def continue_to_shop(self) -> WizardStep:
        return self.workflow.advance(WizardStep.SHOP)

    # -- checkout ---------------------------------------------------------

    def continue_to_checkout(self) -> WizardStep:
        return self.workflow.advance(WizardStep.CHECKOUT, precondition=self.total_cost() > 0,
                                     reason="order total must be greater than zero")

    def update_shipping(self, **fields: Any) -> ShippingDetails:
        current = self.draft.shipping.model_dump() if self.draft.shipping else {}
        try:
            self.draft.shipping = ShippingDetails.model_validate({**current, **fields})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid shipping details: {_pydantic_message(e)}")
        return self.draft.shipping

    def update_payment(self, **fields: Any) -> None:
        try:
            self.draft.payment = PaymentDetails.model_validate(fields)
        except PydanticValidationError:
            # Never echo card values back
            raise ValidationError("Invalid payment details",
                                  suggestions=["Check the card number, expiry and CVC"])

    def place_order(self) -> OrderConfirmation:
        """Charge the card and submit the order; moves to SUCCESS on success."""
        self._require_step(WizardStep.CHECKOUT, "Placing an order")
        if self.draft.shipping is None:
            raise ValidationError("Shipping details are required")
        if self.draft.payment is None:
            raise ValidationError("Payment details are required")

        with self._vendor_call():
            confirmation = self.services.orchestrator.place_order(self.draft)

        self.draft.order_result = confirmation
        self.draft.payment = None
        self.workflow.advance(WizardStep.SUCCESS, precondition=self.draft.order_result is not None,
                              reason="no order confirmation")
        return confirmation
