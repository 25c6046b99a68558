"""
Domain models for the TeeGetha order wizard.

Request-facing entities (members, shipping, payment) are pydantic models
so they can be parsed straight from the camelCase JSON the browser sends;
internal results (line items, plans, confirmations) are dataclasses.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic.alias_generators import to_camel


class GarmentGroup(str, Enum):
    """Demographic group a shirt is cut for"""
    MEN = "MEN"
    WOMEN = "WOMEN"
    KIDS = "KIDS"


class Size(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "2XL"
    XXXL = "3XL"


class WireModel(BaseModel):
    """Base for models exchanged with the browser as camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


def new_member_id() -> str:
    return f"mem-{uuid.uuid4().hex[:12]}"


class Member(WireModel):
    """One entry in the family roster.

    ``shirt_type`` of None means the group was never declared; garment
    resolution then infers it from the name and description.
    """
    id: str = Field(default_factory=new_member_id)
    name: str = "Member"
    role: Optional[str] = None
    description: str = ""
    original_image: Optional[str] = None
    generated_image: Optional[str] = None
    shirt_type: Optional[GarmentGroup] = None
    size: Size = Size.M
    quantity: int = Field(default=1, ge=0)
    shirt_color_name: Optional[str] = None
    style_id: Optional[str] = None
    is_generating: bool = Field(default=False, exclude=True)

    @property
    def first_name(self) -> str:
        return (self.name or "").strip().split(" ")[0] or "Family Member"


class ShippingDetails(WireModel):
    full_name: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = ""
    country: str = "US"

    def split_name(self) -> tuple:
        """Split full name into (first, last) the way Printify addresses want it"""
        first, _, rest = (self.full_name or "").strip().partition(" ")
        last = rest.strip() or first or "Customer"
        return first or "Customer", last

    def summary(self) -> Dict[str, str]:
        return {
            'name': self.full_name,
            'city': self.city,
            'state': self.state,
            'zip': self.zip,
            'email': self.email,
        }


class PaymentDetails(WireModel):
    """Card details; only forwarded to the payment processor, never stored."""
    card_number: SecretStr
    expiry: str = Field(min_length=1)
    cvc: SecretStr

    @field_validator('card_number', 'cvc')
    @classmethod
    def _not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("must not be empty")
        return value


class DetectedPerson(BaseModel):
    """One person found by photo analysis (box in 0-1000 space)."""
    description: str = ""
    box_2d: List[float] = Field(default_factory=list)

    @property
    def has_valid_box(self) -> bool:
        return len(self.box_2d) == 4


@dataclass(frozen=True)
class DesignStyle:
    id: str
    name: str
    prompt_modifier: str


STYLES = (
    DesignStyle('cartoon', 'Modern Cartoon', 'in a cute, vibrant modern vector cartoon style, flat colors, clean lines, white background'),
    DesignStyle('pixar', '3D Character', 'as a cute 3D animated movie character, pixar style, soft lighting, 3d render, white background'),
    DesignStyle('retro', 'Retro 80s', 'in a retro 1980s synthwave style, neon outlines, vintage texture, white background'),
    DesignStyle('anime', 'Anime', 'as a japanese anime character, studio ghibli style, vibrant colors, cel shaded, white background'),
    DesignStyle('clay', 'Claymation', 'as a claymation figurine, stop motion style, plasticine texture, soft focus, white background'),
    DesignStyle('sketch', 'Pencil Sketch', 'as a high quality artistic charcoal pencil sketch, highly detailed, white background'),
    DesignStyle('hero', 'Superhero', 'reimagined as a heroic comic book superhero character, dynamic pose, bold colors, white background'),
    DesignStyle('oil', 'Oil Painting', 'as a classic oil painting, thick brush strokes, impressionist style, artistic, white background'),
    DesignStyle('realistic', 'Enhanced Realistic', 'professional studio photography portrait, perfect lighting, 4k, highly detailed'),
)


def get_style(style_id: Optional[str]) -> DesignStyle:
    """Look up a style by id, falling back to the first style"""
    for style in STYLES:
        if style.id == style_id:
            return style
    return STYLES[0]


@dataclass(frozen=True)
class ShirtColor:
    name: str
    hex: str


SHIRT_COLORS = (
    ShirtColor('White', '#ffffff'),
    ShirtColor('Solid Athletic Grey', '#d1d5db'),
    ShirtColor('Black', '#111827'),
)

# MEN and KIDS share visible options; kids ignore color when resolving variants
COLOR_OPTIONS_BY_GROUP = {
    GarmentGroup.MEN: ('Black', 'Solid Athletic Grey'),
    GarmentGroup.WOMEN: ('Black', 'White'),
    GarmentGroup.KIDS: ('Black', 'Solid Athletic Grey'),
}


@dataclass
class OrderDraft:
    """Everything the wizard has collected for one order, owned by one session."""
    members: List[Member] = field(default_factory=list)
    group_photo: Optional[str] = None
    family_front_image: Optional[str] = None
    family_front_style_id: Optional[str] = None
    family_label: str = "The Millers"
    family_preview: Optional[str] = None
    selected_style_id: str = STYLES[0].id
    shirt_color_name: str = SHIRT_COLORS[0].name
    shipping: Optional[ShippingDetails] = None
    payment: Optional[PaymentDetails] = None
    order_result: Optional["OrderConfirmation"] = None

    def find_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def billable_members(self) -> List[Member]:
        return [m for m in self.members if m.quantity > 0]

    def total_cost(self, unit_price: float = 25.0) -> float:
        return sum(m.quantity * unit_price for m in self.billable_members())

    @property
    def front_artwork(self) -> Optional[str]:
        return self.family_front_image or self.group_photo


@dataclass
class LineItem:
    """One orderable shirt line in a Printify submission"""
    name: str
    size: str
    color: str
    quantity: int
    blueprint_id: int
    variant_id: int
    print_provider_id: int
    front_src: Optional[str] = None
    back_src: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'quantity': self.quantity,
            'blueprint_id': self.blueprint_id,
            'variant_id': self.variant_id,
            'print_provider_id': self.print_provider_id,
            'color': self.color,
            'size': self.size,
        }

    def to_printify(self) -> Dict[str, Any]:
        def area(src):
            return [{'src': src, 'scale': 1, 'x': 0.5, 'y': 0.5, 'angle': 0}]

        return {
            'print_provider_id': self.print_provider_id,
            'blueprint_id': self.blueprint_id,
            'variant_id': self.variant_id,
            'quantity': self.quantity,
            'print_areas': {
                'front': area(self.front_src),
                'back': area(self.back_src),
            },
        }


@dataclass
class OrderPlan:
    """Dry-run result: what would be ordered, without any vendor calls"""
    order_id: str
    estimated_delivery: str
    shop_id: Optional[str]
    provider_id: int
    line_items: List[LineItem]
    shipping_summary: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'orderId': self.order_id,
            'estimatedDelivery': self.estimated_delivery,
            'shopId': self.shop_id,
            'debug': {
                'providerId': self.provider_id,
                'lineItems': [item.summary() for item in self.line_items],
                'shippingSummary': self.shipping_summary,
            },
        }


@dataclass
class OrderConfirmation:
    order_id: str
    estimated_delivery: str
    line_items: List[LineItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    transaction_id: Optional[str] = None
    vendor_response: Optional[Dict[str, Any]] = None
