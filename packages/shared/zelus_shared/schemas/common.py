from enum import Enum

from pydantic import BaseModel


class OrgRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class FractionRole(str, Enum):
    FRACTION_OWNER_ADMIN = "fraction_owner_admin"
    FRACTION_MEMBER = "fraction_member"


class EffectiveRole(str, Enum):
    ORG_ADMIN = "org_admin"
    FRACTION_OWNER_ADMIN = "fraction_owner_admin"
    FRACTION_MEMBER = "fraction_member"


# Org roles that grant org_admin regardless of fraction associations
ORG_ADMIN_ROLES: frozenset[OrgRole] = frozenset({OrgRole.OWNER, OrgRole.ADMIN})


class AssociationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InviteType(str, Enum):
    ORG = "org"
    FRACTION = "fraction"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class InviteRole(str, Enum):
    ORG_ADMIN = "org_admin"
    FRACTION_OWNER_ADMIN = "fraction_owner_admin"
    FRACTION_MEMBER = "fraction_member"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Category(str, Enum):
    PLUMBING = "plumbing"
    SEWAGE = "sewage"
    GAS = "gas"
    ELECTRICITY = "electricity"
    COMMON_LIGHTING = "common_lighting"
    ELEVATORS = "elevators"
    HVAC = "hvac"
    INTERCOM = "intercom"
    SECURITY = "security"
    FIRE_SAFETY = "fire_safety"
    GARDENING = "gardening"
    CLEANING = "cleaning"
    PEST_CONTROL = "pest_control"
    STRUCTURAL = "structural"
    ROOFING = "roofing"
    PARKING = "parking"
    TELECOMMUNICATIONS = "telecommunications"
    WASTE = "waste"
    PAINTING = "painting"
    OTHER = "other"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int
