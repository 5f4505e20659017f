"""Closed vocabularies for case-planning fields.

Free-text fields that act as enums in legacy documents (relationship type,
contact kind) keep their raw string on the entity; these enums give the
engine a closed view of them with an explicit fallback member.
"""
from __future__ import annotations

from enum import Enum


class CareStatus(str, Enum):
    """Child welfare status of a person."""

    NOT_APPLICABLE = "not_applicable"
    AT_RISK = "at_risk"
    NEEDS_PLACEMENT = "needs_placement"
    IN_CARE = "in_care"

    @property
    def requires_placement(self) -> bool:
        return self in (CareStatus.NEEDS_PLACEMENT, CareStatus.IN_CARE)


class FosterCareStatus(str, Enum):
    """Licensing status of a potential caregiver."""

    NOT_APPLICABLE = "not_applicable"
    INTERESTED = "interested"
    IN_PROCESS = "in_process"
    LICENSED = "licensed"
    ACTIVE = "active"
    INACTIVE = "inactive"


class PlacementStatus(str, Enum):
    """Where a child-to-caregiver placement stands."""

    NOT_APPLICABLE = "not_applicable"
    POTENTIAL_TEMPORARY = "potential_temporary"
    POTENTIAL_PERMANENT = "potential_permanent"
    CURRENT_TEMPORARY = "current_temporary"
    CURRENT_PERMANENT = "current_permanent"
    RULED_OUT = "ruled_out"

    @property
    def is_potential(self) -> bool:
        return self in (PlacementStatus.POTENTIAL_TEMPORARY, PlacementStatus.POTENTIAL_PERMANENT)

    @property
    def is_current(self) -> bool:
        return self in (PlacementStatus.CURRENT_TEMPORARY, PlacementStatus.CURRENT_PERMANENT)


class ConnectionStatus(str, Enum):
    """Family-finding status of a connection, independent of its semantics."""

    CONFIRMED = "confirmed"
    POTENTIAL = "potential"
    EXPLORING = "exploring"
    RULED_OUT = "ruled-out"


class NodeType(str, Enum):
    """Kinds of nodes drawn on the genogram canvas."""

    PERSON = "person"
    ORGANIZATION = "organization"
    SERVICE = "service"
    OTHER = "other"


class RelationshipType(str, Enum):
    """Known relationship semantics.

    ``OTHER`` stands in for any legacy or custom value; the edge itself keeps
    the original string.
    """

    # Romantic
    MARRIAGE = "marriage"
    ENGAGEMENT = "engagement"
    COHABITATION = "cohabitation"
    PARTNER = "partner"
    DATING = "dating"
    LOVE_AFFAIR = "love-affair"
    SECRET_AFFAIR = "secret-affair"
    SINGLE_ENCOUNTER = "single-encounter"

    # Ended
    SEPARATION = "separation"
    DIVORCE = "divorce"
    NULLITY = "nullity"
    WIDOWED = "widowed"

    # Family
    SIBLING = "sibling"
    ADOPTION = "adoption"
    STEP_RELATIONSHIP = "step-relationship"
    CHILD = "child"

    # Emotional
    CLOSE = "close"
    DISTANT = "distant"
    CONFLICT = "conflict"
    DISCORD = "discord"
    CUTOFF = "cutoff"
    FUSED = "fused"
    INDIFFERENT = "indifferent"
    HOSTILE = "hostile"
    DISTANT_HOSTILE = "distant-hostile"
    CLOSE_HOSTILE = "close-hostile"
    HATE = "hate"
    BEST_FRIENDS = "best-friends"
    LOVE = "love"

    # Complex dynamics
    TOXIC = "toxic"
    ON_OFF = "on-off"
    COMPLICATED = "complicated"
    DEPENDENCY = "dependency"
    CODEPENDENT = "codependent"
    MANIPULATIVE = "manipulative"
    SUPPORTIVE = "supportive"
    COMPETITIVE = "competitive"

    # Social services
    ABUSIVE = "abusive"
    PROTECTIVE = "protective"
    CAREGIVER = "caregiver"
    FINANCIAL_DEPENDENCY = "financial-dependency"
    SUPERVISED_CONTACT = "supervised-contact"

    # Harm
    VIOLENCE = "violence"
    PHYSICAL_ABUSE = "physical-abuse"
    EMOTIONAL_ABUSE = "emotional-abuse"
    SEXUAL_ABUSE = "sexual-abuse"
    ABUSE = "abuse"
    NEGLECT = "neglect"
    NEGLECT_ABUSE = "neglect-abuse"

    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> RelationshipType:
        """Map a raw type string to a member, ``OTHER`` when unknown."""
        if isinstance(value, RelationshipType):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER


# Relationship types that end the partnership
INACTIVE_RELATIONSHIP_TYPES = frozenset(
    {RelationshipType.DIVORCE, RelationshipType.SEPARATION, RelationshipType.NULLITY}
)

# Partnership types a child can hang from
PARENT_RELATIONSHIP_TYPES = frozenset(
    {
        RelationshipType.MARRIAGE,
        RelationshipType.PARTNER,
        RelationshipType.COHABITATION,
        RelationshipType.ENGAGEMENT,
        RelationshipType.DATING,
        RelationshipType.LOVE_AFFAIR,
        RelationshipType.SECRET_AFFAIR,
        RelationshipType.SINGLE_ENCOUNTER,
        RelationshipType.DIVORCE,
        RelationshipType.SEPARATION,
        RelationshipType.NULLITY,
        RelationshipType.WIDOWED,
        RelationshipType.COMPLICATED,
        RelationshipType.ON_OFF,
        RelationshipType.TOXIC,
        RelationshipType.DEPENDENCY,
        RelationshipType.CODEPENDENT,
        RelationshipType.ADOPTION,
        RelationshipType.STEP_RELATIONSHIP,
        RelationshipType.CLOSE,
        RelationshipType.LOVE,
        RelationshipType.BEST_FRIENDS,
        RelationshipType.CAREGIVER,
        RelationshipType.SUPPORTIVE,
    }
)

# Relationship types that count against network health
CONFLICT_RELATIONSHIP_TYPES = frozenset(
    {
        RelationshipType.CONFLICT,
        RelationshipType.DISCORD,
        RelationshipType.HOSTILE,
        RelationshipType.DISTANT_HOSTILE,
        RelationshipType.CLOSE_HOSTILE,
        RelationshipType.VIOLENCE,
        RelationshipType.PHYSICAL_ABUSE,
        RelationshipType.EMOTIONAL_ABUSE,
        RelationshipType.SEXUAL_ABUSE,
        RelationshipType.ABUSE,
        RelationshipType.NEGLECT,
        RelationshipType.NEGLECT_ABUSE,
    }
)


class ContactKind(str, Enum):
    """Case-log entry types that count as a contact with the person."""

    PHONE = "phone"
    PHONE_CALL = "phone_call"
    CALL = "call"
    EMAIL = "email"
    VISIT = "visit"
    HOME_VISIT = "home_visit"
    HOME_VISIT_SPACED = "home visit"
    MEETING = "meeting"
    ASSESSMENT = "assessment"
    SMS = "sms"
    TEXT = "text"
    MESSAGE = "message"
    CONTACT = "contact"
    IN_PERSON = "in_person"
    IN_PERSON_HYPHEN = "in-person"
    OUTREACH = "outreach"
    VIRTUAL = "virtual"

    @classmethod
    def recognise(cls, value: object) -> ContactKind | None:
        """Return the contact kind for a raw log type, or None."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None
