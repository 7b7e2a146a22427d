"""Closed enumerations of the architecture catalog."""

from __future__ import annotations

from enum import Enum


class CardType(str, Enum):
    """Kind of a card. Immutable after creation."""

    # Layer A: Strategic
    BUSINESS_CAPABILITY = "BusinessCapability"
    OBJECTIVE = "Objective"
    # Layer B: Application
    APPLICATION = "Application"
    INTERFACE = "Interface"
    # Layer C: Technology
    IT_COMPONENT = "ITComponent"
    PLATFORM = "Platform"
    # Layer D: Governance
    ARCHITECTURE_PRINCIPLE = "ArchitecturePrinciple"
    TECHNOLOGY_STANDARD = "TechnologyStandard"
    ARCHITECTURE_POLICY = "ArchitecturePolicy"
    EXCEPTION = "Exception"
    INITIATIVE = "Initiative"
    RISK = "Risk"
    COMPLIANCE_REQUIREMENT = "ComplianceRequirement"
    COMPLIANCE_AUDIT = "ComplianceAudit"
    # Layer E: Architecture Review Board
    ARB_MEETING = "ARBMeeting"
    ARB_SUBMISSION = "ARBSubmission"


class LifecyclePhase(str, Enum):
    """Lifecycle of a card, from first discovery to retirement."""

    DISCOVERY = "Discovery"
    STRATEGY = "Strategy"
    PLANNING = "Planning"
    DEVELOPMENT = "Development"
    TESTING = "Testing"
    ACTIVE = "Active"
    DECOMMISSIONED = "Decommissioned"
    RETIRED = "Retired"


class RelationshipType(str, Enum):
    """Kind of a directed edge between two cards."""

    # Core dependencies
    RELIES_ON = "reliesOn"
    DEPENDS_ON = "dependsOn"
    # Governance
    GUIDES = "guides"
    STANDARDIZES = "standardizes"
    APPLIES_TO = "appliesTo"
    ENFORCES = "enforces"
    IMPACTS = "impacts"
    ACHIEVES = "achieves"
    THREATENS = "threatens"
    MITIGATED_BY = "mitigatedBy"
    REQUIRES_COMPLIANCE_FROM = "requiresComplianceFrom"
    EXEMPTS_FROM = "exemptsFrom"


class EntityStatus(str, Enum):
    """Soft-delete flag shared by cards and relationships."""

    ACTIVE = "active"
    DELETED = "deleted"


# Edge kinds followed by dependency traversal (fan-in/fan-out, paths).
DEPENDENCY_TYPES: frozenset[RelationshipType] = frozenset(
    {RelationshipType.DEPENDS_ON, RelationshipType.RELIES_ON}
)
