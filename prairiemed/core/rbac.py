"""Role-based access control.

Roles are free-form, case-insensitive strings. ``RoleSet`` folds case once at
the boundary so every check below compares normalized values. ``superadmin``
and ``orgadmin`` satisfy any check regardless of the declared allow-list.
"""
from typing import Iterable, Optional


class RoleSet(frozenset):
    """Immutable set of normalized (stripped, lower-cased) role names."""

    def __new__(cls, roles: Optional[Iterable[str]] = None):
        if isinstance(roles, RoleSet):
            return roles
        if isinstance(roles, str):
            roles = [roles]
        normalized = (r.strip().lower() for r in (roles or ()) if isinstance(r, str) and r.strip())
        return super().__new__(cls, normalized)

    @classmethod
    def of(cls, *roles: str) -> "RoleSet":
        return cls(roles)

    def __or__(self, other):
        return RoleSet(frozenset.__or__(self, RoleSet(other)))

    def __repr__(self):
        return f"RoleSet({sorted(self)!r})"


SUPERADMIN = "superadmin"
ORGADMIN = "orgadmin"
BYPASS_ROLES = RoleSet.of(SUPERADMIN, ORGADMIN)


def has_bypass(caller_roles: Iterable[str]) -> bool:
    return not RoleSet(caller_roles).isdisjoint(BYPASS_ROLES)


def can_access(caller_roles: Optional[Iterable[str]], allowed_roles: Optional[Iterable[str]] = None) -> bool:
    """Any-of check: grant if the caller holds at least one allowed role."""
    allowed = RoleSet(allowed_roles)
    if not allowed:
        return True

    caller = RoleSet(caller_roles)
    if not caller:
        return False
    if has_bypass(caller):
        return True
    return not caller.isdisjoint(allowed)


def can_access_all(caller_roles: Optional[Iterable[str]], required_roles: Optional[Iterable[str]] = None) -> bool:
    """All-of check: grant only if the caller holds every required role."""
    required = RoleSet(required_roles)
    if not required:
        return True

    caller = RoleSet(caller_roles)
    if not caller:
        return False
    if has_bypass(caller):
        return True
    return required.issubset(caller)


# ---------------------------------------------------------------------------
# Capability allow-lists for coarse route gating
#
# Only SESSION_ADMIN_ROLES gates a route in this service. The rest are the
# shared allow-lists imported by the patient, insurance, consent and billing
# services when they mount require_roles.
# ---------------------------------------------------------------------------

FACILITY_ADMIN_ROLES = RoleSet.of(SUPERADMIN, ORGADMIN, "facilityadmin")

VIEW_PATIENT_ROLES = FACILITY_ADMIN_ROLES | RoleSet.of(
    "orgauditor", "privacyofficer", "complianceofficer",
    "himmanager",
    "doctor", "nurse", "nursepractitioner", "physicianassistant",
    "nursingassistant", "chargenurse",
    "respiratorytherapist", "physicaltherapist", "occupationaltherapist",
    "dietitian", "socialworker", "casemanager",
    "registrar", "scheduler", "receptionist", "unitclerk",
    "labtechnologist", "labmanager", "phlebotomist",
    "radiologytechnologist", "radiologymanager",
    "pharmacist", "pharmacytechnician",
    "analyst", "readonlyviewer",
)

EDIT_PATIENT_ROLES = FACILITY_ADMIN_ROLES | RoleSet.of(
    "himmanager",
    "doctor", "nurse", "nursepractitioner", "physicianassistant",
    "nursingassistant", "chargenurse",
    "registrar", "unitclerk", "receptionist",
)

DELETE_PATIENT_ROLES = FACILITY_ADMIN_ROLES | RoleSet.of("himmanager")

BILLING_ROLES = RoleSet.of("billingclerk", "billingmanager", "insurancespecialist", "arspecialist")

VIEW_INSURANCE_ROLES = VIEW_PATIENT_ROLES | BILLING_ROLES

EDIT_INSURANCE_ROLES = FACILITY_ADMIN_ROLES | BILLING_ROLES | RoleSet.of("registrar", "himmanager")

VIEW_CONSENTS_ROLES = VIEW_PATIENT_ROLES | BILLING_ROLES

EDIT_CONSENTS_ROLES = FACILITY_ADMIN_ROLES | RoleSet.of(
    "doctor", "nurse", "nursepractitioner", "physicianassistant", "himmanager",
)

# Force-logout of other users' sessions
SESSION_ADMIN_ROLES = FACILITY_ADMIN_ROLES
