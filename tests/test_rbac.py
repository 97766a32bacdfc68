"""Access guard: any-of / all-of checks with superadmin and orgadmin bypass."""
import pytest

from prairiemed.core.rbac import (
    BILLING_ROLES, BYPASS_ROLES, DELETE_PATIENT_ROLES, EDIT_CONSENTS_ROLES, EDIT_INSURANCE_ROLES,
    EDIT_PATIENT_ROLES, SESSION_ADMIN_ROLES, VIEW_CONSENTS_ROLES, VIEW_INSURANCE_ROLES, VIEW_PATIENT_ROLES,
    RoleSet, can_access, can_access_all,
)


@pytest.mark.parametrize(
    "caller, allowed, expected",
    [
        (["superadmin"], ["anyRoleNotHeld"], True),
        (["nurse"], ["doctor", "nurse"], True),
        (["nurse"], ["doctor"], False),
        ([], [], True),
        ([], ["doctor"], False),
        (["OrgAdmin"], ["doctor"], True),
        (["NURSE"], ["nurse"], True),
        (["nurse"], ["  Nurse "], True),
        (None, None, True),
    ],
)
def test_can_access(caller, allowed, expected):
    assert can_access(caller, allowed) is expected


def test_can_access_all_requires_every_role():
    assert can_access_all(["doctor", "nurse"], ["doctor", "nurse"]) is True
    assert can_access_all(["doctor"], ["doctor", "nurse"]) is False
    assert can_access_all(["superadmin"], ["doctor", "nurse"]) is True
    assert can_access_all([], []) is True
    assert can_access_all([], ["doctor"]) is False


def test_roleset_normalizes_and_dedupes():
    roles = RoleSet(["Doctor", "doctor ", "", "NURSE"])
    assert roles == {"doctor", "nurse"}
    assert RoleSet(roles) is roles
    assert RoleSet("Doctor") == {"doctor"}


def test_capability_lists():
    assert BYPASS_ROLES <= VIEW_PATIENT_ROLES
    assert "receptionist" in EDIT_PATIENT_ROLES
    assert "billingclerk" in VIEW_INSURANCE_ROLES
    assert "billingclerk" not in VIEW_PATIENT_ROLES
    assert isinstance(VIEW_INSURANCE_ROLES, RoleSet)


def test_shared_allow_lists_by_role_family():
    assert can_access(["himmanager"], DELETE_PATIENT_ROLES)
    assert not can_access(["doctor"], DELETE_PATIENT_ROLES)

    assert can_access(["arspecialist"], EDIT_INSURANCE_ROLES)
    assert not can_access(["nurse"], EDIT_INSURANCE_ROLES)

    assert can_access(["billingmanager"], VIEW_CONSENTS_ROLES)
    assert not can_access(["billingmanager"], EDIT_CONSENTS_ROLES)
    assert can_access(["nursepractitioner"], EDIT_CONSENTS_ROLES)

    assert BILLING_ROLES.isdisjoint(VIEW_PATIENT_ROLES)
    assert SESSION_ADMIN_ROLES == RoleSet.of("superadmin", "orgadmin", "facilityadmin")
    assert not can_access(["doctor"], SESSION_ADMIN_ROLES)
