import pytest

from hr_onboarding.core.auth import display_name_for, parse_roles
from hr_onboarding.core.roles import ADMIN_ROLES, EDITOR_ROLES, Role, expand_roles, has_required_role
from hr_onboarding.models.user import HrUser
from hr_onboarding.services.user_service import ensure_admin_user, prevent_last_admin_change


def test_role_hierarchy():
    assert expand_roles([Role.HR_ADMIN]) == {Role.HR_ADMIN, Role.HR_EXEC, Role.VIEWER}
    assert has_required_role([Role.HR_EXEC], EDITOR_ROLES)
    assert not has_required_role([Role.HR_EXEC], ADMIN_ROLES)
    assert not has_required_role([Role.VIEWER], EDITOR_ROLES)


def test_parse_roles_ignores_unknown_names():
    assert parse_roles(" HR_Exec , superuser") == [Role.HR_EXEC]
    assert parse_roles("") == [Role.VIEWER]
    assert display_name_for("priya.k_rao@example.com") == "Priya K Rao"


async def test_last_admin_protection(db_session):
    user = HrUser(email="root@example.com", full_name="Root Admin", role="hr_admin", is_active=True)
    db_session.add(user)
    await db_session.commit()

    with pytest.raises(ValueError):
        await prevent_last_admin_change(db_session, hr_user=user, new_role="hr_exec", new_is_active=None)
    with pytest.raises(ValueError):
        await prevent_last_admin_change(db_session, hr_user=user, new_role=None, new_is_active=False)

    await prevent_last_admin_change(db_session, hr_user=user, new_role="hr_admin", new_is_active=True)


async def test_allow_role_change_when_multiple_admins(db_session):
    user1 = HrUser(email="root1@example.com", role="hr_admin", is_active=True)
    user2 = HrUser(email="root2@example.com", role="hr_admin", is_active=True)
    db_session.add_all([user1, user2])
    await db_session.commit()

    await prevent_last_admin_change(db_session, hr_user=user1, new_role="viewer", new_is_active=None)


async def test_ensure_admin_user_promotes_existing(db_session):
    db_session.add(HrUser(email="lead@example.com", role="viewer", is_active=False))
    await db_session.commit()

    assert await ensure_admin_user(db_session, " Lead@Example.com ") is True
    assert await ensure_admin_user(db_session, "lead@example.com") is False
