from enum import Enum
from typing import Iterable


class Role(str, Enum):
    HR_ADMIN = "hr_admin"
    HR_EXEC = "hr_exec"
    VIEWER = "viewer"


ROLE_HIERARCHY = {
    Role.HR_ADMIN: {Role.HR_ADMIN, Role.HR_EXEC, Role.VIEWER},
    Role.HR_EXEC: {Role.HR_EXEC, Role.VIEWER},
    Role.VIEWER: {Role.VIEWER},
}

ALL_ROLES = [Role.HR_ADMIN, Role.HR_EXEC, Role.VIEWER]
EDITOR_ROLES = [Role.HR_ADMIN, Role.HR_EXEC]
ADMIN_ROLES = [Role.HR_ADMIN]


def expand_roles(user_roles: Iterable[Role]) -> set[Role]:
    expanded: set[Role] = set()
    for role in user_roles:
        expanded |= ROLE_HIERARCHY.get(Role(role), {Role(role)})
    return expanded


def has_required_role(user_roles: Iterable[Role], required: Iterable[Role]) -> bool:
    required_set = {Role(r) for r in required}
    return bool(expand_roles(user_roles) & required_set)
