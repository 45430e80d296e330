import pytest

from gymsched.core.roles import TEACHING_ROLES, can_enroll, can_teach, is_privileged
from gymsched.models.user import UserRole


@pytest.mark.parametrize("role, privileged", [
    (UserRole.MEMBER, False),
    (UserRole.TRAINER, True),
    (UserRole.ADMIN, True),
])
def test_privilege_table(role, privileged):
    assert is_privileged(role) is privileged
    assert can_enroll(role) is not privileged


def test_roles_accept_string_values():
    assert is_privileged("trainer")
    assert not is_privileged("member")


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        is_privileged("owner")


def test_teaching_roles():
    assert can_teach(UserRole.TRAINER)
    assert not can_teach(UserRole.MEMBER)
    assert set(TEACHING_ROLES) == {UserRole.TRAINER, UserRole.ADMIN}
