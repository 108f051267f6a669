from django.test import TestCase

from apps.core.exceptions import AuthorizationError
from apps.identity.dtos import Principal
from apps.identity.models import UserType
from apps.identity.permissions import Permissions, get_permissions, require_superadmin


class RolePermissionTest(TestCase):
    def test_individual_permissions(self):
        perms = get_permissions(UserType.INDIVIDUAL)
        self.assertIn(Permissions.TASKS_CREATE, perms)
        self.assertNotIn(Permissions.GROUPS_CREATE, perms)

    def test_group_admin_permissions(self):
        perms = get_permissions(UserType.GROUP_ADMIN)
        self.assertIn(Permissions.GROUPS_CREATE, perms)
        self.assertNotIn(Permissions.USERS_VIEW_ALL, perms)
        self.assertNotIn(Permissions.USERS_MANAGE, perms)

    def test_superadmin_permissions(self):
        perms = get_permissions(UserType.SUPERADMIN)
        self.assertIn(Permissions.USERS_VIEW_ALL, perms)
        self.assertIn(Permissions.USERS_MANAGE, perms)

    def test_unknown_role_has_nothing(self):
        self.assertEqual(get_permissions('intern'), frozenset())

    def test_require_superadmin(self):
        require_superadmin(Principal(id=1, email='root@example.com', user_type=UserType.SUPERADMIN))
        with self.assertRaises(AuthorizationError):
            require_superadmin(Principal(id=2, email='ga@example.com', user_type=UserType.GROUP_ADMIN))
