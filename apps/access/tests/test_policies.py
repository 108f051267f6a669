"""
Unit tests for the access control decisions.
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.access import policies
from apps.core.exceptions import AuthorizationError, GroupNotFound, TaskNotFound, ValidationError
from apps.groups.models import Group, GroupMember, MemberRole
from apps.identity.dtos import Principal
from apps.identity.models import User, UserType
from apps.tasks.models import Task


def principal(user):
    return Principal(id=user.id, email=user.email, user_type=user.user_type)


class PolicyTestBase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user(
            email='owner@example.com', password='pw', first_name='Own', last_name='Er',
            user_type=UserType.GROUP_ADMIN,
        )
        self.member = User.objects.create_user(
            email='member@example.com', password='pw', first_name='Mem', last_name='Ber',
        )
        self.stranger = User.objects.create_user(
            email='stranger@example.com', password='pw', first_name='Str', last_name='Anger',
        )
        self.group = Group.objects.create(name='Ops', admin=self.owner)
        GroupMember.objects.create(group=self.group, user=self.owner, role=MemberRole.ADMIN)
        GroupMember.objects.create(group=self.group, user=self.member, role=MemberRole.MEMBER)

        now = timezone.now()
        self.task = Task.objects.create(
            title='Rotate keys',
            start_time=now,
            end_time=now + timedelta(hours=1),
            created_by=self.owner,
            assigned_to=self.member,
            group=self.group,
        )


class GroupPolicyTest(PolicyTestBase):

    def test_owner_is_admin(self):
        access = policies.authorize_group_access(principal(self.owner), self.group.id)
        self.assertTrue(access.is_admin)
        self.assertEqual(access.role, MemberRole.ADMIN)

    def test_admin_role_edge_is_only_a_label(self):
        GroupMember.objects.filter(group=self.group, user=self.member).update(role=MemberRole.ADMIN)
        access = policies.authorize_group_access(principal(self.member), self.group.id)
        self.assertEqual(access.role, MemberRole.ADMIN)
        self.assertFalse(access.is_admin)
        with self.assertRaises(AuthorizationError):
            policies.authorize_group_admin(principal(self.member), self.group.id)

    def test_stranger_is_forbidden(self):
        with self.assertRaises(AuthorizationError):
            policies.authorize_group_access(principal(self.stranger), self.group.id)

    def test_inactive_group_is_not_found(self):
        self.group.is_active = False
        self.group.save()
        with self.assertRaises(GroupNotFound):
            policies.authorize_group_access(principal(self.owner), self.group.id)

    def test_ensure_group_member(self):
        policies.ensure_group_member(self.group, self.member.id)
        with self.assertRaises(ValidationError):
            policies.ensure_group_member(self.group, self.stranger.id)


class TaskPolicyTest(PolicyTestBase):

    def test_creator_assignee_and_group_admin_can_read(self):
        for user in (self.owner, self.member):
            self.assertEqual(policies.authorize_task_access(principal(user), self.task.id).id, self.task.id)

    def test_stranger_gets_forbidden_not_not_found(self):
        with self.assertRaises(AuthorizationError):
            policies.authorize_task_access(principal(self.stranger), self.task.id)

    def test_missing_and_inactive_tasks_are_not_found(self):
        with self.assertRaises(TaskNotFound):
            policies.authorize_task_access(principal(self.owner), 99999)

        self.task.is_active = False
        self.task.save()
        with self.assertRaises(TaskNotFound):
            policies.authorize_task_access(principal(self.owner), self.task.id)

    def test_group_admin_reads_members_task(self):
        task = Task.objects.create(
            title='Member own task',
            start_time=self.task.start_time,
            end_time=self.task.end_time,
            created_by=self.member,
            assigned_to=self.member,
            group=self.group,
        )
        self.assertEqual(policies.authorize_task_access(principal(self.owner), task.id).id, task.id)

    def test_group_admin_rights_lapse_with_inactive_group(self):
        task = Task.objects.create(
            title='Member own task',
            start_time=self.task.start_time,
            end_time=self.task.end_time,
            created_by=self.member,
            assigned_to=self.member,
            group=self.group,
        )
        self.group.is_active = False
        self.group.save()
        with self.assertRaises(AuthorizationError):
            policies.authorize_task_access(principal(self.owner), task.id)

    def test_assignee_cannot_reassign(self):
        fields = policies.authorize_task_mutation(principal(self.member), self.task)
        self.assertIn('status', fields)
        self.assertIn('title', fields)
        self.assertNotIn('assigned_to', fields)

        self.assertEqual(policies.authorize_task_mutation(principal(self.owner), self.task), policies.TASK_FIELDS)
        self.assertEqual(policies.authorize_task_mutation(principal(self.stranger), self.task), frozenset())

    def test_only_creator_or_group_admin_deletes(self):
        self.assertTrue(policies.can_delete_task(principal(self.owner), self.task))
        self.assertFalse(policies.can_delete_task(principal(self.member), self.task))
