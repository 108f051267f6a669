"""
Integration tests for group and membership endpoints.
"""
import json
from datetime import timedelta

from django.test import TestCase, Client
from django.utils import timezone

from apps.groups.models import Group, GroupMember, MemberRole
from apps.identity.jwt_auth import create_token_pair
from apps.identity.models import User, UserType
from apps.tasks.models import Task, TaskStatus, TaskUpdate


def bearer(user):
    access, _ = create_token_pair(user)
    return {'HTTP_AUTHORIZATION': f'Bearer {access}'}


class GroupTestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(
            email='admin@example.com', password='Secret123!', first_name='Ann', last_name='Admin',
            user_type=UserType.GROUP_ADMIN,
        )
        self.member = User.objects.create_user(
            email='member@example.com', password='Secret123!', first_name='Mel', last_name='Member',
        )
        self.outsider = User.objects.create_user(
            email='outsider@example.com', password='Secret123!', first_name='Otto', last_name='Side',
        )

    def create_group(self, user, name='Platform'):
        return self.client.post(
            '/api/groups/',
            data=json.dumps({'name': name, 'description': 'Platform team'}),
            content_type='application/json',
            **bearer(user),
        )

    def add_member(self, group_id, email, role='member', user=None):
        return self.client.post(
            f'/api/groups/{group_id}/members',
            data=json.dumps({'email': email, 'role': role}),
            content_type='application/json',
            **bearer(user or self.admin),
        )


class GroupAPITest(GroupTestBase):
    """Test group CRUD."""

    def test_group_admin_creates_group_and_becomes_member(self):
        response = self.create_group(self.admin)
        self.assertEqual(response.status_code, 201)

        group = response.json()['data']['group']
        self.assertEqual(group['admin_id'], self.admin.id)
        self.assertEqual(group['member_count'], 1)
        self.assertEqual(group['user_role'], MemberRole.ADMIN)
        self.assertTrue(
            GroupMember.objects.filter(group_id=group['id'], user=self.admin, role=MemberRole.ADMIN).exists()
        )

    def test_individual_cannot_create_group(self):
        response = self.create_group(self.member)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "Only group admins can create groups")

    def test_duplicate_name_for_same_admin_conflicts(self):
        self.create_group(self.admin)
        response = self.create_group(self.admin, name='platform')
        self.assertEqual(response.status_code, 409)

    def test_list_groups_shows_memberships_only(self):
        group_id = self.create_group(self.admin).json()['data']['group']['id']
        self.add_member(group_id, self.member.email)

        response = self.client.get('/api/groups/', **bearer(self.member))
        self.assertEqual(response.status_code, 200)
        groups = response.json()['data']['groups']
        self.assertEqual([g['id'] for g in groups], [group_id])
        self.assertEqual(groups[0]['member_count'], 2)
        self.assertEqual(groups[0]['user_role'], MemberRole.MEMBER)

        response = self.client.get('/api/groups/', **bearer(self.outsider))
        self.assertEqual(response.json()['data']['groups'], [])

    def test_outsider_cannot_view_group(self):
        group_id = self.create_group(self.admin).json()['data']['group']['id']
        response = self.client.get(f'/api/groups/{group_id}', **bearer(self.outsider))
        self.assertEqual(response.status_code, 403)

    def test_unknown_group_is_not_found(self):
        response = self.client.get('/api/groups/9999', **bearer(self.admin))
        self.assertEqual(response.status_code, 404)

    def test_member_sees_detail(self):
        group_id = self.create_group(self.admin).json()['data']['group']['id']
        self.add_member(group_id, self.member.email)

        response = self.client.get(f'/api/groups/{group_id}', **bearer(self.member))
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertFalse(data['is_admin'])
        self.assertEqual(data['user_role'], MemberRole.MEMBER)
        self.assertEqual([m['user_id'] for m in data['members']], [self.admin.id, self.member.id])

    def test_only_admin_updates_group(self):
        group_id = self.create_group(self.admin).json()['data']['group']['id']
        self.add_member(group_id, self.member.email)

        response = self.client.put(
            f'/api/groups/{group_id}',
            data=json.dumps({'name': 'Renamed'}),
            content_type='application/json',
            **bearer(self.member),
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.put(
            f'/api/groups/{group_id}',
            data=json.dumps({'name': 'Renamed'}),
            content_type='application/json',
            **bearer(self.admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['group']['name'], 'Renamed')

    def test_delete_group_deactivates_its_tasks(self):
        group_id = self.create_group(self.admin).json()['data']['group']['id']
        self.add_member(group_id, self.member.email)
        now = timezone.now()
        task = Task.objects.create(
            title='Ship it',
            start_time=now,
            end_time=now + timedelta(hours=2),
            created_by=self.admin,
            assigned_to=self.member,
            group_id=group_id,
        )

        response = self.client.delete(f'/api/groups/{group_id}', **bearer(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['tasks_deactivated'], 1)

        self.assertFalse(Group.objects.get(id=group_id).is_active)
        task.refresh_from_db()
        self.assertFalse(task.is_active)
        last = TaskUpdate.objects.filter(task=task).last()
        self.assertEqual(last.old_status, TaskStatus.PENDING)
        self.assertIsNone(last.new_status)

        # The group and its tasks are gone for everyone
        self.assertEqual(self.client.get(f'/api/groups/{group_id}', **bearer(self.admin)).status_code, 404)
        self.assertEqual(self.client.get(f'/api/tasks/{task.id}', **bearer(self.member)).status_code, 404)


class MembershipAPITest(GroupTestBase):
    """Test membership edges."""

    def setUp(self):
        super().setUp()
        self.group_id = self.create_group(self.admin).json()['data']['group']['id']

    def test_add_member(self):
        response = self.add_member(self.group_id, 'MEMBER@example.com')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['member']['user_id'], self.member.id)

    def test_add_unknown_email(self):
        response = self.add_member(self.group_id, 'ghost@example.com')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], "User not found with this email")

    def test_add_existing_member_conflicts(self):
        self.add_member(self.group_id, self.member.email)
        response = self.add_member(self.group_id, self.member.email)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(GroupMember.objects.filter(group_id=self.group_id, user=self.member).count(), 1)

    def test_member_cannot_add_members(self):
        self.add_member(self.group_id, self.member.email)
        response = self.add_member(self.group_id, self.outsider.email, user=self.member)
        self.assertEqual(response.status_code, 403)

    def test_member_role_label_grants_no_admin_rights(self):
        self.add_member(self.group_id, self.member.email, role='admin')
        response = self.add_member(self.group_id, self.outsider.email, user=self.member)
        self.assertEqual(response.status_code, 403)

    def test_admin_cannot_be_removed(self):
        response = self.client.delete(
            f'/api/groups/{self.group_id}/members/{self.admin.id}', **bearer(self.admin),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Group admin cannot be removed from the group")

    def test_remove_member(self):
        self.add_member(self.group_id, self.member.email)
        response = self.client.delete(
            f'/api/groups/{self.group_id}/members/{self.member.id}', **bearer(self.admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(GroupMember.objects.filter(group_id=self.group_id, user=self.member).exists())

        # Removal takes effect on the very next request
        response = self.client.get(f'/api/groups/{self.group_id}', **bearer(self.member))
        self.assertEqual(response.status_code, 403)

    def test_remove_non_member(self):
        response = self.client.delete(
            f'/api/groups/{self.group_id}/members/{self.outsider.id}', **bearer(self.admin),
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], "User is not a member of this group")

    def test_update_member_role(self):
        self.add_member(self.group_id, self.member.email)
        response = self.client.put(
            f'/api/groups/{self.group_id}/members/{self.member.id}',
            data=json.dumps({'role': 'admin'}),
            content_type='application/json',
            **bearer(self.admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['member']['role'], MemberRole.ADMIN)

    def test_list_members_requires_membership(self):
        response = self.client.get(f'/api/groups/{self.group_id}/members', **bearer(self.outsider))
        self.assertEqual(response.status_code, 403)

        response = self.client.get(f'/api/groups/{self.group_id}/members', **bearer(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['data']['members']), 1)
