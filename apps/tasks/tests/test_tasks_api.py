"""
Integration tests for task endpoints and the audit trail.
"""
import json
from datetime import timedelta
from unittest import mock

from django.test import TestCase, Client
from django.utils import timezone

from apps.core.exceptions import TaskNotFound
from apps.groups.models import Group, GroupMember, MemberRole
from apps.identity.dtos import Principal
from apps.identity.jwt_auth import create_token_pair
from apps.identity.models import User, UserType
from apps.tasks import services
from apps.tasks.dtos import TaskPatch
from apps.tasks.models import Task, TaskStatus, TaskUpdate


def bearer(user):
    access, _ = create_token_pair(user)
    return {'HTTP_AUTHORIZATION': f'Bearer {access}'}


def replay(task):
    """Final status reconstructed from the audit trail."""
    status = None
    for update in TaskUpdate.objects.filter(task=task).order_by('created_at', 'id'):
        if update.new_status is not None:
            status = update.new_status
    return status


class TaskTestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(
            email='a@example.com', password='pw', first_name='Alice', last_name='Admin',
            user_type=UserType.GROUP_ADMIN,
        )
        self.member = User.objects.create_user(
            email='b@example.com', password='pw', first_name='Bob', last_name='Member',
        )
        self.stranger = User.objects.create_user(
            email='c@example.com', password='pw', first_name='Cy', last_name='Stranger',
        )
        self.group = Group.objects.create(name='Team', admin=self.admin)
        GroupMember.objects.create(group=self.group, user=self.admin, role=MemberRole.ADMIN)
        GroupMember.objects.create(group=self.group, user=self.member, role=MemberRole.MEMBER)

        self.now = timezone.now()

    def create_task(self, user, **overrides):
        payload = {
            'title': 'Write report',
            'start_time': (self.now + timedelta(hours=1)).isoformat(),
            'end_time': (self.now + timedelta(hours=2)).isoformat(),
            'priority': 'high',
        }
        payload.update(overrides)
        return self.client.post(
            '/api/tasks/', data=json.dumps(payload), content_type='application/json', **bearer(user),
        )

    def set_status(self, task_id, status, user):
        return self.client.put(
            f'/api/tasks/{task_id}/status',
            data=json.dumps({'status': status}),
            content_type='application/json',
            **bearer(user),
        )

    def update(self, task_id, payload, user):
        return self.client.put(
            f'/api/tasks/{task_id}', data=json.dumps(payload), content_type='application/json', **bearer(user),
        )


class TaskLifecycleTest(TaskTestBase):
    """Group task from creation to completion."""

    def test_group_task_lifecycle_audit_trail(self):
        response = self.create_task(self.admin, group_id=self.group.id, assigned_to=self.member.id)
        self.assertEqual(response.status_code, 201)
        task = response.json()['data']['task']
        self.assertEqual(task['status'], TaskStatus.PENDING)
        self.assertEqual(task['assigned_to'], self.member.id)

        self.assertEqual(self.set_status(task['id'], 'in_progress', self.member).status_code, 200)
        self.assertEqual(self.set_status(task['id'], 'completed', self.member).status_code, 200)

        trail = list(
            TaskUpdate.objects.filter(task_id=task['id']).order_by('created_at', 'id')
            .values_list('old_status', 'new_status')
        )
        self.assertEqual(trail, [
            (None, TaskStatus.PENDING),
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
        ])
        self.assertEqual(replay(Task.objects.get(id=task['id'])), TaskStatus.COMPLETED)

        # A stranger gets Forbidden and changes nothing
        response = self.set_status(task['id'], 'pending', self.stranger)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(Task.objects.get(id=task['id']).status, TaskStatus.COMPLETED)
        self.assertEqual(TaskUpdate.objects.filter(task_id=task['id']).count(), 3)

    def test_status_change_accepts_patch(self):
        task_id = self.create_task(self.member).json()['data']['task']['id']
        response = self.client.patch(
            f'/api/tasks/{task_id}/status',
            data=json.dumps({'status': 'in_progress'}),
            content_type='application/json',
            **bearer(self.member),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Task.objects.get(id=task_id).status, TaskStatus.IN_PROGRESS)

    def test_updates_endpoint_is_oldest_first_and_detail_newest_first(self):
        task_id = self.create_task(self.admin).json()['data']['task']['id']
        self.set_status(task_id, 'in_progress', self.admin)

        updates = self.client.get(f'/api/tasks/{task_id}/updates', **bearer(self.admin)).json()['data']['updates']
        self.assertEqual([u['new_status'] for u in updates], ['pending', 'in_progress'])
        self.assertIsNone(updates[0]['old_status'])

        detail = self.client.get(f'/api/tasks/{task_id}', **bearer(self.admin)).json()['data']
        self.assertEqual([u['new_status'] for u in detail['updates']], ['in_progress', 'pending'])


class TaskCreateTest(TaskTestBase):

    def test_end_before_start_rejected(self):
        response = self.create_task(
            self.admin,
            start_time=(self.now + timedelta(hours=2)).isoformat(),
            end_time=(self.now + timedelta(hours=1)).isoformat(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Task.objects.exists())

    def test_defaults_to_self_assignment(self):
        task = self.create_task(self.member).json()['data']['task']
        self.assertEqual(task['assigned_to'], self.member.id)
        self.assertEqual(task['created_by'], self.member.id)

    def test_individual_cannot_assign_outside_group(self):
        response = self.create_task(self.member, assigned_to=self.stranger.id)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "Individual users can only assign tasks to themselves")

    def test_member_cannot_assign_others_in_group(self):
        response = self.create_task(self.member, group_id=self.group.id, assigned_to=self.admin.id)
        self.assertEqual(response.status_code, 403)

    def test_non_member_cannot_create_in_group(self):
        response = self.create_task(self.stranger, group_id=self.group.id)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "You are not a member of this group")

    def test_assignee_must_be_group_member(self):
        response = self.create_task(self.admin, group_id=self.group.id, assigned_to=self.stranger.id)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Assigned user is not a member of this group")

    def test_unknown_group(self):
        response = self.create_task(self.admin, group_id=9999)
        self.assertEqual(response.status_code, 404)


class TaskUpdateTest(TaskTestBase):

    def setUp(self):
        super().setUp()
        response = self.create_task(self.admin, group_id=self.group.id, assigned_to=self.member.id)
        self.task_id = response.json()['data']['task']['id']

    def test_update_records_field_changes(self):
        response = self.update(self.task_id, {'title': 'Write final report', 'priority': 'low'}, self.member)
        self.assertEqual(response.status_code, 200)

        last = TaskUpdate.objects.filter(task_id=self.task_id).last()
        self.assertIn('title: Write report → Write final report', last.notes)
        self.assertIn('priority: high → low', last.notes)
        self.assertEqual(last.old_status, last.new_status)

    def test_update_that_changes_nothing_writes_no_row(self):
        response = self.update(self.task_id, {'title': 'Write report'}, self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(TaskUpdate.objects.filter(task_id=self.task_id).count(), 1)

    def test_empty_update_rejected(self):
        response = self.update(self.task_id, {}, self.admin)
        self.assertEqual(response.status_code, 400)

    def test_violating_time_update_leaves_times_unchanged(self):
        before = Task.objects.get(id=self.task_id)
        response = self.update(
            self.task_id, {'end_time': (self.now - timedelta(hours=1)).isoformat()}, self.admin,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "End time must be after start time")

        after = Task.objects.get(id=self.task_id)
        self.assertEqual(after.start_time, before.start_time)
        self.assertEqual(after.end_time, before.end_time)

    def test_assignee_cannot_reassign(self):
        response = self.update(self.task_id, {'assigned_to': self.admin.id}, self.member)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "Only task creator or group admin can reassign tasks")

    def test_status_change_through_update_is_replayable(self):
        self.update(self.task_id, {'status': 'in_progress', 'title': 'Write draft'}, self.member)
        task = Task.objects.get(id=self.task_id)
        self.assertEqual(replay(task), task.status)


class TaskAccessTest(TaskTestBase):

    def setUp(self):
        super().setUp()
        self.task_id = self.create_task(self.member).json()['data']['task']['id']

    def test_stranger_is_forbidden_on_active_task(self):
        response = self.client.get(f'/api/tasks/{self.task_id}', **bearer(self.stranger))
        self.assertEqual(response.status_code, 403)

    def test_absent_task_is_not_found(self):
        response = self.client.get('/api/tasks/99999', **bearer(self.stranger))
        self.assertEqual(response.status_code, 404)

    def test_deleted_task_is_not_found_for_everyone(self):
        response = self.client.delete(f'/api/tasks/{self.task_id}', **bearer(self.member))
        self.assertEqual(response.status_code, 200)

        last = TaskUpdate.objects.filter(task_id=self.task_id).last()
        self.assertEqual(last.notes, "Task deleted")
        self.assertIsNone(last.new_status)

        for user in (self.member, self.stranger):
            response = self.client.get(f'/api/tasks/{self.task_id}', **bearer(user))
            self.assertEqual(response.status_code, 404)

    def test_delete_between_check_and_write_is_not_found(self):
        stale = Task.objects.get(id=self.task_id)
        Task.objects.filter(id=self.task_id).update(is_active=False)
        principal = Principal(id=self.member.id, email=self.member.email, user_type=self.member.user_type)

        with mock.patch('apps.tasks.services.authorize_task_access', return_value=stale):
            with self.assertRaises(TaskNotFound):
                services.update_task_status(principal, self.task_id, TaskStatus.COMPLETED)
            with self.assertRaises(TaskNotFound):
                services.update_task(principal, self.task_id, TaskPatch.from_dict({'title': 'Renamed'}))
            with self.assertRaises(TaskNotFound):
                services.delete_task(principal, self.task_id)

        task = Task.objects.get(id=self.task_id)
        self.assertEqual(task.status, TaskStatus.PENDING)
        self.assertEqual(task.title, 'Write report')
        self.assertEqual(TaskUpdate.objects.filter(task_id=self.task_id).count(), 1)

    def test_assignee_cannot_delete(self):
        task_id = self.create_task(
            self.admin, group_id=self.group.id, assigned_to=self.member.id,
        ).json()['data']['task']['id']
        response = self.client.delete(f'/api/tasks/{task_id}', **bearer(self.member))
        self.assertEqual(response.status_code, 403)


class TaskListTest(TaskTestBase):

    def setUp(self):
        super().setUp()
        self.create_task(self.member, title='Alpha', priority='low')
        self.create_task(self.member, title='Beta', priority='high')
        self.create_task(self.admin, title='Gamma', group_id=self.group.id, assigned_to=self.member.id)
        self.create_task(self.stranger, title='Hidden')

    def titles(self, user, query=''):
        response = self.client.get(f'/api/tasks/{query}', **bearer(user))
        self.assertEqual(response.status_code, 200)
        return [t['title'] for t in response.json()['data']['tasks']]

    def test_visibility(self):
        self.assertEqual(sorted(self.titles(self.member)), ['Alpha', 'Beta', 'Gamma'])
        self.assertEqual(self.titles(self.stranger), ['Hidden'])

    def test_filter_and_sort(self):
        self.assertEqual(self.titles(self.member, '?priority=low'), ['Alpha'])
        self.assertEqual(self.titles(self.member, '?search=alp'), ['Alpha'])
        self.assertEqual(self.titles(self.member, '?sort_by=title&sort_order=asc'), ['Alpha', 'Beta', 'Gamma'])
        self.assertEqual(self.titles(self.member, f'?group_id={self.group.id}'), ['Gamma'])

    def test_pagination(self):
        response = self.client.get('/api/tasks/?limit=2&sort_by=title&sort_order=asc', **bearer(self.member))
        data = response.json()['data']
        self.assertEqual([t['title'] for t in data['tasks']], ['Alpha', 'Beta'])
        self.assertEqual(data['pagination'], {
            'current_page': 1, 'total_pages': 2, 'total_items': 3, 'items_per_page': 2,
        })

    def test_limit_is_capped(self):
        response = self.client.get('/api/tasks/?limit=500', **bearer(self.member))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['pagination']['items_per_page'], 100)

    def test_page_must_be_positive(self):
        response = self.client.get('/api/tasks/?page=0', **bearer(self.member))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errors'], [
            {'field': 'page', 'message': "Page must be a positive integer"},
        ])

    def test_inactive_group_tasks_drop_out_of_group_listing(self):
        self.client.delete(f'/api/groups/{self.group.id}', **bearer(self.admin))
        response = self.client.get(f'/api/groups/{self.group.id}/tasks', **bearer(self.admin))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(sorted(self.titles(self.member)), ['Alpha', 'Beta'])
