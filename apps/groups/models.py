from django.conf import settings
from django.db import models


class MemberRole(models.TextChoices):
    ADMIN = 'admin', 'Admin'
    MEMBER = 'member', 'Member'


class Group(models.Model):
    """
    A task group owned by a single admin user.

    Deletion is soft: is_active is cleared and the group's tasks are
    deactivated with it.
    """
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='administered_groups',
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'groups'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['admin'], name='idx_groups_admin_id'),
        ]

    def __str__(self):
        return self.name


class GroupMember(models.Model):
    """Membership edge: one row per (group, user)."""
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='group_memberships',
    )
    role = models.CharField(max_length=10, choices=MemberRole.choices, default=MemberRole.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_members'
        constraints = [
            models.UniqueConstraint(fields=['group', 'user'], name='unique_group_member'),
        ]
        indexes = [
            models.Index(fields=['user'], name='idx_group_members_user_id'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.group_id} ({self.role})"
