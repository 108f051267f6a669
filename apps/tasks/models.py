from django.conf import settings
from django.db import models
from django.db.models import F, Q


class TaskPriority(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class TaskStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    OVERDUE = 'overdue', 'Overdue'


# Statuses the overdue sweep moves to OVERDUE once end_time has passed
OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


class Task(models.Model):
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    priority = models.CharField(max_length=10, choices=TaskPriority.choices, default=TaskPriority.MEDIUM)
    status = models.CharField(max_length=20, choices=TaskStatus.choices, default=TaskStatus.PENDING)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='created_tasks',
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='assigned_tasks',
    )
    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks',
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(condition=Q(end_time__gt=F('start_time')), name='task_end_after_start'),
        ]
        indexes = [
            models.Index(fields=['assigned_to'], name='idx_tasks_assigned_to'),
            models.Index(fields=['created_by'], name='idx_tasks_created_by'),
            models.Index(fields=['group'], name='idx_tasks_group_id'),
            models.Index(fields=['status'], name='idx_tasks_status'),
            models.Index(fields=['start_time', 'end_time'], name='idx_tasks_time_range'),
        ]

    def __str__(self):
        return self.title


class TaskUpdate(models.Model):
    """
    Immutable audit row. One per create, edit, status change or delete.

    old_status is null only on the creation row; new_status is null only on
    the deletion row.
    """
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='updates')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='task_updates',
    )
    old_status = models.CharField(max_length=20, choices=TaskStatus.choices, null=True, blank=True)
    new_status = models.CharField(max_length=20, choices=TaskStatus.choices, null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'task_updates'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['task', 'created_at'], name='idx_task_updates_task'),
        ]

    def __str__(self):
        return f"Task {self.task_id}: {self.old_status} -> {self.new_status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Task updates are append-only")
        super().save(*args, **kwargs)
