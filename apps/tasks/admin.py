from django.contrib import admin
from .models import Task, TaskUpdate


class TaskUpdateInline(admin.TabularInline):
    model = TaskUpdate
    extra = 0
    can_delete = False
    fields = ['user', 'old_status', 'new_status', 'notes', 'created_at']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'status', 'priority', 'assigned_to', 'group', 'end_time', 'is_active']
    list_filter = ['status', 'priority', 'is_active']
    search_fields = ['title', 'description']
    date_hierarchy = 'start_time'
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['created_by', 'assigned_to', 'group']
    inlines = [TaskUpdateInline]


@admin.register(TaskUpdate)
class TaskUpdateAdmin(admin.ModelAdmin):
    list_display = ['id', 'task', 'user', 'old_status', 'new_status', 'created_at']
    list_filter = ['new_status']
    search_fields = ['notes']
    readonly_fields = ['task', 'user', 'old_status', 'new_status', 'notes', 'created_at']

    def has_change_permission(self, request, obj=None):
        return False
