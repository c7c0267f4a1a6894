# apps/tasks/models.py
from django.db import models
from django.conf import settings

from apps.core.models import StatusChoices


class Task(models.Model):
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    # Priorytet = waga w agregacji postępu
    priority = models.PositiveIntegerField(default=1)
    level = models.PositiveIntegerField(default=1)
    progress = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=StatusChoices.choices,
        default=StatusChoices.IN_PROGRESS
    )
    deadline = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='created_tasks'
    )
    project = models.ForeignKey(
        'projects.Project',
        on_delete=models.CASCADE,
        related_name='tasks'
    )

    # Drzewo: usunięcie rodzica usuwa całe poddrzewo
    parent = models.ForeignKey(
        'self',
        null=True, blank=True,
        on_delete=models.CASCADE,
        related_name='children'
    )

    assigned_users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='assigned_tasks'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['project', 'level'], name='task_project_level_idx'),
        ]

    def __str__(self):
        return self.title


class TaskApprovalLog(models.Model):
    class Action(models.TextChoices):
        SUBMIT = 'submit', 'Submit'
        APPROVE = 'approve', 'Approve'
        REJECT = 'reject', 'Reject'

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='approval_logs')
    action = models.CharField(max_length=10, choices=Action.choices)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='approval_logs'
    )
    note = models.TextField(blank=True, default='')
    created_at = models.DateTimeField()

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['task', 'created_at'], name='approval_task_created_idx'),
        ]

    def __str__(self):
        return f"{self.task_id} - {self.action} - {self.created_at}"

    def save(self, *args, **kwargs):
        # Log audytowy: tylko INSERT
        if not self._state.adding:
            raise ValueError("Task approval logs are append-only")
        super().save(*args, **kwargs)
