# apps/notifications/models.py
from django.db import models
from django.conf import settings


class Notification(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    message = models.TextField()

    class NotificationType(models.TextChoices):
        TASK_ASSIGNED = 'task_assigned', 'Task assigned'
        TASK_UPDATED = 'task_updated', 'Task updated'
        TASK_DELETED = 'task_deleted', 'Task deleted'
        TASK_APPROVED = 'task_approved', 'Task approved'
        TASK_REJECTED = 'task_rejected', 'Task rejected'
        TASK_SUBMITTED = 'task_submitted', 'Task submitted'
        PROJECT_UPDATED = 'project_updated', 'Project updated'
        PROJECT_DELETED = 'project_deleted', 'Project deleted'

    type = models.CharField(max_length=30, choices=NotificationType.choices)

    # Na czym? (luźne powiązanie: id + nazwa typu, np. "Task", "TaskApprovalLog")
    related_id = models.PositiveBigIntegerField(null=True, blank=True)
    related_type = models.CharField(max_length=50, blank=True, default='')

    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.type} - {self.message[:40]}"
