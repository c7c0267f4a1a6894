# apps/reports/models.py
from django.db import models
from django.conf import settings


class ActivityLog(models.Model):
    class ActivityType(models.TextChoices):
        CREATED_TASK = 'created_task', 'Created task'
        UPDATED_TASK = 'updated_task', 'Updated task'
        DELETED_TASK = 'deleted_task', 'Deleted task'
        CREATED_PROJECT = 'created_project', 'Created project'
        UPDATED_PROJECT = 'updated_project', 'Updated project'
        DELETED_PROJECT = 'deleted_project', 'Deleted project'
        UPDATED_PROJECT_MEMBER = 'updated_project_member', 'Updated project member'
        SUBMITTED_TASK = 'submitted_task', 'Submitted task'
        APPROVED_TASK = 'approved_task', 'Approved task'
        REJECTED_TASK = 'rejected_task', 'Rejected task'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='activities')
    activity_type = models.CharField(max_length=30, choices=ActivityType.choices)
    description = models.TextField()

    # Cel aktywności (luźno: typ + id, obiekt mógł już zostać usunięty)
    target_type = models.CharField(max_length=50)
    target_id = models.BigIntegerField(null=True, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='activity_user_time_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.activity_type} - {self.timestamp}"
