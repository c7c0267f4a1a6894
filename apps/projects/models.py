# apps/projects/models.py
from django.db import models
from django.conf import settings

from apps.core.models import StatusChoices


class Project(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=StatusChoices.choices,
        default=StatusChoices.NOT_STARTED
    )
    # Wyliczany z drzewa zadań (zapisywany przy każdym odczycie)
    progress = models.PositiveIntegerField(default=0)

    # Terminy
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='ProjectMember',
        related_name='projects'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class ProjectMember(models.Model):
    class RoleChoices(models.TextChoices):
        LEADER = 'leader', 'Leader'
        VICE_LEADER = 'vice_leader', 'Vice leader'
        MEMBER = 'member', 'Member'

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=RoleChoices.choices, default=RoleChoices.MEMBER)

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['project', 'user'], name='unique_project_member'),
        ]

    def __str__(self):
        return f"{self.user_id} @ {self.project_id} ({self.role})"


class ProjectLog(models.Model):
    # Luźne ID: dziennik przeżywa usunięcie projektu
    project_id = models.BigIntegerField(db_index=True)

    class Action(models.TextChoices):
        CREATED = 'created', 'Created'
        UPDATED = 'updated', 'Updated'
        STATUS_CHANGED = 'status_changed', 'Status changed'
        READ = 'read', 'Read'

    action = models.CharField(max_length=20, choices=Action.choices)
    description = models.TextField(blank=True)

    # Migawka w chwili zdarzenia
    progress = models.PositiveIntegerField(null=True, blank=True)
    new_status = models.CharField(max_length=20, choices=StatusChoices.choices, blank=True, default='')

    performed_by_id = models.BigIntegerField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"{self.project_id} - {self.action} - {self.timestamp}"


class InviteCode(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='invite_codes')
    code = models.CharField(max_length=16, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.code} -> {self.project_id}"
