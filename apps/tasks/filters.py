# apps/tasks/filters.py
from datetime import timedelta

import django_filters
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from apps.core.domain.entities import Status
from apps.core.exceptions import ValidationError
from .models import Task


class TaskFilter(django_filters.FilterSet):
    title = django_filters.CharFilter(
        lookup_expr='icontains',
        label="Title contains",
    )
    search = django_filters.CharFilter(
        method='filter_search',
        label="Search",
    )
    status = django_filters.CharFilter(
        method='filter_status',
        label="Status",
    )
    project = django_filters.NumberFilter(
        field_name='project_id',
        label="Project",
    )
    due_soon = django_filters.BooleanFilter(
        method='filter_due_soon',
        label="Due soon",
    )
    ordering = django_filters.OrderingFilter(
        fields=(
            ('title', 'title'),
            ('deadline', 'deadline'),
            ('status', 'status'),
            ('priority', 'priority'),
            ('progress', 'progress'),
            ('project__name', 'project'),
            ('created_at', 'created'),
        ),
    )

    class Meta:
        model = Task
        fields = ['title', 'search', 'status', 'project', 'due_soon']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))

    def filter_status(self, queryset, name, value):
        # Nieznany status nie zawęża wyników
        try:
            status = Status.parse(value)
        except ValidationError:
            return queryset
        return queryset.filter(status=status.value)

    def filter_due_soon(self, queryset, name, value):
        if not value:
            return queryset
        now = timezone.now()
        threshold = now + timedelta(hours=settings.TEAMWORK_DUE_SOON_HOURS)
        return queryset.filter(deadline__gt=now, deadline__lte=threshold)

    @property
    def qs(self):
        queryset = super().qs
        # Domyślnie najnowsze na górze
        if not self.data.get('ordering'):
            queryset = queryset.order_by('-created_at', '-id')
        return queryset
