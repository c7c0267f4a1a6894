# apps/core/wiring.py
from django.db import transaction

from apps.notifications.adapters.orm_notifier import DjangoNotifier
from apps.notifications.dispatch import OnCommitEventDispatcher
from apps.projects.adapters.orm_repositories import (
    DjangoInviteCodeRepository, DjangoMembershipRepository, DjangoProjectLog, DjangoProjectRepository,
    DjangoUserDirectory,
)
from apps.projects.application.use_cases import ProjectDeps
from apps.reports.adapters.orm_activity_log import DjangoActivityLog
from apps.reports.application.use_cases import MemberEvaluationReportUseCase
from apps.tasks.adapters.orm_repositories import DjangoApprovalLogRepository, DjangoTaskRepository
from apps.tasks.application.use_cases import TaskDeps


class Container:
    """
    Ręczne Dependency Injection: adaptery Django + dyspozytor zdarzeń po COMMIT.
    Przypadki użycia dostają gotowe zależności: CreateTaskUseCase(container.task_deps()).
    """

    def __init__(self):
        self.tasks = DjangoTaskRepository()
        self.approvals = DjangoApprovalLogRepository()
        self.projects = DjangoProjectRepository()
        self.memberships = DjangoMembershipRepository()
        self.users = DjangoUserDirectory()
        self.invites = DjangoInviteCodeRepository()
        self.project_log = DjangoProjectLog()
        self.activity_log = DjangoActivityLog()
        self.notifier = DjangoNotifier()
        self.dispatcher = OnCommitEventDispatcher(
            self.notifier,
            activity_log=self.activity_log,
            project_log=self.project_log,
        )

    def task_deps(self) -> TaskDeps:
        return TaskDeps(
            tasks=self.tasks,
            projects=self.projects,
            memberships=self.memberships,
            users=self.users,
            approvals=self.approvals,
            dispatcher=self.dispatcher,
            atomic=transaction.atomic,
        )

    def project_deps(self) -> ProjectDeps:
        return ProjectDeps(
            projects=self.projects,
            memberships=self.memberships,
            users=self.users,
            tasks=self.tasks,
            logs=self.project_log,
            dispatcher=self.dispatcher,
            invites=self.invites,
            atomic=transaction.atomic,
        )

    def member_evaluation_report(self) -> MemberEvaluationReportUseCase:
        return MemberEvaluationReportUseCase(self.projects, self.memberships, self.tasks, self.approvals)
