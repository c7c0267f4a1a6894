from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import DomainError
from apps.core.wiring import Container
from apps.projects.application.use_cases import RecalculateProgressInput, RecalculateProgressUseCase


class Command(BaseCommand):
    help = 'Przelicza postęp całego drzewa zadań projektu i zapisuje wynik'

    def add_arguments(self, parser):
        parser.add_argument('project_id', type=int)

    def handle(self, *args, **options):
        use_case = RecalculateProgressUseCase(Container().project_deps())
        try:
            progress = use_case.execute(RecalculateProgressInput(project_id=options['project_id']))
        except DomainError as exc:
            raise CommandError(exc.message)

        self.stdout.write(self.style.SUCCESS(f"Project {options['project_id']} progress: {progress}%"))
