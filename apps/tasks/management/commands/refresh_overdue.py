from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.core.exceptions import DomainError
from apps.core.wiring import Container
from apps.tasks.domain.services.overdue import OverdueSentinel


class Command(BaseCommand):
    help = 'Oznacza przeterminowane zadania jako OVERDUE i powiadamia przypisanych'

    def add_arguments(self, parser):
        parser.add_argument('--project', type=int, default=None, help='Tylko zadania z tego projektu')

    def handle(self, *args, **options):
        container = Container()
        sentinel = OverdueSentinel(container.tasks)

        try:
            with transaction.atomic():
                outcome = sentinel.sweep(project_id=options['project'])
                container.dispatcher.publish(outcome.events)
        except DomainError as exc:
            raise CommandError(exc.message)

        self.stdout.write(self.style.SUCCESS(f"Marked {len(outcome.value)} tasks as overdue."))
        for task in outcome.value:
            self.stdout.write(f"- {task.title} ({task.deadline})")
