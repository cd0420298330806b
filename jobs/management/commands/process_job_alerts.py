from django.core.management.base import BaseCommand

from jobs.alerts import process_alerts


class Command(BaseCommand):
    help = "Notify candidates whose job alerts are due and have new matching jobs."

    def handle(self, *args, **options):
        sent = process_alerts()
        self.stdout.write(self.style.SUCCESS(f"{sent} alert notification(s) sent"))
