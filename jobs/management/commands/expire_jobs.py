from django.core.management.base import BaseCommand

from jobs.services import expire_jobs


class Command(BaseCommand):
    help = "Close published jobs whose deadline or expiry date has passed."

    def handle(self, *args, **options):
        count = expire_jobs()
        self.stdout.write(self.style.SUCCESS(f"{count} job(s) expired"))
