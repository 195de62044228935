from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from checkin.services.scheduler import get_scheduler


class Command(BaseCommand):
    help = "Mark active check-in sessions past their expiry as expired (run from cron)."

    def add_arguments(self, parser):
        parser.add_argument('--at', help='ISO timestamp to evaluate expiry against (default: now)')

    def handle(self, *args, **options):
        now = timezone.now()
        if options.get('at'):
            now = parse_datetime(options['at'])
            if now is None:
                raise CommandError(f"Invalid --at value: {options['at']}")
            if timezone.is_naive(now):
                now = timezone.make_aware(now)
        reaped = get_scheduler().reap_expired(now)
        self.stdout.write(self.style.SUCCESS(f"Expired {reaped} check-in sessions at {now.isoformat()}"))
