from django.conf import settings
from django.core.management.base import BaseCommand

from core.audit import purge_audit_events


class Command(BaseCommand):
    help = "Purge audit events older than N days, optionally only those whose action starts with a prefix."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention window in days (default: AUDIT_RETENTION_DAYS).",
        )
        parser.add_argument("--action", default="", help="Only purge events whose action starts with this prefix, e.g. risk.review.")
        parser.add_argument("--dry-run", action="store_true", help="Only show how many rows would be deleted.")

    def handle(self, *args, **options):
        days = options["days"] or settings.AUDIT_RETENTION_DAYS
        count = purge_audit_events(days=days, action_prefix=options["action"], dry_run=options["dry_run"])

        if options["dry_run"]:
            self.stdout.write(f"[dry-run] {count} audit events older than {days} days would be deleted.")
            return
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} audit events older than {days} days."))
