from django.core.management.base import BaseCommand

from self_order.tasks import expire_stale_sessions, cleanup_expired_sessions


class Command(BaseCommand):
    help = "Run the self-order expire and/or cleanup sweep once, synchronously"

    def add_arguments(self, parser):
        parser.add_argument(
            "--expire",
            action="store_true",
            help="Expire active sessions past their deadline",
        )
        parser.add_argument(
            "--cleanup",
            action="store_true",
            help="Delete expired sessions past the retention window",
        )

    def handle(self, *args, **options):
        run_expire = options["expire"]
        run_cleanup = options["cleanup"]
        if not run_expire and not run_cleanup:
            run_expire = run_cleanup = True

        if run_expire:
            summary = expire_stale_sessions()
            self.stdout.write(
                self.style.SUCCESS(
                    f"Expire sweep: {summary['expired']} expired, "
                    f"{summary['skipped']} skipped, {summary['failed']} failed"
                )
            )

        if run_cleanup:
            summary = cleanup_expired_sessions()
            self.stdout.write(
                self.style.SUCCESS(
                    f"Cleanup sweep: {summary['deleted']} sessions deleted "
                    f"({summary['items_deleted']} items), {summary['failed']} failed"
                )
            )
