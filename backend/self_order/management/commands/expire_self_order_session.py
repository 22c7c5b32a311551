from django.core.management.base import BaseCommand, CommandError

from self_order.exceptions import SelfOrderError
from self_order.services import SessionExpiryService


class Command(BaseCommand):
    help = "Force-expire a single self-order session (active or submitted)"

    def add_arguments(self, parser):
        parser.add_argument("session_code", help="Session code, e.g. SO-LQ2X8K1B-7Q4Z")

    def handle(self, *args, **options):
        session_code = options["session_code"].strip().upper()

        try:
            session = SessionExpiryService.force_expire(session_code)
        except SelfOrderError as e:
            raise CommandError(f"{e.code}: {e.message}")

        self.stdout.write(
            self.style.SUCCESS(f"Session {session.session_code} is now {session.status}")
        )
