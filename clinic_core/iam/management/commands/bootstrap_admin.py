# backend/clinic_core/iam/management/commands/bootstrap_admin.py

import os

from django.core.management.base import BaseCommand, CommandError

from clinic_core.common.errors import DomainError
from clinic_core.iam.services import AccountService


class Command(BaseCommand):
    help = "Create the first administrator of an empty account directory."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True)
        parser.add_argument("--display-name", default="Administrator")
        parser.add_argument(
            "--password-env",
            default="CLINIC_BOOTSTRAP_PASSWORD",
            help="Environment variable holding the initial password.",
        )

    def handle(self, *args, **options):
        secret = os.getenv(options["password_env"], "")
        if not secret:
            raise CommandError(f"Set {options['password_env']} to the initial administrator password.")

        try:
            account = AccountService.bootstrap_admin(
                email=options["email"],
                secret=secret,
                display_name=options["display_name"],
            )
        except DomainError as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(self.style.SUCCESS(f"Administrator created: {account.email} ({account.id})"))
