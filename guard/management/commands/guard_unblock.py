"""
Management command to lift request guard blocks.

Usage:
    python manage.py guard_unblock ip:203.0.113.7 user:42
    python manage.py guard_unblock --list

Blocks never expire on their own; this command (or the admin action) is the
administrative reset.
"""

from django.core.management.base import BaseCommand, CommandError

from core.exceptions import GuardPersistenceError
from guard.conf import GuardConfig
from guard.models import GuardRecord
from guard.store import GuardStore


class Command(BaseCommand):
    help = 'Reset request guard state for one or more identity keys'

    def add_arguments(self, parser):
        parser.add_argument(
            'identity_keys',
            nargs='*',
            help='Identity keys to reset, e.g. ip:203.0.113.7 or user:42',
        )
        parser.add_argument(
            '--list',
            action='store_true',
            help='List blocked identities and exit',
        )

    def handle(self, *args, **options):
        if options['list']:
            blocked = GuardRecord.objects.filter(state=GuardRecord.State.BLOCKED)
            for record in blocked:
                self.stdout.write(f'{record.identity_key}\t{record.last_rule}\t{record.blocked_at}')
            self.stdout.write(self.style.SUCCESS(f'{blocked.count()} blocked identities'))
            return

        if not options['identity_keys']:
            raise CommandError('Give at least one identity key, or --list.')

        store = GuardStore(GuardConfig.from_settings())
        for key in options['identity_keys']:
            try:
                found = store.reset(key)
            except GuardPersistenceError as e:
                raise CommandError(str(e)) from e

            if found:
                self.stdout.write(self.style.SUCCESS(f'Reset {key}'))
            else:
                self.stdout.write(self.style.WARNING(f'No guard record for {key}'))
