from django.core.management.base import BaseCommand

from casework.services import access_settings


class Command(BaseCommand):
    help = "Create the access policy row if missing and optionally change its link policy / registration mode."

    def add_arguments(self, parser):
        parser.add_argument('--link-policy', choices=access_settings.LINK_POLICIES)
        parser.add_argument('--registration-mode', choices=access_settings.REGISTRATION_MODES)

    def handle(self, *args, **options):
        access_settings.ensure_settings_row()
        changes = {}
        if options.get('link_policy'):
            changes['link_policy'] = options['link_policy']
        if options.get('registration_mode'):
            changes['registration_mode'] = options['registration_mode']

        if changes:
            current = access_settings.update_access_settings(changes)
        else:
            access_settings.invalidate_cache()
            current = access_settings.read_access_settings()
        for key, value in current.as_dict().items():
            self.stdout.write(f"{key}={value}")
        self.stdout.write(self.style.SUCCESS("Access settings ready"))
