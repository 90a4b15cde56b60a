from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from queueing.models import User
from queueing.services.availability import get_availability

TEST_SET = [
    ("admin1", User.ROLE_ADMIN),
    ("nurse1", User.ROLE_NURSE),
    ("billing1", User.ROLE_BILLING),
    ("doctor1", User.ROLE_DOCTOR),
    ("patient1", User.ROLE_PATIENT),
]


class Command(BaseCommand):
    help = "Ensure one user per role exists with a known password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='123456')

    def handle(self, *args, **opts):
        password = make_password(opts['password'])
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": password, "is_active": True},
            )
            if not created:
                # reset password, role and active flag
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            if role == User.ROLE_DOCTOR:
                get_availability(u)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
