from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from rest_framework.authtoken.models import Token

from checkin.models import User

TEST_SET = [
    ("frontdesk1", "staff"),
    ("doctor1", "doctor"),
    ("admin1", "admin"),
]


class Command(BaseCommand):
    help = "Ensure test staff accounts exist with password=123456 and an API token (idempotent)."

    def handle(self, *args, **opts):
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password("123456"), "is_active": True},
            )
            if not created:
                # reset password, activation and role
                u.password = make_password("123456")
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            token, _ = Token.objects.get_or_create(user=u)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role}) token={token.key}"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
