from django.apps import AppConfig


class CheckinConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'checkin'
    verbose_name = 'Walk-in check-in'

    def ready(self):
        import checkin.signals  # noqa
