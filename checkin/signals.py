"""
Schedule edits drop the cached catalog for the affected slot.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import ServiceOffering, ServiceSchedule
from .services.catalog import ServiceCatalog


@receiver([post_save, post_delete], sender=ServiceSchedule)
def on_schedule_changed(sender, instance, **kwargs):
    ServiceCatalog().invalidate(instance.weekday, instance.time_slot)


@receiver([post_save, post_delete], sender=ServiceOffering)
def on_offering_changed(sender, instance, **kwargs):
    schedule = ServiceSchedule.objects.filter(id=instance.schedule_id).first()
    if schedule is None:
        # schedule deleted in the same cascade
        ServiceCatalog().invalidate()
        return
    ServiceCatalog().invalidate(schedule.weekday, schedule.time_slot)
