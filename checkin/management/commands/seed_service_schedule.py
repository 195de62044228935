"""
Management command to load the clinic's weekly service schedule.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from checkin.models import ServiceOffering, ServiceSchedule
from checkin.services.catalog import ServiceCatalog

CONSULTATION = ('consultation', True, 30, 30, 'General medical consultation')
DENTAL = ('dental-consultation', False, 15, 45, 'Dental check-up and consultation')
DENTAL_PROCEDURE = ('dental-procedure', True, 10, 60, 'Dental procedures and treatments')
DENTAL_FLUORIDE = ('dental-fluoride', True, 20, 30, 'Dental consultation with fluoride varnish application')
FOLLOW_UP = ('follow-up', True, 25, 20, 'Follow-up consultation for ongoing treatment')
OUT_PATIENT = ('out-patient', True, 25, 45, 'Out-patient consultation and treatment')
PARENTAL = ('parental-consultation', True, 20, 40, 'Parental and family health consultation')


def vaccine(code, label, capacity=20, minutes=15):
    return (f'vaccination-{code}', True, capacity, minutes, label)


# (weekday, slot) -> (service_type, requires_vitals, capacity, minutes, description)
WEEKLY_SCHEDULE = {
    ('mon', 'morning'): [
        CONSULTATION, DENTAL, DENTAL_PROCEDURE,
        vaccine('bcg', 'BCG vaccination for tuberculosis protection'),
        vaccine('hepatitis-b', 'Hepatitis B vaccination'),
        vaccine('polio', 'Polio vaccination (OPV/IPV)'),
        vaccine('dtap', 'DTaP vaccination (Diphtheria, Tetanus, Pertussis)'),
        vaccine('mmr', 'MMR vaccination (Measles, Mumps, Rubella)'),
    ],
    ('mon', 'afternoon'): [FOLLOW_UP, DENTAL, vaccine('influenza', 'Seasonal influenza vaccination', 30)],
    ('tue', 'morning'): [
        OUT_PATIENT,
        vaccine('pneumococcal', 'Pneumococcal vaccination'),
        vaccine('varicella', 'Varicella (Chickenpox) vaccination'),
    ],
    ('tue', 'afternoon'): [FOLLOW_UP, DENTAL, vaccine('hepatitis-a', 'Hepatitis A vaccination')],
    ('wed', 'morning'): [DENTAL_FLUORIDE, vaccine('rabies', 'Rabies vaccination', 15, 20)],
    ('wed', 'afternoon'): [FOLLOW_UP, DENTAL, vaccine('influenza', 'Seasonal influenza vaccination', 30)],
    ('thu', 'morning'): [
        OUT_PATIENT, DENTAL_PROCEDURE,
        vaccine('bcg', 'BCG vaccination for tuberculosis protection'),
    ],
    ('thu', 'afternoon'): [FOLLOW_UP, DENTAL, vaccine('mmr', 'MMR vaccination (Measles, Mumps, Rubella)')],
    ('fri', 'morning'): [PARENTAL, vaccine('dtap', 'DTaP vaccination (Diphtheria, Tetanus, Pertussis)')],
    ('fri', 'afternoon'): [FOLLOW_UP, DENTAL, vaccine('polio', 'Polio vaccination (OPV/IPV)')],
}


class Command(BaseCommand):
    help = "Load the weekly service schedule (idempotent; --replace rewrites existing slots)."

    def add_arguments(self, parser):
        parser.add_argument('--replace', action='store_true', help='Drop offerings not in the default schedule')

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for (weekday, slot), services in WEEKLY_SCHEDULE.items():
            schedule, _ = ServiceSchedule.objects.get_or_create(
                weekday=weekday, time_slot=slot, defaults={'is_active': True},
            )
            if options['replace']:
                keep = [s[0] for s in services]
                schedule.offerings.exclude(service_type__in=keep).delete()
            for position, (service_type, vitals, capacity, minutes, description) in enumerate(services):
                _, created = ServiceOffering.objects.update_or_create(
                    schedule=schedule,
                    service_type=service_type,
                    defaults={
                        'requires_vital_signs': vitals,
                        'max_capacity': capacity,
                        'estimated_duration_minutes': minutes,
                        'description': description,
                        'position': position,
                    },
                )
                created_count += int(created)
            self.stdout.write(f"{weekday} {slot}: {len(services)} services")
        ServiceCatalog().invalidate()
        self.stdout.write(self.style.SUCCESS(f"Service schedule ready ({created_count} new offerings)."))
