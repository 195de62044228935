import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('patient', 'Patient'), ('staff', 'Front desk / nursing'), ('doctor', 'Doctor'), ('admin', 'Administrator')], default='staff', max_length=10)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_number', models.CharField(max_length=32, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('contact_number', models.CharField(blank=True, max_length=20)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='ServiceSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weekday', models.CharField(choices=[('mon', 'Monday'), ('tue', 'Tuesday'), ('wed', 'Wednesday'), ('thu', 'Thursday'), ('fri', 'Friday')], max_length=3)),
                ('time_slot', models.CharField(choices=[('morning', 'Morning'), ('afternoon', 'Afternoon')], max_length=10)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('weekday', 'time_slot')},
            },
        ),
        migrations.CreateModel(
            name='ServiceOffering',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('service_type', models.CharField(choices=[('consultation', 'Consultation'), ('dental-consultation', 'Dental consultation'), ('dental-procedure', 'Dental procedure'), ('dental-fluoride', 'Dental fluoride'), ('follow-up', 'Follow-up'), ('out-patient', 'Out-patient'), ('parental-consultation', 'Parental consultation'), ('vaccination-bcg', 'BCG vaccination'), ('vaccination-hepatitis-b', 'Hepatitis B vaccination'), ('vaccination-polio', 'Polio vaccination'), ('vaccination-dtap', 'DTaP vaccination'), ('vaccination-mmr', 'MMR vaccination'), ('vaccination-varicella', 'Varicella vaccination'), ('vaccination-pneumococcal', 'Pneumococcal vaccination'), ('vaccination-hepatitis-a', 'Hepatitis A vaccination'), ('vaccination-influenza', 'Influenza vaccination'), ('vaccination-rabies', 'Rabies vaccination')], max_length=40)),
                ('requires_vital_signs', models.BooleanField(default=True)),
                ('max_capacity', models.PositiveIntegerField(default=20)),
                ('estimated_duration_minutes', models.PositiveIntegerField(default=30)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('position', models.PositiveIntegerField(default=0)),
                ('schedule', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='offerings', to='checkin.serviceschedule')),
            ],
            options={
                'ordering': ['position', 'id'],
                'unique_together': {('schedule', 'service_type')},
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('appointment_number', models.CharField(max_length=32, unique=True)),
                ('service_type', models.CharField(choices=[('consultation', 'Consultation'), ('dental-consultation', 'Dental consultation'), ('dental-procedure', 'Dental procedure'), ('dental-fluoride', 'Dental fluoride'), ('follow-up', 'Follow-up'), ('out-patient', 'Out-patient'), ('parental-consultation', 'Parental consultation'), ('vaccination-bcg', 'BCG vaccination'), ('vaccination-hepatitis-b', 'Hepatitis B vaccination'), ('vaccination-polio', 'Polio vaccination'), ('vaccination-dtap', 'DTaP vaccination'), ('vaccination-mmr', 'MMR vaccination'), ('vaccination-varicella', 'Varicella vaccination'), ('vaccination-pneumococcal', 'Pneumococcal vaccination'), ('vaccination-hepatitis-a', 'Hepatitis A vaccination'), ('vaccination-influenza', 'Influenza vaccination'), ('vaccination-rabies', 'Rabies vaccination')], max_length=40)),
                ('time_slot', models.CharField(choices=[('morning', 'Morning'), ('afternoon', 'Afternoon')], max_length=10)),
                ('status', models.CharField(choices=[('checked_in', 'Checked in'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='checked_in', max_length=16)),
                ('check_in_at', models.DateTimeField()),
                ('requires_vital_signs', models.BooleanField(default=True)),
                ('reason', models.TextField(blank=True)),
                ('symptoms', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='checkin.patient')),
            ],
        ),
        migrations.CreateModel(
            name='CheckInSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('check_in_date', models.DateField(db_index=True)),
                ('day_claim', models.DateField(blank=True, editable=False, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], db_index=True, default='active', max_length=12)),
                ('selected_service', models.CharField(choices=[('consultation', 'Consultation'), ('dental-consultation', 'Dental consultation'), ('dental-procedure', 'Dental procedure'), ('dental-fluoride', 'Dental fluoride'), ('follow-up', 'Follow-up'), ('out-patient', 'Out-patient'), ('parental-consultation', 'Parental consultation'), ('vaccination-bcg', 'BCG vaccination'), ('vaccination-hepatitis-b', 'Hepatitis B vaccination'), ('vaccination-polio', 'Polio vaccination'), ('vaccination-dtap', 'DTaP vaccination'), ('vaccination-mmr', 'MMR vaccination'), ('vaccination-varicella', 'Varicella vaccination'), ('vaccination-pneumococcal', 'Pneumococcal vaccination'), ('vaccination-hepatitis-a', 'Hepatitis A vaccination'), ('vaccination-influenza', 'Influenza vaccination'), ('vaccination-rabies', 'Rabies vaccination')], max_length=40)),
                ('time_slot', models.CharField(choices=[('morning', 'Morning'), ('afternoon', 'Afternoon')], max_length=10)),
                ('vital_signs_required', models.BooleanField(default=True)),
                ('vital_signs_completed', models.BooleanField(default=False)),
                ('vital_signs_completed_at', models.DateTimeField(blank=True, null=True)),
                ('doctor_notified', models.BooleanField(default=False)),
                ('doctor_notified_at', models.DateTimeField(blank=True, null=True)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('urgent', 'Urgent')], db_index=True, default='normal', max_length=8)),
                ('notes', models.CharField(blank=True, max_length=500)),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('appointment', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='checkin_session', to='checkin.appointment')),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='checkins_created', to=settings.AUTH_USER_MODEL)),
                ('doctor_notified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='checkin_sessions', to='checkin.patient')),
                ('vital_signs_recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['check_in_date', 'status'], name='checkin_che_check_i_5c1a2e_idx'),
                    models.Index(fields=['vital_signs_required', 'vital_signs_completed'], name='checkin_che_vital_s_8d0f4b_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('patient', 'day_claim'), name='uniq_checkin_patient_day_claim'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('prefix', models.CharField(max_length=8)),
                ('scope_date', models.DateField()),
                ('value', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'unique_together': {('prefix', 'scope_date')},
            },
        ),
        migrations.CreateModel(
            name='MedicalRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('record_number', models.CharField(max_length=32, unique=True)),
                ('record_type', models.CharField(choices=[('treatment', 'Treatment'), ('dental', 'Dental'), ('immunization', 'Immunization'), ('laboratory', 'Laboratory'), ('imaging', 'Imaging')], max_length=20)),
                ('record_date', models.DateField()),
                ('summary', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='medical_records', to='checkin.appointment')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='medical_records', to='checkin.patient')),
            ],
        ),
        migrations.CreateModel(
            name='Prescription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('prescription_number', models.CharField(max_length=32, unique=True)),
                ('date_issued', models.DateField()),
                ('medications', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], default='active', max_length=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prescriptions', to='checkin.appointment')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('medical_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prescriptions', to='checkin.medicalrecord')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='prescriptions', to='checkin.patient')),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='checkin_aud_action_3f9e21_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='checkin_aud_object__a74c0d_idx'),
                ],
            },
        ),
    ]
