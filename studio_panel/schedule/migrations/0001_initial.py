from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Venue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='название')),
                ('address', models.CharField(blank=True, max_length=300, verbose_name='адрес')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_venues', to='tenants.tenant', verbose_name='Организация')),
            ],
            options={
                'verbose_name': 'зал',
                'verbose_name_plural': 'залы',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Teacher',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=200, verbose_name='ФИО')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email')),
                ('phone', models.CharField(blank=True, max_length=30, verbose_name='телефон')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_teachers', to='tenants.tenant', verbose_name='Организация')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='teacher_profiles', to=settings.AUTH_USER_MODEL, verbose_name='пользователь')),
            ],
            options={
                'verbose_name': 'преподаватель',
                'verbose_name_plural': 'преподаватели',
                'ordering': ['full_name'],
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=200, verbose_name='ФИО')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email')),
                ('phone', models.CharField(blank=True, max_length=30, verbose_name='телефон')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_students', to='tenants.tenant', verbose_name='Организация')),
            ],
            options={
                'verbose_name': 'ученик',
                'verbose_name_plural': 'ученики',
                'ordering': ['full_name'],
            },
        ),
        migrations.CreateModel(
            name='Group',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='название группы')),
                ('status', models.CharField(choices=[('active', 'Активна'), ('paused', 'На паузе'), ('closed', 'Закрыта')], default='active', max_length=10, verbose_name='статус')),
                ('started_at', models.DateTimeField(blank=True, null=True, verbose_name='дата старта')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='дата обновления')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_groups', to='tenants.tenant', verbose_name='Организация')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='groups', to='schedule.teacher', verbose_name='преподаватель')),
                ('venue', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='groups', to='schedule.venue', verbose_name='зал')),
            ],
            options={
                'verbose_name': 'группа',
                'verbose_name_plural': 'группы',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Enrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_date', models.DateField(verbose_name='дата начала')),
                ('end_date', models.DateField(blank=True, null=True, verbose_name='дата окончания')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='schedule.group', verbose_name='группа')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='enrollments', to='schedule.student', verbose_name='ученик')),
            ],
            options={
                'verbose_name': 'зачисление',
                'verbose_name_plural': 'зачисления',
                'ordering': ['start_date', 'id'],
                'indexes': [
                    models.Index(fields=['group', 'start_date'], name='enrollment_group_start_idx'),
                    models.Index(fields=['student', 'group'], name='enrollment_student_group_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recurrence', models.CharField(choices=[('one_time', 'Разово'), ('weekly', 'Раз в неделю'), ('twice_weekly', 'Два раза в неделю')], max_length=20, verbose_name='повторение')),
                ('duration_hours', models.DecimalField(decimal_places=2, max_digits=4, verbose_name='длительность занятия (ч)')),
                ('effective_from', models.DateField(db_index=True, verbose_name='действует с')),
                ('effective_to', models.DateField(blank=True, null=True, verbose_name='действует по')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedules', to='schedule.group', verbose_name='группа')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_groupschedules', to='tenants.tenant', verbose_name='Организация')),
            ],
            options={
                'verbose_name': 'расписание группы',
                'verbose_name_plural': 'расписания групп',
                'ordering': ['effective_from', 'id'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('effective_to__isnull', True)), fields=('group',), name='group_schedule_single_open_version'),
                    models.CheckConstraint(condition=models.Q(('effective_to__isnull', True), ('effective_to__gte', models.F('effective_from')), _connector='OR'), name='group_schedule_effective_range_valid'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GroupScheduleSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day_of_week', models.PositiveSmallIntegerField(choices=[(1, 'Понедельник'), (2, 'Вторник'), (3, 'Среда'), (4, 'Четверг'), (5, 'Пятница'), (6, 'Суббота'), (7, 'Воскресенье')], help_text='ISO: 1 = Понедельник, 7 = Воскресенье', verbose_name='день недели')),
                ('start_time', models.TimeField(verbose_name='время начала')),
                ('sort_order', models.PositiveSmallIntegerField(default=0, verbose_name='порядок')),
                ('schedule', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='slots', to='schedule.groupschedule', verbose_name='версия расписания')),
            ],
            options={
                'verbose_name': 'слот расписания',
                'verbose_name_plural': 'слоты расписания',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='ClassSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(verbose_name='дата')),
                ('start_time', models.TimeField(blank=True, null=True, verbose_name='время начала')),
                ('end_time', models.TimeField(blank=True, null=True, verbose_name='время окончания')),
                ('status', models.CharField(choices=[('scheduled', 'Запланировано'), ('held', 'Проведено'), ('cancelled', 'Отменено')], default='scheduled', max_length=10, verbose_name='статус')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='дата создания')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='дата обновления')),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='schedule.group', verbose_name='группа')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='schedule.teacher', verbose_name='преподаватель')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedule_classsessions', to='tenants.tenant', verbose_name='Организация')),
                ('venue', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sessions', to='schedule.venue', verbose_name='зал')),
            ],
            options={
                'verbose_name': 'занятие',
                'verbose_name_plural': 'занятия',
                'ordering': ['date', 'start_time', 'id'],
                'indexes': [
                    models.Index(fields=['tenant', 'group', 'date'], name='session_tenant_group_date_idx'),
                    models.Index(fields=['tenant', 'date'], name='session_tenant_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AttendanceRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('present', 'Присутствовал'), ('absent', 'Отсутствовал'), ('excused', 'Уважительная причина'), ('late', 'Опоздал')], max_length=10, verbose_name='статус')),
                ('marked_at', models.DateTimeField(auto_now=True, verbose_name='отмечено')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendance_records', to='schedule.classsession', verbose_name='занятие')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='attendance_records', to='schedule.student', verbose_name='ученик')),
            ],
            options={
                'verbose_name': 'посещение',
                'verbose_name_plural': 'посещения',
                'unique_together': {('session', 'student')},
            },
        ),
    ]
