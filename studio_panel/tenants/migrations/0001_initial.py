import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('slug', models.SlugField(help_text='Уникальный идентификатор (для URL/субдомена)', unique=True)),
                ('name', models.CharField(help_text='Название организации', max_length=200)),
                ('kind', models.CharField(choices=[('school', 'Школа'), ('independent_teacher', 'Независимый преподаватель')], default='school', help_text='Тип организации', max_length=30)),
                ('status', models.CharField(choices=[('active', 'Активна'), ('inactive', 'Неактивна'), ('suspended', 'Приостановлена')], default='active', help_text='Статус', max_length=20)),
                ('timezone', models.CharField(default='UTC', help_text='Часовой пояс', max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(blank=True, help_text='Пользователь-создатель. Имеет полные права на tenant.', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='owned_tenants', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Организация',
                'verbose_name_plural': 'Организации',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='TenantMembership',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('owner', 'Владелец'), ('admin', 'Администратор'), ('teacher', 'Преподаватель'), ('staff', 'Сотрудник')], default='staff', max_length=20, verbose_name='Роль в организации')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активен')),
                ('joined_at', models.DateTimeField(auto_now_add=True, verbose_name='Дата вступления')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='tenants.tenant', verbose_name='Организация')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tenant_memberships', to=settings.AUTH_USER_MODEL, verbose_name='Пользователь')),
            ],
            options={
                'verbose_name': 'Членство в организации',
                'verbose_name_plural': 'Членства в организациях',
                'unique_together': {('tenant', 'user')},
                'indexes': [
                    models.Index(fields=['tenant', 'role'], name='membership_tenant_role_idx'),
                    models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
                ],
            },
        ),
    ]
