from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from schedule.models import Group
from schedule.recurrence import parse_iso_date
from schedule.schedule_service import SessionGenerator
from tenants.models import Tenant


class Command(BaseCommand):
    help = (
        "Создаёт занятия групп организации по их расписанию за период. "
        "Уже существующие занятия (та же дата и время начала) не дублируются."
    )

    def add_arguments(self, parser):
        parser.add_argument("--org", required=True, help="slug организации")
        parser.add_argument("--group", type=int, help="ID группы (по умолчанию все активные группы)")
        parser.add_argument("--from", dest="date_from", help="Начало периода YYYY-MM-DD (по умолчанию сегодня)")
        parser.add_argument("--to", dest="date_to", help="Конец периода YYYY-MM-DD")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Показать сколько занятий будет создано, без создания",
        )

    def handle(self, *args, **options):
        tenant = Tenant.objects.filter(slug=options["org"]).first()
        if tenant is None:
            raise CommandError(f"Organization '{options['org']}' not found")

        try:
            date_from = parse_iso_date(options["date_from"]) if options["date_from"] else timezone.localdate()
            if options["date_to"]:
                date_to = parse_iso_date(options["date_to"])
            else:
                date_from, date_to = SessionGenerator.default_window(date_from)
        except ValueError as exc:
            raise CommandError(str(exc))

        groups = Group.objects.filter(tenant=tenant)
        if options["group"]:
            groups = groups.filter(pk=options["group"])
            if not groups.exists():
                raise CommandError(f"Group {options['group']} not found in '{tenant.slug}'")
        else:
            groups = groups.filter(status=Group.STATUS_ACTIVE)

        dry_run = options["dry_run"]
        total = 0
        for group in groups.order_by("name"):
            try:
                created = SessionGenerator.generate_sessions(
                    group.pk, tenant, date_from, date_to, dry_run=dry_run
                )
            except ValidationError as exc:
                raise CommandError("; ".join(exc.messages))
            total += created
            self.stdout.write(f"{group.name}: {created}")

        if dry_run:
            self.stdout.write(self.style.WARNING(f"DRY RUN: would create {total} sessions ({date_from} – {date_to})"))
            return
        self.stdout.write(self.style.SUCCESS(f"Created {total} sessions ({date_from} – {date_to})"))
