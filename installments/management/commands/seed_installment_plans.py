from decimal import Decimal

import pandas as pd
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from installments.models import InstallmentPlan
from installments.schedule import PlanTerms
from installments.exceptions import InvalidPlanError


DEFAULT_PLANS = [
    {
        'name': '3-Month Plan',
        'description': 'Pay 30% down, then 3 monthly payments',
        'down_payment_percent': Decimal('30'),
        'number_of_payments': 3,
        'interval_days': 30,
        'interest_rate': Decimal('5'),
    },
    {
        'name': '6-Month Plan',
        'description': 'Pay 20% down, then 6 monthly payments',
        'down_payment_percent': Decimal('20'),
        'number_of_payments': 6,
        'interval_days': 30,
        'interest_rate': Decimal('8'),
    },
    {
        'name': '12-Month Plan',
        'description': 'Pay 10% down, then 12 monthly payments',
        'down_payment_percent': Decimal('10'),
        'number_of_payments': 12,
        'interval_days': 30,
        'interest_rate': Decimal('12'),
    },
    {
        'name': 'Weekly 4-Week Plan',
        'description': 'Pay 25% down, then 4 weekly payments',
        'down_payment_percent': Decimal('25'),
        'number_of_payments': 4,
        'interval_days': 7,
        'interest_rate': Decimal('2'),
    },
    {
        'name': 'No Interest 3-Month',
        'description': 'Pay 50% down, then 3 monthly payments with no interest',
        'down_payment_percent': Decimal('50'),
        'number_of_payments': 3,
        'interval_days': 30,
        'interest_rate': Decimal('0'),
    },
]

PLAN_COLUMNS = ['name', 'down_payment_percent', 'number_of_payments', 'interval_days', 'interest_rate']


def load_plans_file(file_path):
    """Read plan templates from a CSV or Excel sheet, one plan per row."""
    if str(file_path).lower().endswith(('.xlsx', '.xls')):
        df = pd.read_excel(file_path)
    else:
        df = pd.read_csv(file_path)

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in PLAN_COLUMNS if c not in df.columns]
    if missing:
        raise CommandError(f"Missing columns in {file_path}: {', '.join(missing)}")
    if 'description' not in df.columns:
        df['description'] = None

    plans = []
    for _, row in df.iterrows():
        plans.append({
            'name': str(row['name']).strip(),
            'description': None if pd.isna(row['description']) else str(row['description']),
            'down_payment_percent': Decimal(str(row['down_payment_percent'])),
            'number_of_payments': int(row['number_of_payments']),
            'interval_days': int(row['interval_days']),
            'interest_rate': Decimal(str(row['interest_rate'])),
        })
    return plans


class Command(BaseCommand):
    help = 'Create the default installment plan templates (or load them from a CSV/Excel file)'

    def add_arguments(self, parser):
        parser.add_argument('--file', dest='file_path', help='CSV or Excel file with plan templates')
        parser.add_argument(
            '--force',
            action='store_true',
            help='Create missing plans even when some plans already exist',
        )

    def handle(self, *args, **options):
        file_path = options.get('file_path')
        plans = load_plans_file(file_path) if file_path else DEFAULT_PLANS

        if not file_path and not options.get('force') and InstallmentPlan.objects.exists():
            self.stdout.write('Installment plans already exist; nothing to seed.')
            return

        created = 0
        with transaction.atomic():
            for data in plans:
                try:
                    PlanTerms(
                        name=data['name'],
                        down_payment_percent=data['down_payment_percent'],
                        number_of_payments=data['number_of_payments'],
                        interval_days=data['interval_days'],
                        interest_rate=data['interest_rate'],
                    ).validate()
                except InvalidPlanError as e:
                    raise CommandError(f"Plan '{data['name']}' is invalid: {e.message}")

                _, was_created = InstallmentPlan.objects.get_or_create(
                    name=data['name'],
                    defaults={k: v for k, v in data.items() if k != 'name'},
                )
                created += int(was_created)

        self.stdout.write(self.style.SUCCESS(f'{created} installment plan(s) created.'))
