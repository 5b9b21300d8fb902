"""
Management command to calculate (and optionally publish or export) class results.

Usage:
    python manage.py calculate_results --class-id=3
    python manage.py calculate_results --class-id=3 --publish=final_grade
    python manage.py calculate_results --class-id=3 --export=results.xlsx
"""
from django.core.management.base import BaseCommand, CommandError

from academics.models import Class
from core.choices import ResultKey
from gradebook.exports import build_class_workbook
from gradebook.services import calculate_class_results, get_grading_policy, publish_results


class Command(BaseCommand):
    help = 'Calculate student results for a class using the school grading policy'

    def add_arguments(self, parser):
        parser.add_argument(
            '--class-id',
            type=int,
            required=True,
            help='ID of the class to calculate',
        )
        parser.add_argument(
            '--publish',
            choices=ResultKey.values,
            help='Publish this result column to students after calculating',
        )
        parser.add_argument(
            '--export',
            type=str,
            help='Write an Excel workbook with results, statistics and decision log to this path',
        )

    def handle(self, *args, **options):
        try:
            class_obj = Class.objects.get(pk=options['class_id'])
        except Class.DoesNotExist:
            raise CommandError(f"Class {options['class_id']} not found")

        policy = get_grading_policy()
        results = calculate_class_results(class_obj, policy=policy)

        for student, outcome in results:
            self.stdout.write(f"{student.full_name}: {outcome.result.message}")

        if options.get('publish'):
            published = publish_results(class_obj, options['publish'], policy=policy)
            self.stdout.write(f"Published {options['publish']} for {published} students")

        if options.get('export'):
            build_class_workbook(results).save(options['export'])
            self.stdout.write(f"Exported workbook to {options['export']}")

        self.stdout.write(self.style.SUCCESS(
            f'Calculated results for {len(results.students)} students in {class_obj.name}'
        ))
