from django.db import migrations, models

import gradebook.models


def mark_field(label):
    return models.DecimalField(
        blank=True,
        decimal_places=2,
        help_text=f'{label} (empty = not entered, -1 = absent, -2 = excused)',
        max_digits=5,
        null=True,
        validators=[gradebook.models.validate_mark],
    )


MONTHS = [
    ('first_sem_month_1', 'First semester, month 1'),
    ('first_sem_month_2', 'First semester, month 2'),
    ('second_sem_month_1', 'Second semester, month 1'),
    ('second_sem_month_2', 'Second semester, month 2'),
    ('october', 'October (primary)'),
    ('november', 'November (primary)'),
    ('december', 'December (primary)'),
    ('january', 'January (primary)'),
    ('february', 'February (primary)'),
    ('march', 'March (primary)'),
    ('april', 'April (primary)'),
]


class Migration(migrations.Migration):

    dependencies = [
        ('gradebook', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='subjectgrade',
            name=name,
            field=mark_field(label),
        )
        for name, label in MONTHS
    ] + [
        migrations.AlterField(
            model_name='publishedresult',
            name='result_key',
            field=models.CharField(choices=[('first_sem_month_1', 'First semester, month 1'), ('first_sem_month_2', 'First semester, month 2'), ('first_sem_avg', 'First semester average'), ('first_term', 'First term'), ('mid_year', 'Mid-year'), ('second_sem_month_1', 'Second semester, month 1'), ('second_sem_month_2', 'Second semester, month 2'), ('second_sem_avg', 'Second semester average'), ('second_term', 'Second term'), ('annual_pursuit', 'Annual pursuit'), ('final_grade', 'Final grade')], max_length=20),
        ),
    ]
