import uuid

import django.db.models.deletion
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


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SubjectGrade',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_term', mark_field('First term')),
                ('mid_year', mark_field('Mid-year exam')),
                ('second_term', mark_field('Second term')),
                ('final_exam_1st', mark_field('Final exam, first round')),
                ('final_exam_2nd', mark_field('Completion exam, second round')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subject_grades', to='students.student')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='student_grades', to='academics.subject')),
            ],
            options={
                'verbose_name': 'Subject Grade',
                'verbose_name_plural': 'Subject Grades',
                'db_table': 'subject_grade',
                'ordering': ['student', 'subject'],
                'unique_together': {('student', 'subject')},
            },
        ),
        migrations.CreateModel(
            name='PublishedResult',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('result_key', models.CharField(choices=[('first_term', 'First term'), ('mid_year', 'Mid-year'), ('second_term', 'Second term'), ('annual_pursuit', 'Annual pursuit'), ('final_grade', 'Final grade')], max_length=20)),
                ('status', models.CharField(blank=True, choices=[('PASS', 'Pass'), ('COMPLETION', 'Must sit completion exam'), ('FAIL', 'Fail'), ('PENDING', 'Pending')], help_text='Overall result, only set for the final grade column', max_length=20)),
                ('message', models.CharField(blank=True, max_length=200)),
                ('payload', models.JSONField(default=dict)),
                ('published_at', models.DateTimeField()),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='published_results', to='students.student')),
            ],
            options={
                'verbose_name': 'Published Result',
                'verbose_name_plural': 'Published Results',
                'db_table': 'published_result',
                'ordering': ['student', 'result_key'],
                'unique_together': {('student', 'result_key')},
            },
        ),
    ]
