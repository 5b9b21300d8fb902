import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='SchoolSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('school_name', models.CharField(blank=True, max_length=200)),
                ('principal_name', models.CharField(blank=True, max_length=200)),
                ('academic_year', models.CharField(blank=True, help_text='e.g. 2023-2024', max_length=20)),
                ('school_level', models.CharField(choices=[('PRIMARY', 'Primary'), ('INTERMEDIATE', 'Intermediate'), ('PREPARATORY', 'Preparatory')], default='INTERMEDIATE', max_length=20)),
                ('decision_points', models.IntegerField(default=10, help_text='Total grace points a single student may be granted', validators=[django.core.validators.MinValueValidator(0)])),
                ('supplementary_subjects_count', models.IntegerField(default=3, help_text='Maximum failing subjects that may receive grace points or be sat in the completion round', validators=[django.core.validators.MinValueValidator(0)])),
                ('points_per_subject_cap', models.IntegerField(default=5, help_text='Maximum grace points a single subject may receive', validators=[django.core.validators.MinValueValidator(0)])),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'School Settings',
                'verbose_name_plural': 'School Settings',
            },
        ),
    ]
