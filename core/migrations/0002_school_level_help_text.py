from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='schoolsettings',
            name='school_level',
            field=models.CharField(choices=[('PRIMARY', 'Primary'), ('INTERMEDIATE', 'Intermediate'), ('PREPARATORY', 'Preparatory')], default='INTERMEDIATE', help_text='Primary schools build term marks from the monthly marks of October to April', max_length=20),
        ),
    ]
