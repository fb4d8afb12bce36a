import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('logistics', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TruckProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('plate', models.CharField(blank=True, default='', max_length=20)),
                ('power', models.PositiveIntegerField(default=450)),
                ('consumption', models.FloatField(default=30.0, validators=[django.core.validators.MinValueValidator(0)])),
                ('toll_rate', models.FloatField(default=0.4, validators=[django.core.validators.MinValueValidator(0)])),
                ('maintenance_rate', models.FloatField(default=0.5, validators=[django.core.validators.MinValueValidator(0)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name', 'id'],
            },
        ),
    ]
