from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DeliveryPlan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_location', models.CharField(max_length=255)),
                ('end_location', models.CharField(max_length=255)),
                ('allow_extended_driving', models.BooleanField(default=False)),
                ('daily_rest_duration', models.FloatField(default=11.0)),
                ('total_distance_km', models.FloatField(default=0.0)),
                ('pure_driving_hours', models.FloatField(default=0.0)),
                ('total_duration_hours', models.FloatField(default=0.0)),
                ('response_payload', models.JSONField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='CostEstimate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_location', models.CharField(blank=True, default='', max_length=255)),
                ('end_location', models.CharField(blank=True, default='', max_length=255)),
                ('route_date', models.DateField(blank=True, null=True)),
                ('distance_km', models.FloatField()),
                ('revenue_pln', models.FloatField()),
                ('net_profit', models.FloatField()),
                ('is_eur', models.BooleanField(default=False)),
                ('truck_name', models.CharField(blank=True, default='', max_length=100)),
                ('truck_plate', models.CharField(blank=True, default='', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
