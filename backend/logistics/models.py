from django.core.validators import MinValueValidator
from django.db import models


class DeliveryPlan(models.Model):
    start_location = models.CharField(max_length=255)
    end_location = models.CharField(max_length=255)
    allow_extended_driving = models.BooleanField(default=False)
    daily_rest_duration = models.FloatField(default=11.0)
    total_distance_km = models.FloatField(default=0.0)
    pure_driving_hours = models.FloatField(default=0.0)
    total_duration_hours = models.FloatField(default=0.0)
    response_payload = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return (
            f"{self.start_location} -> {self.end_location} "
            f"({self.total_distance_km:.1f} km, {self.created_at:%Y-%m-%d %H:%M})"
        )


class CostEstimate(models.Model):
    HISTORY_LIMIT = 10

    start_location = models.CharField(max_length=255, blank=True, default='')
    end_location = models.CharField(max_length=255, blank=True, default='')
    route_date = models.DateField(null=True, blank=True)
    distance_km = models.FloatField()
    revenue_pln = models.FloatField()
    net_profit = models.FloatField()
    is_eur = models.BooleanField(default=False)
    truck_name = models.CharField(max_length=100, blank=True, default='')
    truck_plate = models.CharField(max_length=20, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.start_location or 'Unknown'} -> {self.end_location or 'Unknown'} ({self.distance_km:.0f} km)"

    @classmethod
    def prune_history(cls, keep=HISTORY_LIMIT):
        stale_ids = list(cls.objects.values_list('id', flat=True)[keep:])
        if stale_ids:
            cls.objects.filter(id__in=stale_ids).delete()


class TruckProfile(models.Model):
    name = models.CharField(max_length=100)
    plate = models.CharField(max_length=20, blank=True, default='')
    power = models.PositiveIntegerField(default=450)                    # HP
    consumption = models.FloatField(default=30.0, validators=[MinValueValidator(0)])       # l/100km
    toll_rate = models.FloatField(default=0.40, validators=[MinValueValidator(0)])         # PLN/km
    maintenance_rate = models.FloatField(default=0.50, validators=[MinValueValidator(0)])  # PLN/km
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self):
        return f"{self.name} ({self.plate})" if self.plate else self.name
