from django.db import models
from django.conf import settings


class Route(models.Model):
    """A scheduled trip published by a driver, with seats passengers can book"""

    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('in-progress', 'In Progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='routes',
        limit_choices_to={'role': 'driver'}
    )

    vehicle = models.ForeignKey(
        'vehicles.Vehicle',
        on_delete=models.PROTECT,
        related_name='routes'
    )

    # Start location
    start_address = models.TextField()
    start_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    start_longitude = models.DecimalField(max_digits=9, decimal_places=6)

    # End location
    end_address = models.TextField()
    end_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    end_longitude = models.DecimalField(max_digits=9, decimal_places=6)

    # Schedule, price & capacity
    departure_time = models.DateTimeField()
    estimated_arrival_time = models.DateTimeField(null=True, blank=True)
    fare = models.DecimalField(max_digits=10, decimal_places=2)
    available_seats = models.PositiveIntegerField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')

    # Last position relayed by the driver
    current_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'routes'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'departure_time'], name='routes_status_departure_idx'),
            models.Index(fields=['start_latitude', 'start_longitude'], name='routes_start_point_idx'),
        ]

    def __str__(self):
        return f"Route #{self.id} - {self.start_address} -> {self.end_address} ({self.status})"

    @property
    def start_point(self):
        return float(self.start_latitude), float(self.start_longitude)

    @property
    def end_point(self):
        return float(self.end_latitude), float(self.end_longitude)
