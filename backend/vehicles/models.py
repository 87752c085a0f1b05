from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL


class Vehicle(models.Model):
    """A driver-owned conveyance that routes are published with"""
    TYPE_CHOICES = [
        ('car', 'Car'),
        ('bike', 'Bike'),
        ('auto', 'Auto Rickshaw'),
        ('van', 'Van'),
        ('bus', 'Bus'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('maintenance', 'Maintenance'),
        ('inactive', 'Inactive'),
    ]

    VERIFICATION_CHOICES = [
        ('pending', 'Pending'),
        ('verified', 'Verified'),
        ('rejected', 'Rejected'),
    ]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='vehicles')

    # Vehicle details
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    vehicle_number = models.CharField(max_length=20, unique=True)
    capacity = models.PositiveIntegerField()
    description = models.TextField(blank=True, default='')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    verification_status = models.CharField(max_length=20, choices=VERIFICATION_CHOICES, default='pending')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicles'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.vehicle_number} ({self.get_type_display()})"
