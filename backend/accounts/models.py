# backend/accounts/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models

class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ('customer', 'Customer'),
        ('admin', 'Admin'),
        ('finance', 'Finance'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='customer')
    preferred_currency = models.CharField(max_length=3, blank=True, null=True)

    @property
    def is_back_office(self) -> bool:
        return self.is_staff or self.role in ('admin', 'finance')

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
