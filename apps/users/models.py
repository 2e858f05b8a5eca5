from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_ADMIN = 'ADMIN'
    ROLE_DOCTOR = 'DOCTOR'
    ROLE_PHARMACIST = 'PHARMACIST'
    ROLE_RECEPTIONIST = 'RECEPTIONIST'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
    ]

    phone_number = models.CharField(max_length=30, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_RECEPTIONIST)

    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def is_pharmacist(self):
        return self.role == self.ROLE_PHARMACIST

    def can_manage_purchases(self):
        return self.is_admin() or self.is_pharmacist()
