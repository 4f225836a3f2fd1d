"""Signals for automatic profile management.

On user creation, create a default `UserProfile` with the student role.
E-mail addresses are normalised to lower case on every save so lookups
and the uniqueness check can stay case-insensitive.
"""
from django.contrib.auth.models import User
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import AccountStatus, UserProfile, Role


@receiver(pre_save, sender=User)
def normalise_email(sender, instance: User, **kwargs):  # noqa: D401
    instance.email = (instance.email or "").strip().lower()


@receiver(post_save, sender=User)
def create_user_profile(sender, instance: User, created: bool, **kwargs):  # noqa: D401
    """Create a profile for new users (default role: student)."""
    if created:
        status = AccountStatus.ACTIVE if instance.is_active else AccountStatus.SUSPENDED
        UserProfile.objects.create(user=instance, role=Role.STUDENT, status=status)
