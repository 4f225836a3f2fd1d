from __future__ import annotations

import django_filters
from django.contrib.auth import get_user_model
from django.db.models import Q

from accounts.models import AccountStatus

User = get_user_model()


class UserFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(field_name="profile__status", choices=AccountStatus.choices)
    q = django_filters.CharFilter(method="filter_q")

    class Meta:
        model = User
        fields = ["status", "q"]

    def filter_q(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(username__icontains=value) | Q(email__icontains=value) | Q(profile__full_name__icontains=value)
        )
