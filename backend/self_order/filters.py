import django_filters
from .models import SelfOrderSession, SessionStatus


class SelfOrderSessionFilter(django_filters.FilterSet):
    """Staff filters for the self-order session listing."""

    status = django_filters.ChoiceFilter(choices=SessionStatus.choices)
    store_location = django_filters.UUIDFilter(field_name='store_location_id')
    table = django_filters.UUIDFilter(field_name='table_id')
    expires_at__lte = django_filters.DateTimeFilter(field_name='expires_at', lookup_expr='lte')
    created_at__gte = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')

    class Meta:
        model = SelfOrderSession
        fields = ['status', 'store_location', 'table', 'language']
