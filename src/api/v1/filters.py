"""FilterSets for the v1 API."""
import django_filters

from sales.models import Sale


class SaleFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="sale_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="sale_date", lookup_expr="lte")

    class Meta:
        model = Sale
        fields = ["status", "agent", "client", "date_from", "date_to"]
