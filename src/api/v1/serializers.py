"""Serializers for the agency API v1."""
from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from clients.models import Client
from sales.models import Sale

User = get_user_model()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class MeSerializer(serializers.ModelSerializer):
    """The authenticated user's own profile."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name',
            'phone', 'role', 'is_active', 'is_superuser',
        ]
        read_only_fields = ['id', 'email', 'role', 'is_active', 'is_superuser']


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Adds the user profile to the token response."""

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = MeSerializer(self.user).data
        return data


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class ClientSerializer(serializers.ModelSerializer):
    """``agent`` may only be set by managers; see ``clients.services``."""

    agent = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False,
    )
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Client
        fields = [
            'id', 'agent', 'first_name', 'last_name', 'full_name', 'email',
            'phone', 'date_of_birth', 'employer', 'status', 'notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'full_name', 'created_at', 'updated_at']


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

class SaleSerializer(serializers.ModelSerializer):
    agent = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False,
    )
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    agent_name = serializers.CharField(source='agent.get_full_name', read_only=True)

    class Meta:
        model = Sale
        fields = [
            'id', 'agent', 'agent_name', 'client', 'client_name',
            'product_name', 'premium_amount', 'commission_amount',
            'commission_rate', 'sale_date', 'policy_number', 'status', 'notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'agent_name', 'client_name', 'created_at', 'updated_at']
