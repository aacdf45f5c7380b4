"""DRF Serializers for the goals module."""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from goals.models import Goal

User = get_user_model()


class GoalSerializer(serializers.ModelSerializer):
    agent = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        required=False,
    )
    agent_name = serializers.CharField(source="agent.get_full_name", read_only=True)
    progress = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = Goal
        fields = [
            "id", "agent", "agent_name", "title", "metric_type", "goal_type",
            "target_value", "current_value", "progress", "status",
            "start_date", "end_date", "is_active", "notes",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "current_value", "created_at", "updated_at"]

    def validate_target_value(self, value):
        if value <= 0:
            raise serializers.ValidationError("The target must be greater than zero.")
        return value

    def validate(self, attrs):
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end <= start:
            raise serializers.ValidationError(
                {"end_date": "The end date must be after the start date."}
            )
        return attrs


class GoalProgressUpdateSerializer(serializers.Serializer):
    """Manual override of a goal's running total."""

    current_value = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
    )


class GoalProgressSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    completed = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    not_started = serializers.IntegerField()
    completion_rate = serializers.DecimalField(max_digits=5, decimal_places=2)


class RecalculationResultSerializer(serializers.Serializer):
    goal_id = serializers.IntegerField()
    title = serializers.CharField()
    old_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    new_value = serializers.DecimalField(max_digits=12, decimal_places=2)


class GoalProgressQuerySerializer(serializers.Serializer):
    """Optional window for the progress summary."""

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start = attrs.get("start_date")
        end = attrs.get("end_date")
        if start and end and end < start:
            raise serializers.ValidationError(
                {"end_date": "The end date cannot be before the start date."}
            )
        return attrs
