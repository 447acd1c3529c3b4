from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from booking.serializers import OwnedBusinessMixin

from .models import AvailabilityBlock, WeeklyScheduleRule


class ModelCleanMixin:
    """
    Run the model's clean() during serializer validation so API callers get
    the same invariant errors as the admin.
    """

    def validate(self, attrs):
        attrs = super().validate(attrs)
        model = self.Meta.model
        values = {}
        if self.instance is not None:
            values = {f.name: getattr(self.instance, f.name) for f in model._meta.concrete_fields}
        values.update(attrs)
        candidate = model(**values)
        try:
            candidate.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs


class WeeklyScheduleRuleSerializer(OwnedBusinessMixin, ModelCleanMixin, serializers.ModelSerializer):
    class Meta:
        model = WeeklyScheduleRule
        fields = [
            "id",
            "business",
            "staff",
            "weekday",
            "work_start",
            "work_end",
            "break_start",
            "break_end",
            "active",
        ]


class AvailabilityBlockSerializer(OwnedBusinessMixin, ModelCleanMixin, serializers.ModelSerializer):
    class Meta:
        model = AvailabilityBlock
        fields = ["id", "business", "staff", "date", "start_time", "end_time", "capacity"]


class MaterializeSerializer(serializers.Serializer):
    """
    Either an explicit inclusive range (start + end) or a rolling horizon
    (days, optionally with start).
    """
    business = serializers.IntegerField(min_value=1)
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
    days = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        if attrs.get("end") is not None and attrs.get("start") is None:
            raise serializers.ValidationError("'end' requires 'start'.")
        return attrs
