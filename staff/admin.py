# staff/admin.py
from django.contrib import admin

from .models import AvailabilityBlock, WeeklyScheduleRule


@admin.register(WeeklyScheduleRule)
class WeeklyScheduleRuleAdmin(admin.ModelAdmin):
    list_display = ("staff", "weekday", "work_start", "work_end", "break_start", "break_end", "active")
    list_filter = ("weekday", "active", "business")
    search_fields = ("staff__name",)


@admin.register(AvailabilityBlock)
class AvailabilityBlockAdmin(admin.ModelAdmin):
    list_display = ("staff", "date", "start_time", "end_time", "capacity")
    list_filter = ("business", "staff")
    search_fields = ("staff__name",)
    date_hierarchy = "date"
