from django.contrib import admin

from .models import Booking, Business, Customer, Service, StaffMember


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "owner", "booking_mode")
    list_filter = ("booking_mode",)
    search_fields = ("name",)


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "business", "active")
    list_filter = ("active", "business")
    search_fields = ("name",)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "business", "price", "duration_minutes", "active")
    list_filter = ("active", "business")
    search_fields = ("name",)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "email", "business")
    search_fields = ("name", "phone", "email")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "service", "staff", "date", "time", "duration_minutes", "status", "source")
    list_filter = ("status", "source", "business")
    search_fields = ("customer__name", "service__name")
    date_hierarchy = "date"
