# booking/signals.py
#
# Purpose:
# - Expose booking status changes as events for downstream collaborators
#   (customer statistics, post-visit messaging). This app only emits them.
#
# Events:
# - booking_status_changed(booking, previous, current)
#     any status change, including creation (previous=None)
# - booking_completed(business, customer, appointment)
#     the booking reached "completed" (on update, or created as completed)
#
# Notes:
# - Hooks post_save, so admin edits, API calls and BookingManager all emit.
# - Events are sent after the surrounding transaction commits; a rolled-back
#   change never reaches receivers.
#
from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import Signal, receiver

from .models import Booking

booking_status_changed = Signal()
booking_completed = Signal()


@receiver(pre_save, sender=Booking)
def remember_previous_status(sender, instance: Booking, **kwargs):
    """Stash the stored status so post_save can tell whether it changed."""
    if instance.pk is None:
        instance._previous_status = None
        return
    instance._previous_status = (
        Booking.objects.filter(pk=instance.pk).values_list("status", flat=True).first()
    )


@receiver(post_save, sender=Booking)
def emit_status_events(sender, instance: Booking, created: bool, **kwargs):
    previous = None if created else getattr(instance, "_previous_status", None)
    current = instance.status
    if not created and previous == current:
        return

    def _send():
        booking_status_changed.send(sender=Booking, booking=instance, previous=previous, current=current)
        if current == Booking.STATUS_COMPLETED:
            booking_completed.send(
                sender=Booking,
                business=instance.business,
                customer=instance.customer,
                appointment=instance,
            )

    transaction.on_commit(_send)
