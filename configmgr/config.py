# configmgr/config.py
#
# Purpose:
# - Typed scheduling configuration.
#
# Design:
# - Values come from settings.SCHEDULING (a dict with upper-case keys).
# - Every field has an explicit default; unknown keys and bad values raise
#   ImproperlyConfigured at load time instead of failing deep in a request.
#
from dataclasses import dataclass, fields

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class SchedulingConfig:
    slot_granularity_minutes: int = 15
    default_block_capacity: int = 1
    materialize_horizon_days: int = 30
    max_materialize_days: int = 366
    cancellation_cutoff_minutes: int = 120
    time_format: str = "%H:%M"

    def __post_init__(self):
        positive = (
            "slot_granularity_minutes",
            "default_block_capacity",
            "materialize_horizon_days",
            "max_materialize_days",
        )
        for name in positive:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ImproperlyConfigured(f"SCHEDULING['{name.upper()}'] must be a positive integer.")

        cutoff = self.cancellation_cutoff_minutes
        if not isinstance(cutoff, int) or isinstance(cutoff, bool) or cutoff < 0:
            raise ImproperlyConfigured("SCHEDULING['CANCELLATION_CUTOFF_MINUTES'] must be >= 0.")

        if self.slot_granularity_minutes > 24 * 60:
            raise ImproperlyConfigured("SCHEDULING['SLOT_GRANULARITY_MINUTES'] must fit in one day.")

        if self.materialize_horizon_days > self.max_materialize_days:
            raise ImproperlyConfigured(
                "SCHEDULING['MATERIALIZE_HORIZON_DAYS'] cannot exceed MAX_MATERIALIZE_DAYS."
            )

        if not isinstance(self.time_format, str) or not self.time_format:
            raise ImproperlyConfigured("SCHEDULING['TIME_FORMAT'] must be a non-empty string.")

    @classmethod
    def from_mapping(cls, raw):
        """
        Build a config from a settings-style mapping, e.g.
        {"SLOT_GRANULARITY_MINUTES": 15, "DEFAULT_BLOCK_CAPACITY": 1}.
        """
        raw = raw or {}
        known = {f.name.upper(): f.name for f in fields(cls)}
        unknown = sorted(set(raw) - set(known))
        if unknown:
            raise ImproperlyConfigured(f"Unknown SCHEDULING keys: {', '.join(unknown)}")
        return cls(**{known[key]: value for key, value in raw.items()})


def get_scheduling_config() -> SchedulingConfig:
    """Load the config from Django settings (re-read each call so override_settings works)."""
    return SchedulingConfig.from_mapping(getattr(settings, "SCHEDULING", None))
