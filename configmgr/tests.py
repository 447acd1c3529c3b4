from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from .config import SchedulingConfig, get_scheduling_config


class SchedulingConfigTests(SimpleTestCase):
    def test_defaults(self):
        config = SchedulingConfig.from_mapping(None)
        self.assertEqual(config.slot_granularity_minutes, 15)
        self.assertEqual(config.default_block_capacity, 1)
        self.assertEqual(config.materialize_horizon_days, 30)
        self.assertEqual(config.cancellation_cutoff_minutes, 120)

    def test_upper_case_keys_map_to_fields(self):
        config = SchedulingConfig.from_mapping({"SLOT_GRANULARITY_MINUTES": 30, "TIME_FORMAT": "%I:%M %p"})
        self.assertEqual(config.slot_granularity_minutes, 30)
        self.assertEqual(config.time_format, "%I:%M %p")

    def test_unknown_key_is_rejected(self):
        with self.assertRaisesMessage(ImproperlyConfigured, "SLOT_SIZE"):
            SchedulingConfig.from_mapping({"SLOT_SIZE": 10})

    def test_non_positive_values_are_rejected(self):
        for key in ("SLOT_GRANULARITY_MINUTES", "DEFAULT_BLOCK_CAPACITY", "MAX_MATERIALIZE_DAYS"):
            with self.subTest(key=key), self.assertRaises(ImproperlyConfigured):
                SchedulingConfig.from_mapping({key: 0})

    def test_negative_cutoff_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            SchedulingConfig(cancellation_cutoff_minutes=-1)
        # zero means "cancel any time before start"
        self.assertEqual(SchedulingConfig(cancellation_cutoff_minutes=0).cancellation_cutoff_minutes, 0)

    def test_horizon_cannot_exceed_maximum(self):
        with self.assertRaises(ImproperlyConfigured):
            SchedulingConfig(materialize_horizon_days=40, max_materialize_days=31)

    def test_booleans_are_not_integers(self):
        with self.assertRaises(ImproperlyConfigured):
            SchedulingConfig(default_block_capacity=True)

    @override_settings(SCHEDULING={"DEFAULT_BLOCK_CAPACITY": 4})
    def test_reads_django_settings(self):
        self.assertEqual(get_scheduling_config().default_block_capacity, 4)
