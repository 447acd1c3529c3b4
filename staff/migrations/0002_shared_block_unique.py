from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("staff", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="availabilityblock",
            constraint=models.UniqueConstraint(
                condition=models.Q(("staff__isnull", True)),
                fields=("business", "date", "start_time", "end_time"),
                name="uniq_shared_availability_block_window",
            ),
        ),
    ]
