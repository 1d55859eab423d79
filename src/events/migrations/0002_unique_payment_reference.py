from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="ticketorder",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "error"), _negated=True),
                fields=("payment_reference",),
                name="unique_payment_reference_unless_error",
            ),
        ),
    ]
