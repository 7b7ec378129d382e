from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("spots", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="calendaroverride",
            name="start_time",
            field=models.TimeField(
                blank=True,
                help_text="With end time, limits an open date to these hours. Leave empty for the whole day.",
                null=True,
            ),
        ),
        migrations.AddField(
            model_name="calendaroverride",
            name="end_time",
            field=models.TimeField(blank=True, null=True),
        ),
        migrations.AddConstraint(
            model_name="calendaroverride",
            constraint=models.CheckConstraint(
                condition=models.Q(start_time__isnull=True)
                | models.Q(end_time__isnull=True)
                | models.Q(end_time__gt=models.F("start_time")),
                name="calendar_override_valid_time_range",
            ),
        ),
    ]
