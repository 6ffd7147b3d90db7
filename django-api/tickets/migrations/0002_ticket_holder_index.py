from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("tickets", "0001_initial"),
    ]

    operations = [
        migrations.AddIndex(
            model_name="ticket",
            index=models.Index(fields=["holder_id", "id"], name="tickets_tic_holder__5e2c7d_idx"),
        ),
    ]
