from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ProductionSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(unique=True)),
                ('capacity_total', models.PositiveIntegerField()),
                ('capacity_reserved', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'production_slots',
                'ordering': ['date'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('capacity_total__gte', 1)), name='slot_capacity_total_positive'),
                    models.CheckConstraint(condition=models.Q(('capacity_reserved__lte', models.F('capacity_total'))), name='slot_reserved_le_total'),
                ],
            },
        ),
    ]
