import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Bid',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bidder_name', models.CharField(blank=True, max_length=255)),
                ('whatsapp', models.CharField(blank=True, max_length=32)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('is_winner', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('artwork', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bids', to='catalog.artwork')),
            ],
            options={
                'db_table': 'bids',
                'ordering': ['-amount', 'created_at'],
                'indexes': [models.Index(fields=['artwork', '-amount'], name='idx_bid_artwork_amount')],
                'constraints': [models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='bid_amount_positive')],
            },
        ),
    ]
