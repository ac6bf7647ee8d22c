import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BuyerLimit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('contact', models.CharField(max_length=32)),
                ('week_start', models.DateField()),
                ('confirmed_orders_count', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'buyer_limits',
                'constraints': [models.UniqueConstraint(fields=('contact', 'week_start'), name='unique_buyer_limit_week')],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=100, unique=True)),
                ('size', models.CharField(max_length=50)),
                ('price', models.DecimalField(decimal_places=2, help_text='Price snapshot taken when the order was created', max_digits=12)),
                ('buyer_name', models.CharField(blank=True, max_length=255)),
                ('whatsapp', models.CharField(blank=True, db_index=True, max_length=32)),
                ('payment_method', models.CharField(blank=True, choices=[('vodafone_cash', 'Vodafone Cash'), ('instapay', 'InstaPay')], max_length=20)),
                ('payment_proof', models.CharField(blank=True, max_length=500)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('scheduled', 'Scheduled'), ('cancelled', 'Cancelled'), ('refunded', 'Refunded'), ('shipped', 'Shipped')], default='pending', max_length=20)),
                ('hold_expires_at', models.DateTimeField(blank=True, null=True)),
                ('scheduled_start_date', models.DateField(blank=True, null=True)),
                ('estimated_completion_date', models.DateField(blank=True, null=True)),
                ('queue_position', models.PositiveIntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('refunded_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('artwork', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='catalog.artwork')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'hold_expires_at'], name='idx_order_status_hold'),
                    models.Index(fields=['artwork', 'status'], name='idx_order_artwork_status'),
                    models.Index(fields=['scheduled_start_date'], name='idx_order_start_date'),
                ],
            },
        ),
    ]
