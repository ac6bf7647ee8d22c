import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Artwork',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slug', models.SlugField(max_length=200, unique=True)),
                ('title', models.CharField(max_length=255)),
                ('short_description', models.TextField(blank=True)),
                ('story', models.TextField(blank=True)),
                ('images', models.JSONField(blank=True, default=list)),
                ('type', models.CharField(choices=[('unique', 'Unique'), ('limited', 'Limited Edition'), ('auction', 'Auction')], max_length=20)),
                ('status', models.CharField(choices=[('available', 'Available'), ('coming_soon', 'Coming Soon'), ('sold', 'Sold'), ('auction_closed', 'Auction Closed')], default='available', max_length=20)),
                ('auction_start', models.DateTimeField(blank=True, null=True)),
                ('auction_end', models.DateTimeField(blank=True, null=True)),
                ('current_bid', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('min_increment', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('material_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('packaging_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('labor_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('min_profit_margin', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'artworks',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_artwork_status'),
                    models.Index(fields=['type', 'status'], name='idx_artwork_type_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ArtworkSize',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('label', models.CharField(max_length=50)),
                ('price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('total_copies', models.PositiveIntegerField(default=1)),
                ('remaining', models.PositiveIntegerField(blank=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('artwork', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sizes', to='catalog.artwork')),
            ],
            options={
                'db_table': 'artwork_sizes',
                'ordering': ['artwork', 'price'],
                'constraints': [
                    models.UniqueConstraint(fields=('artwork', 'label'), name='unique_artwork_size_label'),
                    models.CheckConstraint(condition=models.Q(('remaining__gte', 0)), name='artwork_size_remaining_non_negative'),
                    models.CheckConstraint(condition=models.Q(('remaining__lte', models.F('total_copies'))), name='artwork_size_remaining_le_total'),
                ],
            },
        ),
    ]
