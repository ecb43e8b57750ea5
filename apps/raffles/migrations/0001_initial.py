import apps.raffles.models
import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Raffle',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200, verbose_name='title')),
                ('description', models.TextField(blank=True, verbose_name='description')),
                ('total_numbers', models.PositiveIntegerField(default=1500, validators=[django.core.validators.MinValueValidator(1)], verbose_name='total numbers')),
                ('price_per_number', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)], verbose_name='price per number')),
                ('start_date', models.DateTimeField(verbose_name='start date')),
                ('end_date', models.DateTimeField(verbose_name='end date')),
                ('is_active', models.BooleanField(default=False, verbose_name='active')),
            ],
            options={
                'verbose_name': 'raffle',
                'verbose_name_plural': 'raffles',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.CharField(default=apps.raffles.models.generate_order_id, editable=False, max_length=32, primary_key=True, serialize=False, verbose_name='id')),
                ('buyer_name', models.CharField(max_length=150, verbose_name='buyer name')),
                ('student_name', models.CharField(max_length=150, verbose_name='student name')),
                ('division', models.CharField(max_length=50, verbose_name='division')),
                ('course', models.CharField(max_length=50, verbose_name='course')),
                ('email', models.EmailField(max_length=254, verbose_name='email')),
                ('phone', models.CharField(blank=True, max_length=30, verbose_name='phone')),
                ('numbers_count', models.PositiveIntegerField(verbose_name='numbers count')),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(0)], verbose_name='total amount')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='payment status')),
                ('reservation_id', models.CharField(blank=True, max_length=64, verbose_name='reservation id')),
                ('preference_id', models.CharField(blank=True, max_length=100, verbose_name='checkout preference id')),
                ('payment_id', models.CharField(blank=True, max_length=100, verbose_name='payment id')),
                ('payment_method', models.CharField(blank=True, max_length=50, verbose_name='payment method')),
                ('payment_metadata', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='payment metadata')),
                ('settled_at', models.DateTimeField(blank=True, null=True, verbose_name='settled at')),
                ('raffle', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='raffles.raffle', verbose_name='raffle')),
            ],
            options={
                'verbose_name': 'order',
                'verbose_name_plural': 'orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='EventLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_type', models.CharField(choices=[('reservation_created', 'Reservation created'), ('purchase_created', 'Purchase created'), ('payment_confirmed', 'Payment confirmed'), ('payment_cancelled', 'Payment cancelled'), ('reservation_expired', 'Reservation expired'), ('payment_mismatch', 'Payment mismatch')], db_index=True, max_length=40, verbose_name='event type')),
                ('order_ref', models.CharField(blank=True, db_index=True, max_length=64, verbose_name='order reference')),
                ('data', models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='data')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='created at')),
                ('raffle', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='event_logs', to='raffles.raffle', verbose_name='raffle')),
            ],
            options={
                'verbose_name': 'event log',
                'verbose_name_plural': 'event logs',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='RaffleNumber',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('number', models.PositiveIntegerField(verbose_name='number')),
                ('status', models.CharField(choices=[('available', 'Available'), ('reserved', 'Reserved'), ('sold', 'Sold')], default='available', max_length=20, verbose_name='status')),
                ('reserved_at', models.DateTimeField(blank=True, null=True, verbose_name='reserved at')),
                ('sold_at', models.DateTimeField(blank=True, null=True, verbose_name='sold at')),
                ('holder_ref', models.CharField(blank=True, db_index=True, help_text='Transient hold id or order id currently holding this number', max_length=64, null=True, verbose_name='holder reference')),
                ('raffle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='numbers', to='raffles.raffle', verbose_name='raffle')),
            ],
            options={
                'verbose_name': 'raffle number',
                'verbose_name_plural': 'raffle numbers',
                'ordering': ['raffle', 'number'],
            },
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['payment_status', 'created_at'], name='raffles_ord_payment_5c1e0b_idx'),
        ),
        migrations.AddIndex(
            model_name='rafflenumber',
            index=models.Index(fields=['raffle', 'status'], name='raffles_raf_raffle__8d2f4a_idx'),
        ),
        migrations.AddIndex(
            model_name='rafflenumber',
            index=models.Index(fields=['status', 'reserved_at'], name='raffles_raf_status_3b7e91_idx'),
        ),
        migrations.AddConstraint(
            model_name='raffle',
            constraint=models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('is_active',), name='raffles_single_active_raffle'),
        ),
        migrations.AddConstraint(
            model_name='raffle',
            constraint=models.CheckConstraint(condition=models.Q(('end_date__gte', models.F('start_date'))), name='raffles_raffle_window_ordered'),
        ),
        migrations.AddConstraint(
            model_name='rafflenumber',
            constraint=models.UniqueConstraint(fields=('raffle', 'number'), name='raffles_unique_number_per_raffle'),
        ),
        migrations.AddConstraint(
            model_name='rafflenumber',
            constraint=models.CheckConstraint(condition=models.Q(models.Q(('holder_ref__isnull', True), ('reserved_at__isnull', True), ('sold_at__isnull', True), ('status', 'available')), models.Q(('holder_ref__isnull', False), ('reserved_at__isnull', False), ('sold_at__isnull', True), ('status', 'reserved')), models.Q(('holder_ref__isnull', False), ('reserved_at__isnull', True), ('sold_at__isnull', False), ('status', 'sold')), _connector='OR'), name='raffles_number_status_consistent'),
        ),
    ]
