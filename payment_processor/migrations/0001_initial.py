import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentWebhook',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('provider', models.CharField(default='mercadopago', max_length=50)),
                ('event_type', models.CharField(blank=True, max_length=100)),
                ('action', models.CharField(blank=True, max_length=100)),
                ('resource_id', models.CharField(blank=True, help_text='Gateway resource id (data.id)', max_length=255)),
                ('request_id', models.CharField(blank=True, help_text='x-request-id header', max_length=255)),
                ('order_ref', models.CharField(blank=True, help_text='External reference resolved from the payment', max_length=64)),
                ('headers', models.JSONField(default=dict)),
                ('payload', models.JSONField(default=dict)),
                ('signature_valid', models.BooleanField(help_text='None when no secret is configured', null=True)),
                ('status', models.CharField(choices=[('received', 'Received'), ('processed', 'Processed'), ('failed', 'Failed'), ('ignored', 'Ignored')], default='received', max_length=20)),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('error_message', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['resource_id'], name='payment_pro_resourc_0c9d4e_idx'),
                    models.Index(fields=['status', 'created_at'], name='payment_pro_status_7a21f3_idx'),
                ],
            },
        ),
    ]
