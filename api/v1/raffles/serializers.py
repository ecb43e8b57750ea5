"""
Serializers for the raffle API.

Request payloads use the camelCase keys the sales frontend sends.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.raffles.models import Order

MAX_NUMBERS_PER_REQUEST = 100


class NumbersSerializer(serializers.Serializer):
    numbers = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        max_length=MAX_NUMBERS_PER_REQUEST
    )

    def validate_numbers(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Numbers must not repeat")
        return sorted(value)


class CreatePurchaseSerializer(NumbersSerializer):
    reservationId = serializers.CharField(max_length=64)
    buyerName = serializers.CharField(max_length=150)
    studentName = serializers.CharField(max_length=150)
    division = serializers.CharField(max_length=50)
    course = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    totalAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))

    def buyer_details(self):
        data = self.validated_data
        return {
            'buyer_name': data['buyerName'],
            'student_name': data['studentName'],
            'division': data['division'],
            'course': data['course'],
            'email': data['email'],
            'phone': data.get('phone', ''),
        }


class ConfirmPaymentSerializer(serializers.Serializer):
    paymentId = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    paymentMethod = serializers.CharField(max_length=50, required=False, allow_blank=True, default='manual')


class CancelPaymentSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.FAILED_STATUSES, default=Order.STATUS_CANCELLED)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class OrderSerializer(serializers.ModelSerializer):
    """Order status as shown to the buyer."""

    purchaseId = serializers.CharField(source='id', read_only=True)
    buyerName = serializers.CharField(source='buyer_name', read_only=True)
    studentName = serializers.CharField(source='student_name', read_only=True)
    numbersCount = serializers.IntegerField(source='numbers_count', read_only=True)
    totalAmount = serializers.DecimalField(source='total_amount', max_digits=12, decimal_places=2, read_only=True)
    paymentStatus = serializers.CharField(source='payment_status', read_only=True)
    reservationId = serializers.CharField(source='reservation_id', read_only=True)
    preferenceId = serializers.CharField(source='preference_id', read_only=True)
    paymentId = serializers.CharField(source='payment_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    settledAt = serializers.DateTimeField(source='settled_at', read_only=True)
    numbers = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'purchaseId', 'buyerName', 'studentName', 'division', 'course', 'email',
            'numbersCount', 'totalAmount', 'paymentStatus', 'reservationId', 'preferenceId',
            'paymentId', 'numbers', 'createdAt', 'settledAt'
        ]
        read_only_fields = fields

    def get_numbers(self, obj):
        if obj._state.adding:
            return self.context.get('numbers', [])
        return obj.held_numbers()


class RaffleConfigSerializer(serializers.Serializer):
    id = serializers.UUIDField(allow_null=True)
    title = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    totalNumbers = serializers.IntegerField(source='total_numbers')
    pricePerNumber = serializers.DecimalField(source='price_per_number', max_digits=10, decimal_places=2)
    startDate = serializers.DateTimeField(source='start_date', allow_null=True)
    endDate = serializers.DateTimeField(source='end_date', allow_null=True)
    isActive = serializers.BooleanField(source='is_active')
    salesOpen = serializers.BooleanField(source='sales_open')
    holdMinutes = serializers.IntegerField(source='hold_minutes')
    simulated = serializers.BooleanField()
