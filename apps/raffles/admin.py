from django.contrib import admin

from .models import EventLog, Order, Raffle, RaffleNumber


@admin.register(Raffle)
class RaffleAdmin(admin.ModelAdmin):
    list_display = (
        'title', 'total_numbers', 'price_per_number', 'is_active', 'start_date', 'end_date', 'created_at'
    )
    search_fields = ('title', 'description')
    list_filter = ('is_active', 'start_date')
    readonly_fields = ('created_at', 'updated_at')
    ordering = ('-created_at',)


@admin.register(RaffleNumber)
class RaffleNumberAdmin(admin.ModelAdmin):
    """
    Read-only view of the inventory: status changes must go through the
    allocation engine, never through a form save.
    """
    list_display = ('number', 'raffle', 'status', 'holder_ref', 'reserved_at', 'sold_at')
    search_fields = ('=number', 'holder_ref')
    list_filter = ('status', 'raffle')
    ordering = ('raffle', 'number')

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('raffle')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'buyer_name', 'student_name', 'division', 'course', 'numbers_count',
        'total_amount', 'payment_status', 'created_at'
    )
    search_fields = ('id', 'buyer_name', 'student_name', 'email', 'payment_id', 'reservation_id')
    list_filter = ('payment_status', 'division', 'course', 'created_at')
    readonly_fields = (
        'id', 'raffle', 'numbers_count', 'total_amount', 'payment_status', 'reservation_id',
        'preference_id', 'payment_id', 'payment_method', 'payment_metadata', 'settled_at',
        'held_numbers_display', 'created_at', 'updated_at'
    )
    ordering = ('-created_at',)

    @admin.display(description='Numbers')
    def held_numbers_display(self, obj):
        return ', '.join(str(n) for n in obj.held_numbers())

    def has_add_permission(self, request):
        return False


@admin.register(EventLog)
class EventLogAdmin(admin.ModelAdmin):
    list_display = ('event_type', 'order_ref', 'raffle', 'created_at')
    search_fields = ('order_ref',)
    list_filter = ('event_type', 'created_at')
    readonly_fields = ('event_type', 'raffle', 'order_ref', 'data', 'created_at')
    ordering = ('-created_at',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
