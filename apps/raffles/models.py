"""Models for raffle number sales."""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, TimeStampedModel
from core.utils import generate_unique_code


class RaffleQuerySet(models.QuerySet):

    def active(self):
        """Return the single active raffle, or None."""
        return self.filter(is_active=True).first()


class Raffle(BaseModel):
    """A sales campaign for a fixed inventory of numbered tickets."""

    title = models.CharField(_("title"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    total_numbers = models.PositiveIntegerField(
        _("total numbers"),
        default=1500,
        validators=[MinValueValidator(1)]
    )
    price_per_number = models.DecimalField(
        _("price per number"),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    start_date = models.DateTimeField(_("start date"))
    end_date = models.DateTimeField(_("end date"))
    is_active = models.BooleanField(_("active"), default=False)

    objects = RaffleQuerySet.as_manager()

    class Meta:
        verbose_name = _("raffle")
        verbose_name_plural = _("raffles")
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['is_active'],
                condition=models.Q(is_active=True),
                name='raffles_single_active_raffle',
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F('start_date')),
                name='raffles_raffle_window_ordered',
            ),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': _("End date must be after start date.")})

    @property
    def is_sales_open(self):
        """True while the raffle is active and now falls inside its sales window."""
        now = timezone.now()
        return self.is_active and self.start_date <= now <= self.end_date

    def populate_numbers(self):
        """
        Create the inventory rows 1..total_numbers.

        Idempotent: existing rows are left untouched, so it is safe to call again
        after raising total_numbers.
        """
        RaffleNumber.objects.bulk_create(
            [RaffleNumber(raffle=self, number=n) for n in range(1, self.total_numbers + 1)],
            batch_size=500,
            ignore_conflicts=True,
        )
        return self.numbers.count()


class RaffleNumber(BaseModel):
    """
    One sellable number of a raffle.

    Rows are only ever mutated through the conditional updates in
    ``apps.raffles.inventory``; never read-modify-write them.
    """

    STATUS_AVAILABLE = 'available'
    STATUS_RESERVED = 'reserved'
    STATUS_SOLD = 'sold'

    STATUS_CHOICES = (
        (STATUS_AVAILABLE, _('Available')),
        (STATUS_RESERVED, _('Reserved')),
        (STATUS_SOLD, _('Sold')),
    )

    raffle = models.ForeignKey(
        Raffle,
        on_delete=models.CASCADE,
        related_name='numbers',
        verbose_name=_("raffle")
    )
    number = models.PositiveIntegerField(_("number"))
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_AVAILABLE
    )
    reserved_at = models.DateTimeField(_("reserved at"), null=True, blank=True)
    sold_at = models.DateTimeField(_("sold at"), null=True, blank=True)
    holder_ref = models.CharField(
        _("holder reference"),
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text=_("Transient hold id or order id currently holding this number")
    )

    class Meta:
        verbose_name = _("raffle number")
        verbose_name_plural = _("raffle numbers")
        ordering = ['raffle', 'number']
        indexes = [
            models.Index(fields=['raffle', 'status'], name='raffles_raf_raffle__8d2f4a_idx'),
            models.Index(fields=['status', 'reserved_at'], name='raffles_raf_status_3b7e91_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['raffle', 'number'],
                name='raffles_unique_number_per_raffle',
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status='available',
                        reserved_at__isnull=True,
                        sold_at__isnull=True,
                        holder_ref__isnull=True,
                    )
                    | models.Q(
                        status='reserved',
                        reserved_at__isnull=False,
                        sold_at__isnull=True,
                        holder_ref__isnull=False,
                    )
                    | models.Q(
                        status='sold',
                        reserved_at__isnull=True,
                        sold_at__isnull=False,
                        holder_ref__isnull=False,
                    )
                ),
                name='raffles_number_status_consistent',
            ),
        ]

    def __str__(self):
        return f"#{self.number} ({self.status})"


def generate_order_id():
    """Generate a unique order id."""
    return generate_unique_code(prefix=settings.RAFFLE_ORDER_PREFIX)


class Order(TimeStampedModel):
    """A buyer's purchase of a specific set of raffle numbers."""

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_PENDING, _('Pending')),
        (STATUS_APPROVED, _('Approved')),
        (STATUS_REJECTED, _('Rejected')),
        (STATUS_CANCELLED, _('Cancelled')),
    )
    TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELLED)
    FAILED_STATUSES = (STATUS_REJECTED, STATUS_CANCELLED)

    id = models.CharField(
        _("id"),
        primary_key=True,
        max_length=32,
        default=generate_order_id,
        editable=False
    )
    raffle = models.ForeignKey(
        Raffle,
        on_delete=models.PROTECT,
        related_name='orders',
        verbose_name=_("raffle")
    )
    buyer_name = models.CharField(_("buyer name"), max_length=150)
    student_name = models.CharField(_("student name"), max_length=150)
    division = models.CharField(_("division"), max_length=50)
    course = models.CharField(_("course"), max_length=50)
    email = models.EmailField(_("email"))
    phone = models.CharField(_("phone"), max_length=30, blank=True)
    numbers_count = models.PositiveIntegerField(_("numbers count"))
    total_amount = models.DecimalField(
        _("total amount"),
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    payment_status = models.CharField(
        _("payment status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    reservation_id = models.CharField(_("reservation id"), max_length=64, blank=True)
    preference_id = models.CharField(_("checkout preference id"), max_length=100, blank=True)
    payment_id = models.CharField(_("payment id"), max_length=100, blank=True)
    payment_method = models.CharField(_("payment method"), max_length=50, blank=True)
    payment_metadata = models.JSONField(
        _("payment metadata"),
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder
    )
    settled_at = models.DateTimeField(_("settled at"), null=True, blank=True)

    class Meta:
        verbose_name = _("order")
        verbose_name_plural = _("orders")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['payment_status', 'created_at'], name='raffles_ord_payment_5c1e0b_idx'),
        ]

    def __str__(self):
        return self.id

    @property
    def is_pending(self):
        return self.payment_status == self.STATUS_PENDING

    @property
    def is_approved(self):
        return self.payment_status == self.STATUS_APPROVED

    @property
    def is_terminal(self):
        return self.payment_status in self.TERMINAL_STATUSES

    def held_numbers(self):
        """Numbers currently pointing back at this order, in ascending order."""
        return list(
            RaffleNumber.objects.filter(raffle_id=self.raffle_id, holder_ref=self.id)
            .order_by('number')
            .values_list('number', flat=True)
        )


class EventLog(models.Model):
    """
    Append-only audit trail of allocation state transitions.

    Used for reconciliation only; nothing reads it to make decisions.
    """

    RESERVATION_CREATED = 'reservation_created'
    PURCHASE_CREATED = 'purchase_created'
    PAYMENT_CONFIRMED = 'payment_confirmed'
    PAYMENT_CANCELLED = 'payment_cancelled'
    RESERVATION_EXPIRED = 'reservation_expired'
    PAYMENT_MISMATCH = 'payment_mismatch'

    EVENT_TYPES = (
        (RESERVATION_CREATED, _('Reservation created')),
        (PURCHASE_CREATED, _('Purchase created')),
        (PAYMENT_CONFIRMED, _('Payment confirmed')),
        (PAYMENT_CANCELLED, _('Payment cancelled')),
        (RESERVATION_EXPIRED, _('Reservation expired')),
        (PAYMENT_MISMATCH, _('Payment mismatch')),
    )

    event_type = models.CharField(_("event type"), max_length=40, choices=EVENT_TYPES, db_index=True)
    raffle = models.ForeignKey(
        Raffle,
        on_delete=models.SET_NULL,
        related_name='event_logs',
        verbose_name=_("raffle"),
        null=True,
        blank=True
    )
    # Plain reference rather than a FK: rolled back orders are deleted,
    # their history is not.
    order_ref = models.CharField(_("order reference"), max_length=64, blank=True, db_index=True)
    data = models.JSONField(_("data"), default=dict, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _("event log")
        verbose_name_plural = _("event logs")
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.event_type} {self.order_ref} @ {self.created_at.isoformat()}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("EventLog entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("EventLog entries are append-only")

    @classmethod
    def record(cls, event_type, raffle_id=None, order_ref='', **data):
        return cls.objects.create(
            event_type=event_type,
            raffle_id=raffle_id,
            order_ref=order_ref or '',
            data=data,
        )
