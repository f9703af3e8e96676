from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional
import uuid


TWO_PLACES = Decimal('0.01')


class Customer(models.Model):
    reference_code = models.CharField(max_length=32, unique=True, editable=False)
    full_name = models.CharField(max_length=255)
    mobile_number = models.CharField(max_length=20, unique=True)
    alternative_number = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    city = models.CharField(max_length=128, blank=True, null=True)
    taluka = models.CharField(max_length=128, blank=True, null=True)
    district = models.CharField(max_length=128, blank=True, null=True)
    state = models.CharField(max_length=128, blank=True, null=True)
    pin_code = models.CharField(max_length=12, blank=True, null=True)
    referral_source = models.CharField(max_length=128, blank=True, null=True)
    is_verified = models.BooleanField(default=False)
    registered_by = models.CharField(max_length=128, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['full_name'], name='idx_cust_name'),
            models.Index(fields=['mobile_number'], name='idx_cust_mobile'),
        ]

    def save(self, *args, **kwargs):
        if not self.reference_code:
            self.reference_code = f"CUST{str(uuid.uuid4())[:8].upper()}"
            while Customer.objects.filter(reference_code=self.reference_code).exists():
                self.reference_code = f"CUST{str(uuid.uuid4())[:8].upper()}"
        super().save(*args, **kwargs)

    def snapshot(self) -> dict:
        """Denormalized copy printed on invoices."""
        return {
            'referenceCode': self.reference_code,
            'fullName': self.full_name,
            'mobileNumber': self.mobile_number,
            'alternativeNumber': self.alternative_number,
            'email': self.email,
            'address': self.address,
            'city': self.city,
            'taluka': self.taluka,
            'district': self.district,
            'state': self.state,
            'pinCode': self.pin_code,
            'referralSource': self.referral_source,
            'isVerified': self.is_verified,
            'registrationDate': self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        return f"{self.full_name} ({self.reference_code})"


class Vehicle(models.Model):
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='vehicles')
    vehicle_id = models.CharField(max_length=32, unique=True, editable=False)
    vehicle_number = models.CharField(max_length=32, blank=True, null=True)
    vehicle_brand = models.CharField(max_length=64, blank=True, null=True)
    vehicle_model = models.CharField(max_length=64, blank=True, null=True)
    custom_model = models.CharField(max_length=64, blank=True, null=True)
    variant = models.CharField(max_length=64, blank=True, null=True)
    color = models.CharField(max_length=32, blank=True, null=True)
    year_of_purchase = models.PositiveIntegerField(blank=True, null=True)
    vehicle_photo = models.TextField(blank=True, null=True)
    is_new_vehicle = models.BooleanField(default=False)
    chassis_number = models.CharField(max_length=64, blank=True, null=True)
    # Part identifiers: catalog ids, product ids, or legacy "product-<id>" values
    selected_parts = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['customer'], name='idx_vehicle_customer'),
            models.Index(fields=['vehicle_number'], name='idx_vehicle_number'),
        ]

    def save(self, *args, **kwargs):
        if not self.vehicle_id:
            self.vehicle_id = f"VEH{uuid.uuid4().hex[:8].upper()}"
            while Vehicle.objects.filter(vehicle_id=self.vehicle_id).exists():
                self.vehicle_id = f"VEH{uuid.uuid4().hex[:8].upper()}"
        super().save(*args, **kwargs)

    def snapshot(self) -> dict:
        return {
            'vehicleId': self.vehicle_id,
            'vehicleNumber': self.vehicle_number,
            'vehicleBrand': self.vehicle_brand,
            'vehicleModel': self.vehicle_model,
            'customModel': self.custom_model,
            'variant': self.variant,
            'color': self.color,
            'yearOfPurchase': self.year_of_purchase,
            'vehiclePhoto': self.vehicle_photo,
            'isNewVehicle': self.is_new_vehicle,
            'chassisNumber': self.chassis_number,
            'selectedParts': list(self.selected_parts or []),
            'vehicleRegistrationDate': self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        return f"{self.vehicle_number or self.vehicle_id} - {self.vehicle_brand or ''} {self.vehicle_model or ''}"


class VehicleWarrantyCard(models.Model):
    """Latest warranty card per part on a vehicle; one row per (vehicle, part_id)."""
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='warranty_cards')
    part_id = models.CharField(max_length=64)
    part_name = models.CharField(max_length=255, blank=True, null=True)
    file_data = models.TextField()
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['uploaded_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['vehicle', 'part_id'], name='uniq_vehicle_part_card'),
        ]

    def __str__(self):
        return f"Warranty card {self.part_name or self.part_id} on {self.vehicle}"


class Product(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('discontinued', 'Discontinued'),
    ]

    name = models.CharField(max_length=255)
    category = models.CharField(max_length=128, blank=True, null=True)
    brand = models.CharField(max_length=128, blank=True, null=True)
    sku = models.CharField(max_length=64, blank=True, null=True)
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    stock_qty = models.PositiveIntegerField(default=0)
    warranty = models.CharField(max_length=255, blank=True, null=True, help_text="Free text, e.g. '6 months manufacturer warranty'")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='idx_product_name'),
            models.Index(fields=['status'], name='idx_product_status'),
        ]

    def __str__(self) -> str:
        return self.name


class ServiceVisit(models.Model):
    STATUS_CHOICES = [
        ('inquired', 'Inquired'),
        ('working', 'Working'),
        ('waiting', 'Waiting'),
        ('completed', 'Completed'),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='service_visits')
    # Registration number or vehicle_id as typed at intake, not a foreign key
    vehicle_reg = models.CharField(max_length=64)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='inquired')
    handlers = models.ManyToManyField(User, blank=True, related_name='handled_service_visits')
    before_images = models.JSONField(default=list, blank=True)
    after_images = models.JSONField(default=list, blank=True)
    # status -> ISO timestamp of the latest entry into that phase
    stage_timestamps = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True, null=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='service_visits_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_visit_status'),
            models.Index(fields=['vehicle_reg'], name='idx_visit_vehicle_reg'),
        ]

    def stamp_stage(self, status: str, when=None):
        stamps = dict(self.stage_timestamps or {})
        stamps[status] = (when or timezone.now()).isoformat()
        self.stage_timestamps = stamps

    def __str__(self):
        return f"Visit #{self.pk} {self.vehicle_reg} ({self.status})"


class ServiceVisitPart(models.Model):
    visit = models.ForeignKey(ServiceVisit, on_delete=models.CASCADE, related_name='parts_used')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='visit_usages')
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.product} x {self.quantity}"


class CouponCheck(NamedTuple):
    valid: bool
    reason: Optional[str] = None


class Coupon(models.Model):
    DISCOUNT_TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]

    code = models.CharField(max_length=32, unique=True)
    description = models.TextField(blank=True, null=True)
    discount_type = models.CharField(max_length=16, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    max_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True, help_text="Cap for percentage discounts")
    min_purchase_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    usage_limit = models.PositiveIntegerField(blank=True, null=True, help_text="Total redemptions allowed; empty means unlimited")
    usage_per_customer = models.PositiveIntegerField(default=1)
    used_count = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='coupons_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def customer_usage_count(self, customer_id) -> int:
        return self.usage_history.filter(customer_id=customer_id).count()

    def is_valid(self, customer_id, purchase_amount, now=None) -> CouponCheck:
        """Check the coupon against a customer and a purchase amount."""
        now = now or timezone.now()
        amount = Decimal(str(purchase_amount or 0))
        if not self.is_active:
            return CouponCheck(False, 'Coupon is not active')
        if self.valid_from and now < self.valid_from:
            return CouponCheck(False, 'Coupon is not yet valid')
        if self.valid_until and now > self.valid_until:
            return CouponCheck(False, 'Coupon has expired')
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            return CouponCheck(False, 'Coupon usage limit reached')
        if customer_id is not None and self.usage_per_customer:
            if self.customer_usage_count(customer_id) >= self.usage_per_customer:
                return CouponCheck(False, 'Coupon usage limit reached for this customer')
        if amount < self.min_purchase_amount:
            return CouponCheck(False, f'Minimum purchase amount of {self.min_purchase_amount} required')
        return CouponCheck(True)

    def calculate_discount(self, purchase_amount) -> Decimal:
        amount = Decimal(str(purchase_amount or 0))
        if amount <= 0:
            return Decimal('0.00')
        if self.discount_type == 'percentage':
            discount = amount * self.discount_value / Decimal('100')
            if self.max_discount_amount is not None:
                discount = min(discount, self.max_discount_amount)
        else:
            discount = self.discount_value
        discount = max(Decimal('0'), min(discount, amount))
        return discount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    def __str__(self):
        return self.code


class Invoice(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending_approval', 'Pending Approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('UPI', 'UPI'),
        ('Cash', 'Cash'),
        ('Card', 'Card'),
        ('Net Banking', 'Net Banking'),
        ('Cheque', 'Cheque'),
    ]
    DISCOUNT_TYPE_CHOICES = [
        ('none', 'None'),
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]

    invoice_number = models.CharField(max_length=32, unique=True, editable=False, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES, blank=True, null=True)

    service_visit = models.ForeignKey(ServiceVisit, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')

    # Copies taken at creation; later customer/vehicle edits do not touch them
    customer_details = models.JSONField(default=dict, blank=True)
    vehicle_details = models.JSONField(default=list, blank=True)

    # Amounts
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_type = models.CharField(max_length=16, choices=DISCOUNT_TYPE_CHOICES, default='none')
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    coupon_code = models.CharField(max_length=32, blank=True, null=True)
    coupon = models.ForeignKey(Coupon, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0, help_text="Tax percentage")
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    due_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    notes = models.TextField(blank=True, null=True)
    terms = models.TextField(blank=True, null=True)
    due_date = models.DateField(blank=True, null=True)

    # Rendered document and token-gated public access
    pdf_path = models.CharField(max_length=500, blank=True, null=True)
    pdf_access_token = models.CharField(max_length=64, blank=True, null=True)
    pdf_token_expiry = models.DateTimeField(blank=True, null=True)

    # Approval trail
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices_approved')
    approved_at = models.DateTimeField(blank=True, null=True)
    rejected_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices_rejected')
    rejected_at = models.DateTimeField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    # Outcome of each best-effort step run after approval
    post_approval_results = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['invoice_number'], name='idx_invoice_number'),
            models.Index(fields=['customer'], name='idx_invoice_customer'),
            models.Index(fields=['status'], name='idx_invoice_status'),
            models.Index(fields=['payment_status'], name='idx_invoice_pay_status'),
        ]

    def __str__(self) -> str:
        return f"Invoice {self.invoice_number} - {self.customer_details.get('fullName', '')}"

    def save(self, *args, **kwargs):
        if not self.invoice_number:
            self.generate_invoice_number()
        super().save(*args, **kwargs)

    def generate_invoice_number(self):
        """Sequential number of the form INV/<year>/<seq>."""
        if self.invoice_number:
            return self.invoice_number
        from .services.sequence import get_next_sequence
        seq = get_next_sequence('invoice')
        self.invoice_number = f"INV/{timezone.now().year}/{seq:05d}"
        return self.invoice_number

    @property
    def snapshot_vehicle_ids(self):
        return [vd.get('vehicleId') for vd in (self.vehicle_details or []) if vd.get('vehicleId')]

    @property
    def pdf_filename(self) -> str:
        return f"{self.invoice_number.replace('/', '_')}.pdf"


class InvoiceLineItem(models.Model):
    ITEM_TYPE_CHOICES = [
        ('product', 'Product'),
        ('service', 'Service'),
    ]

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    item_type = models.CharField(max_length=16, choices=ITEM_TYPE_CHOICES, default='product')

    # Persisted product when the supplied id resolved to one; catalog ids live in part_ref only
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice_items')
    part_ref = models.CharField(max_length=64, blank=True, null=True, help_text="Part identifier as supplied")

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    # Supplied by the caller, GST included
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    has_gst = models.BooleanField(default=False)
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    has_warranty = models.BooleanField(default=False)

    class Meta:
        ordering = ['invoice', 'position']
        constraints = [
            models.UniqueConstraint(fields=['invoice', 'position'], name='uniq_invoice_item_position'),
        ]

    def __str__(self) -> str:
        return f"{self.name} x {self.quantity}"


class InvoiceItemWarrantyCard(models.Model):
    """Uploaded warranty card for an invoice line item. Append-only."""
    line_item = models.ForeignKey(InvoiceLineItem, on_delete=models.CASCADE, related_name='warranty_cards')
    url = models.TextField()
    filename = models.CharField(max_length=255)
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['uploaded_at', 'id']

    def as_dict(self):
        return {'url': self.url, 'filename': self.filename, 'uploadedAt': self.uploaded_at.isoformat()}


class InvoicePayment(models.Model):
    """Payment ledger entry. Never edited after creation."""
    PAYMENT_MODE_CHOICES = Invoice.PAYMENT_METHOD_CHOICES

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = models.CharField(max_length=16, choices=PAYMENT_MODE_CHOICES)
    transaction_id = models.CharField(max_length=128, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    recorded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice_payments_recorded')
    transaction_date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['transaction_date', 'id']

    def __str__(self) -> str:
        return f"{self.payment_mode} - {self.amount}"


class CouponUsage(models.Model):
    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name='usage_history')
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name='coupon_usages')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='coupon_usages')
    discount_applied = models.DecimalField(max_digits=12, decimal_places=2)
    used_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['used_at', 'id']

    def __str__(self):
        return f"{self.coupon.code} used on {self.used_at:%Y-%m-%d}"


class Warranty(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('expired', 'Expired'),
    ]

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='warranties')
    line_item = models.ForeignKey(InvoiceLineItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='warranties')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='warranties')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='warranties')
    product_name = models.CharField(max_length=255)
    warranty_type = models.CharField(max_length=32, default='manufacturer')
    duration_months = models.PositiveIntegerField()
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    coverage = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'Warranties'
        indexes = [
            models.Index(fields=['status'], name='idx_warranty_status'),
            models.Index(fields=['end_date'], name='idx_warranty_end'),
        ]

    def __str__(self):
        return f"{self.product_name} ({self.duration_months} months)"


class Notification(models.Model):
    """In-app notification shown to staff."""
    title = models.CharField(max_length=255)
    message = models.TextField()
    notification_type = models.CharField(max_length=32, default='info')
    resource = models.CharField(max_length=32, blank=True, null=True)
    resource_id = models.CharField(max_length=64, blank=True, null=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class ActivityLog(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='workshop_activity')
    user_name = models.CharField(max_length=150, blank=True, null=True)
    user_role = models.CharField(max_length=64, blank=True, null=True)
    action = models.CharField(max_length=32)
    resource = models.CharField(max_length=32)
    resource_id = models.CharField(max_length=64, blank=True, null=True)
    description = models.TextField()
    details = models.JSONField(blank=True, null=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['resource', 'resource_id'], name='idx_activity_resource'),
        ]

    def __str__(self):
        return f"{self.action} {self.resource} {self.resource_id or ''}"


class SequenceCounter(models.Model):
    name = models.CharField(max_length=64, unique=True)
    value = models.PositiveBigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.value}"
