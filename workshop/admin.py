from django.contrib import admin
from .models import (
    ActivityLog, Coupon, CouponUsage, Customer, Invoice, InvoiceItemWarrantyCard, InvoiceLineItem,
    InvoicePayment, Notification, Product, SequenceCounter, ServiceVisit, ServiceVisitPart, Vehicle,
    VehicleWarrantyCard, Warranty,
)


class VehicleInline(admin.TabularInline):
    model = Vehicle
    extra = 0
    fields = ("vehicle_id", "vehicle_number", "vehicle_brand", "vehicle_model", "selected_parts")
    readonly_fields = ("vehicle_id",)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("reference_code", "full_name", "mobile_number", "email", "city", "is_verified", "created_at")
    search_fields = ("reference_code", "full_name", "mobile_number", "email")
    list_filter = ("is_verified", "state")
    readonly_fields = ("reference_code", "created_at", "updated_at")
    inlines = [VehicleInline]


class VehicleWarrantyCardInline(admin.TabularInline):
    model = VehicleWarrantyCard
    extra = 0
    fields = ("part_id", "part_name", "uploaded_at")
    readonly_fields = ("uploaded_at",)


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("vehicle_id", "vehicle_number", "customer", "vehicle_brand", "vehicle_model")
    search_fields = ("vehicle_id", "vehicle_number", "customer__full_name", "chassis_number")
    readonly_fields = ("vehicle_id", "created_at")
    inlines = [VehicleWarrantyCardInline]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "brand", "category", "selling_price", "stock_qty", "warranty", "status")
    list_filter = ("status", "category")
    search_fields = ("name", "brand", "sku")


class ServiceVisitPartInline(admin.TabularInline):
    model = ServiceVisitPart
    extra = 0


@admin.register(ServiceVisit)
class ServiceVisitAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "vehicle_reg", "status", "total_amount", "created_at")
    list_filter = ("status",)
    search_fields = ("vehicle_reg", "customer__full_name", "customer__mobile_number")
    readonly_fields = ("stage_timestamps", "created_at", "updated_at")
    filter_horizontal = ("handlers",)
    inlines = [ServiceVisitPartInline]


class CouponUsageInline(admin.TabularInline):
    model = CouponUsage
    extra = 0
    readonly_fields = ("invoice", "customer", "discount_applied", "used_at")
    can_delete = False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("code", "discount_type", "discount_value", "used_count", "usage_limit", "valid_until", "is_active")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    readonly_fields = ("used_count", "created_at", "updated_at")
    inlines = [CouponUsageInline]


class InvoiceLineItemInline(admin.TabularInline):
    model = InvoiceLineItem
    extra = 0
    fields = ("position", "item_type", "product", "name", "quantity", "unit_price", "total", "has_warranty")


class InvoicePaymentInline(admin.TabularInline):
    model = InvoicePayment
    extra = 0
    readonly_fields = ("amount", "payment_mode", "transaction_id", "recorded_by", "transaction_date")
    can_delete = False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "customer", "status", "payment_status", "total_amount", "paid_amount", "due_amount", "created_at")
    list_filter = ("status", "payment_status", "payment_method")
    search_fields = ("invoice_number", "customer__full_name", "coupon_code")
    readonly_fields = (
        "invoice_number", "pdf_path", "pdf_access_token", "pdf_token_expiry",
        "approved_by", "approved_at", "rejected_by", "rejected_at", "post_approval_results",
        "created_at", "updated_at",
    )
    inlines = [InvoiceLineItemInline, InvoicePaymentInline]


@admin.register(InvoiceItemWarrantyCard)
class InvoiceItemWarrantyCardAdmin(admin.ModelAdmin):
    list_display = ("line_item", "filename", "uploaded_at")
    search_fields = ("filename", "line_item__invoice__invoice_number")


@admin.register(Warranty)
class WarrantyAdmin(admin.ModelAdmin):
    list_display = ("product_name", "customer", "invoice", "duration_months", "start_date", "end_date", "status")
    list_filter = ("status", "warranty_type")
    search_fields = ("product_name", "customer__full_name", "invoice__invoice_number")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "notification_type", "resource", "resource_id", "is_read", "created_at")
    list_filter = ("notification_type", "is_read")


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user_name", "user_role", "action", "resource", "resource_id")
    list_filter = ("action", "resource")
    search_fields = ("user_name", "description", "resource_id")
    readonly_fields = ("user", "user_name", "user_role", "action", "resource", "resource_id", "description", "details", "ip_address", "created_at")


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ("name", "value")
