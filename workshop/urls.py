from django.urls import path

from . import views_coupon
from . import views_invoice
from . import views_service_visit

app_name = "workshop"

urlpatterns = [
    # Parts and staff
    path("api/products/resolve-by-ids/", views_service_visit.api_resolve_products_by_ids, name="api_resolve_products_by_ids"),
    path("api/service-handlers/", views_service_visit.api_service_handlers, name="api_service_handlers"),

    # Service visits
    path("api/service-visits/", views_service_visit.api_service_visits, name="api_service_visits"),
    path("api/service-visits/<int:pk>/", views_service_visit.api_service_visit_detail, name="api_service_visit_detail"),
    path("api/service-visits/<int:pk>/suggested-products/", views_service_visit.api_suggested_products, name="api_suggested_products"),

    # Invoices
    path("api/invoices/", views_invoice.api_invoices, name="api_invoices"),
    path("api/invoices/from-service-visit/", views_invoice.api_invoice_from_service_visit, name="api_invoice_from_service_visit"),
    path("api/invoices/<int:pk>/", views_invoice.api_invoice_detail, name="api_invoice_detail"),
    path("api/invoices/<int:pk>/approve/", views_invoice.api_invoice_approve, name="api_invoice_approve"),
    path("api/invoices/<int:pk>/reject/", views_invoice.api_invoice_reject, name="api_invoice_reject"),
    path("api/invoices/<int:pk>/payment-status/", views_invoice.api_invoice_payment_status, name="api_invoice_payment_status"),
    path("api/invoices/<int:pk>/payments/", views_invoice.api_invoice_record_payment, name="api_invoice_record_payment"),
    path("api/invoices/<int:pk>/pdf/", views_invoice.api_invoice_pdf, name="api_invoice_pdf"),
    path("api/invoices/<int:pk>/products/", views_invoice.api_invoice_products, name="api_invoice_products"),
    path("api/invoices/<int:pk>/warranty-cards/", views_invoice.api_invoice_warranty_card, name="api_invoice_warranty_card"),
    path("api/public/invoices/<int:pk>/pdf/", views_invoice.public_invoice_pdf, name="public_invoice_pdf"),

    # Coupons and warranties
    path("api/coupons/", views_coupon.api_coupons, name="api_coupons"),
    path("api/coupons/validate/", views_coupon.api_coupon_validate, name="api_coupon_validate"),
    path("api/coupons/<int:pk>/", views_coupon.api_coupon_detail, name="api_coupon_detail"),
    path("api/warranties/", views_coupon.api_warranties, name="api_warranties"),
]
