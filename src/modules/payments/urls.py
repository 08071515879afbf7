"""Payments URL configuration."""

from django.urls import path

from modules.payments.views import RazorpayWebhookView

urlpatterns = [
    path(
        "payments/webhook/razorpay/",
        RazorpayWebhookView.as_view(),
        name="razorpay-webhook",
    ),
]
