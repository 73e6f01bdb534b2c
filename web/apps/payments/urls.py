from django.urls import path
from .views import TelegramWebhookView
app_name = "payments"

urlpatterns = [
    path("webhook/", TelegramWebhookView.as_view(), name="telegram-webhook"),
]
