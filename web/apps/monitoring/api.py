from django.conf import settings
from django.http import JsonResponse


def health_view(_request):
    """Report whether the external integrations are configured.

    With stubs (``USE_HTTP_ADAPTERS`` off) nothing external is needed, so
    the service is always healthy. Credentials are never echoed.
    """
    use_http = getattr(settings, "USE_HTTP_ADAPTERS", True)
    commerce_ok = bool(
        settings.WOOCOMMERCE_URL and settings.WOOCOMMERCE_CONSUMER_KEY and settings.WOOCOMMERCE_CONSUMER_SECRET
    )
    telegram_ok = bool(settings.TELEGRAM_BOT_TOKEN and settings.TELEGRAM_BOT_SECRET)

    ok = (commerce_ok and telegram_ok) if use_http else True
    code = 200 if ok else 503
    return JsonResponse(
        {
            "ok": ok,
            "adapters": "http" if use_http else "stub",
            "components": {
                "commerce": {"configured": commerce_ok},
                "telegram": {"configured": telegram_ok},
            },
        },
        status=code,
    )
