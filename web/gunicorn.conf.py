import os

def cpu():
    return max(1, (os.cpu_count() or 1))

wsgi_app = "config.wsgi:application"
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Processes (workers)
workers = min(max(2, cpu() * 2), 8)

# Threads per worker: every request blocks on WooCommerce/Telegram calls
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Timeouts: Telegram expects webhook answers within seconds
timeout = int(os.getenv("GUNI_TIMEOUT", "30"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

preload_app = True
max_requests = int(os.getenv("GUNI_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNI_MAX_REQUESTS_JITTER", "200"))

# Application logs are JSON (see LOGGING in config/settings.py)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
