import os

host = "0.0.0.0"
port = int(os.getenv("PORT", "9100"))
workers = int(os.getenv("UVICORN_WORKERS", "1"))  # SQLite default: keep a single writer
loop = "uvloop"  # requires uvicorn[standard]
http = "h11"
log_level = os.getenv("LOG_LEVEL", "info")
