"""
Gunicorn configuration for the Momentum engine API.

Env vars that override defaults:
  PORT       — TCP port to bind
  WORKERS    — number of worker processes (default: 2)
  LOG_LEVEL  — shared with the app's own logging (default: info)

Workers are independent processes; each opens its own SQLAlchemy engine
pool, so nothing mutable is shared between them except the database.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"
proc_name = "momentum-engine"

keepalive = 5
timeout = 60
graceful_timeout = 30

# Recycle each worker after ~2000 requests.
max_requests = 2000
max_requests_jitter = 200

# stdout only; app logs go to the same stream (app/core/logging.py).
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'
