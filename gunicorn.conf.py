"""Gunicorn configuration for the Wansiri Hospital Chatbot API."""

import multiprocessing
import os
from app.settings.v1.settings import SETTINGS

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes. In-memory sessions live in one process, so more than one
# worker only makes sense when MongoDB holds the conversations.
if SETTINGS.GENERAL.MONGODB_ENABLED:
    workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
else:
    workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000

# Restart workers after this many requests to prevent memory leaks
max_requests = 1000
max_requests_jitter = 100

# Timeout settings (streamed answers can take a while)
timeout = 120
keepalive = 5
graceful_timeout = 30

# Application
wsgi_app = "main:app"

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = SETTINGS.GENERAL.LOG_LEVEL.lower()
access_log_format = (
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
)

# Process naming
proc_name = "wansiri-chatbot-api"

# Daemon mode
daemon = False

# Directories
tmp_upload_dir = "/tmp"
worker_tmp_dir = "/dev/shm"

# Worker limits
limit_request_line = 4096
limit_request_fields = 100
limit_request_field_size = 8192

# Enable forwarded headers
forwarded_allow_ips = "*"

if SETTINGS.GENERAL.PRODUCTION:
    preload_app = True
else:
    timeout = 300
    keepalive = 2
    preload_app = False
    reload = True


# Worker lifecycle hooks
def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info(f"Starting {SETTINGS.GENERAL.APP_NAME} with {workers} worker(s)")


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"{SETTINGS.GENERAL.APP_NAME} is ready")


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info(f"Worker {worker.pid} spawned")


def worker_abort(worker):
    """Called when a worker received the SIGABRT signal."""
    worker.log.info(f"Worker {worker.pid} aborted")


def on_exit(server):
    """Called just before exiting."""
    server.log.info(f"Shutting down {SETTINGS.GENERAL.APP_NAME}")
