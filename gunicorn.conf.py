"""
Gunicorn configuration for serving StreakFlame.

    gunicorn -c gunicorn.conf.py streakflame.main:app

Env vars that override defaults:
  PORT     — TCP port to bind (default: 8000)
  WORKERS  — number of worker processes (default: 1)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# The store has a single writer; boot recovery and the reminder registry are
# per process. Keep one worker unless DATABASE_URL points at a server database.
workers = int(os.environ.get("WORKERS", "1"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 60

# stdout only; app records go through streakflame.core.logging.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
