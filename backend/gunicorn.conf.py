# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with env GUNICORN_WORKERS
threads = 1
timeout = 30
graceful_timeout = 30
keepalive = 5

# Entry point: gunicorn -c gunicorn.conf.py "authcore:create_app()"
wsgi_app = "authcore:create_app()"

# Logs to stdout/stderr; application records are already JSON
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with env LOG_LEVEL
