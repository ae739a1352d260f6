"""
Request logger – after-request hook writing one log line per API call.
Request bodies are never logged, so passwords and tokens stay out of the logs.
"""

import logging
from flask import request, g

logger = logging.getLogger("pharmalens.requests")


def log_after_request(response):
    """Log method, path, status and the acting user for every /api/* request."""
    if not request.path.startswith("/api/"):
        return response

    # Skip health checks from filling the log
    if request.path == "/api/health":
        return response

    user = getattr(g, "current_user", None)
    user_id = user.get("id") if user else None

    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s -> %s (user=%s)",
        request.method,
        request.path,
        response.status_code,
        user_id,
    )
    return response
