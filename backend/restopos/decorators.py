# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


def require_actor(f):
    """
    Require an acting identity on the request.

    The caller passes an opaque id in the ``X-Actor-Id`` header; it is stored
    on ``g.actor_id`` and recorded on every write the route performs.
    Returns 401 when the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = (request.headers.get("X-Actor-Id") or "").strip()
        if not actor_id:
            return jsonify({"error": "Actor identity required"}), 401

        g.actor_id = actor_id
        return f(*args, **kwargs)

    return decorated_function
