"""Server-side actor injection for routes.

The middleware sets request.state.actor_id; this dependency loads the live user so the role
always reflects the current users row (role changes and merges apply on the next request).
"""

from typing import Annotated

from fastapi import Depends, Request

from podtrack.api.services import repo
from podtrack.api.services.actor_guard import Actor
from podtrack.api.services.errors import Unauthorized


def get_actor_id(request: Request) -> str:
    """Return actor_id from request.state (set by auth middleware). Raises Unauthorized if missing."""
    actor_id = getattr(request.state, "actor_id", None)
    if not actor_id or not str(actor_id).strip():
        raise Unauthorized()
    return str(actor_id).strip()


def get_current_actor(request: Request) -> Actor:
    """FastAPI dependency: resolve the Actor. Unknown or merged users are Unauthorized."""
    actor = repo.load_actor(get_actor_id(request))
    if actor is None:
        raise Unauthorized()
    return actor


# Type alias for Depends()
ActorDep = Annotated[Actor, Depends(get_current_actor)]
