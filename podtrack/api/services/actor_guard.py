"""Actor choke point. Every repo function takes the actor first and calls require_actor before any DB access."""

from dataclasses import dataclass

from podtrack.api.services.errors import Unauthorized
from podtrack.api.services.visibility import Role


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, resolved server-side from the auth token. Never built from a request body."""

    user_id: str
    role: Role
    email: str | None = None
    name: str | None = None


def require_actor(actor: Actor | None) -> Actor:
    """Return actor or raise Unauthorized. Call at the start of every repo function."""
    if actor is None or not isinstance(actor, Actor) or not str(actor.user_id).strip():
        raise Unauthorized("Authenticated actor required")
    return actor
