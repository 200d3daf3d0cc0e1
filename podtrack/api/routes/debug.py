"""Lightweight debug endpoint for testing. Enabled only when ENV=test.

Used by auth tests to check actor resolution without touching pods.
"""

from fastapi import APIRouter

from podtrack.api.services.actor_context import ActorDep

router = APIRouter()


@router.get("/actor")
def debug_actor(actor: ActorDep) -> dict:
    """Return the actor resolved from auth. For testing only (ENV=test)."""
    return {"user_id": actor.user_id, "role": actor.role.value}
