"""GET /engineers: deduplicated engineer roster."""

from fastapi import APIRouter

from podtrack.api.schemas.responses import EngineerOut, EngineersResponse
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep

router = APIRouter()


@router.get("/engineers", response_model=EngineersResponse)
def list_engineers(actor: ActorDep) -> EngineersResponse:
    return EngineersResponse(engineers=[EngineerOut.model_validate(c) for c in repo.list_engineers(actor)])
