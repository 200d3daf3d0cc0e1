"""Pod lifecycle endpoints. Every mutation is audited in the same unit of work as the change."""

from fastapi import APIRouter

from podtrack.api.schemas.requests import (
    DuplicateCheckRequest,
    PodCreate,
    PodImportRequest,
    PodUpdate,
    PriorityUpdate,
)
from podtrack.api.schemas.responses import (
    ActivePodFilters,
    ActivePodsResponse,
    DuplicateCheckResponse,
    EngineerOut,
    OkResponse,
    PodImportResponse,
    PodImportResult,
    PodOut,
)
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep

router = APIRouter()


@router.get("/active", response_model=ActivePodsResponse)
def active_pods(actor: ActorDep) -> ActivePodsResponse:
    """Active pods the caller may see plus filter values for the active view."""
    overview = repo.get_active_pods_overview(actor)
    return ActivePodsResponse(
        pods=[PodOut.model_validate(p) for p in overview["pods"]],
        filters=ActivePodFilters(
            orgs=overview["orgs"],
            pod_program_types=overview["pod_program_types"],
            pod_types=overview["pod_types"],
            engineers=[EngineerOut.model_validate(c) for c in overview["engineers"]],
        ),
    )


@router.post("", response_model=PodOut, status_code=201)
def create_pod(body: PodCreate, actor: ActorDep) -> PodOut:
    pod = repo.create_pod(actor, body.model_dump(exclude_none=True))
    return PodOut.model_validate(pod)


@router.post("/check-duplicate", response_model=DuplicateCheckResponse)
def check_duplicate(body: DuplicateCheckRequest, actor: ActorDep) -> DuplicateCheckResponse:
    return DuplicateCheckResponse(duplicates=repo.find_duplicate_codes(actor, body.ids))


@router.post("/import", response_model=PodImportResponse)
def import_pods(body: PodImportRequest, actor: ActorDep) -> PodImportResponse:
    """Bulk import. Active imports skip codes already active; history imports always create."""
    results = repo.import_pods(actor, [p.model_dump(exclude_none=True) for p in body.pods], body.is_history)
    return PodImportResponse(results=[PodImportResult(**r) for r in results])


@router.patch("/{pod_id}/priority", response_model=PodOut)
def update_priority(pod_id: str, body: PriorityUpdate, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.update_pod_priority(actor, pod_id, body.priority))


@router.put("/{pod_id}", response_model=PodOut)
def update_pod(pod_id: str, body: PodUpdate, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.update_pod(actor, pod_id, body.model_dump(exclude_unset=True)))


@router.post("/{pod_id}/duplicate", response_model=PodOut, status_code=201)
def duplicate_pod(pod_id: str, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.duplicate_pod(actor, pod_id))


@router.post("/{code}/complete", response_model=PodOut)
def complete_pod(code: str, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.complete_pod(actor, code))


@router.post("/{pod_id}/move-to-history", response_model=PodOut)
def move_to_history(pod_id: str, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.move_pod_to_history(actor, pod_id))


@router.post("/{code}/move-to-active", response_model=PodOut)
def move_to_active(code: str, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.move_pod_to_active(actor, code))


@router.post("/{pod_id}/toggle-visibility", response_model=PodOut)
def toggle_visibility(pod_id: str, actor: ActorDep) -> PodOut:
    return PodOut.model_validate(repo.toggle_pod_visibility(actor, pod_id))


@router.delete("/{pod_id}", response_model=OkResponse)
def delete_pod(pod_id: str, actor: ActorDep) -> OkResponse:
    repo.delete_pod(actor, pod_id)
    return OkResponse(message="POD deleted")
