"""User administration: listing, role changes and profile merges."""

from fastapi import APIRouter, Query

from podtrack.api.schemas.requests import MergeUsersRequest, RoleUpdate
from podtrack.api.schemas.responses import MergeUsersResponse, UserOut, UsersResponse
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep
from podtrack.api.services.pagination import PageRequest

router = APIRouter()


@router.get("", response_model=UsersResponse)
def list_users(
    actor: ActorDep,
    page: str | None = Query(None),
    page_size: str | None = Query(None),
) -> UsersResponse:
    result = repo.list_users(actor, PageRequest.from_raw(page, page_size))
    return UsersResponse(
        users=[UserOut.model_validate(u) for u in result.rows],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.put("/{user_id}/role", response_model=UserOut)
def update_role(user_id: str, body: RoleUpdate, actor: ActorDep) -> UserOut:
    return UserOut.model_validate(repo.update_user_role(actor, user_id, body.role))


@router.post("/merge", response_model=MergeUsersResponse)
def merge_users(body: MergeUsersRequest, actor: ActorDep) -> MergeUsersResponse:
    """Merge the selected profiles into primary_user_id. SUPER_ADMIN only."""
    result = repo.merge_users(actor, body.user_ids, body.primary_user_id)
    return MergeUsersResponse(**result)
