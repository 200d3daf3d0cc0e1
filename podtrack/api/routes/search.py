"""Search endpoints: GET /search/pods (paginated rows) and GET /search/options (facet values).

Criteria arrive as field0/value0, field1/value1, ... on /search/pods and as a JSON list on
/search/options. Unknown fields are rejected with 400 before any query runs.
"""

from fastapi import APIRouter, Query, Request

from podtrack.api.schemas.responses import FieldOptionsResponse, PodOut, PodSearchResponse
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep
from podtrack.api.services.filters import criteria_from_json, criteria_from_query_params
from podtrack.api.services.pagination import PageRequest
from podtrack.api.services.visibility import Partition

router = APIRouter()


@router.get("/pods", response_model=PodSearchResponse)
def search_pods(
    request: Request,
    actor: ActorDep,
    is_history: bool = Query(False),
    page: str | None = Query(None),
    page_size: str | None = Query(None),
) -> PodSearchResponse:
    """Rows of one partition under the caller's visibility gate. Invalid page values fall back to defaults."""
    criteria = criteria_from_query_params(request.query_params)
    result = repo.search_pods(
        actor,
        Partition.from_flag(is_history),
        criteria,
        PageRequest.from_raw(page, page_size),
    )
    return PodSearchResponse(
        rows=[PodOut.model_validate(r) for r in result.rows],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.get("/options", response_model=FieldOptionsResponse)
def field_options(
    actor: ActorDep,
    field: str = Query(...),
    is_history: bool = Query(False),
    filters: str | None = Query(None, description="JSON list of {field, value}"),
) -> FieldOptionsResponse:
    """Distinct values of field under the other active filters."""
    options = repo.list_field_options(actor, field, criteria_from_json(filters), Partition.from_flag(is_history))
    return FieldOptionsResponse(options=options)
