"""Audit trail endpoints. Records are append-only; the author is always the authenticated actor."""

from fastapi import APIRouter, Query

from podtrack.api.schemas.requests import TransactionCreate
from podtrack.api.schemas.responses import TransactionOut, TransactionsResponse
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep
from podtrack.api.services.pagination import PageRequest

router = APIRouter()


@router.get("", response_model=TransactionsResponse)
def list_transactions(
    actor: ActorDep,
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    page: str | None = Query(None),
    page_size: str | None = Query(None),
) -> TransactionsResponse:
    result = repo.list_transactions(
        actor,
        PageRequest.from_raw(page, page_size),
        entity_type=entity_type,
        entity_id=entity_id,
    )
    return TransactionsResponse(
        transactions=[TransactionOut.model_validate(r) for r in result.rows],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(body: TransactionCreate, actor: ActorDep) -> TransactionOut:
    txn = repo.create_transaction(
        actor, body.entity_type, body.entity_id, body.action, body.details, pod_id=body.pod_id
    )
    return TransactionOut.model_validate(txn)
