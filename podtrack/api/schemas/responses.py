"""Response schemas. JSON-serializable; field names are snake_case."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class PodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    pod: str
    internal_pod_id: str
    type: str
    assigned_engineer: str
    assigned_engineer_name: str | None = None
    assigned_engineer_date: datetime | None
    status: str
    sub_status: str
    org: str
    priority: int
    clli: str
    city: str
    state: str
    router_type: str
    router1: str
    router2: str
    pod_program_type: str
    tenant_name: str
    current_lep_version: str
    lep_version_to_be_applied: str
    pod_type: str
    pod_type_original: str
    special: bool
    creation_timestamp: datetime | None
    sla_calculated_nbd: datetime | None
    pod_workable_date: datetime | None
    total_elapsed_cycle_time: int
    workable_cycle_time: int
    notes: str | None
    completed_date: datetime | None
    is_history: bool
    should_display: bool
    created_by_id: str | None
    created_at: datetime
    updated_at: datetime | None


class PodSearchResponse(BaseModel):
    """GET /search/pods: one page plus totals computed on the same filtered set."""

    rows: list[PodOut]
    total_count: int
    total_pages: int
    current_page: int


class FieldOptionsResponse(BaseModel):
    options: list[Any]


class EngineerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_name: str
    key: str
    is_registered: bool
    is_imported: bool


class EngineersResponse(BaseModel):
    engineers: list[EngineerOut]


class ActivePodFilters(BaseModel):
    orgs: list[str]
    pod_program_types: list[str]
    pod_types: list[str]
    engineers: list[EngineerOut]


class ActivePodsResponse(BaseModel):
    pods: list[PodOut]
    filters: ActivePodFilters


class DuplicateCheckResponse(BaseModel):
    duplicates: list[str]


class PodImportResult(BaseModel):
    pod: str
    action: Literal["created", "skipped"]
    id: str | None = None


class PodImportResponse(BaseModel):
    success: bool = True
    results: list[PodImportResult]


class OkResponse(BaseModel):
    success: bool = True
    message: str | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None
    name: str | None
    role: str
    is_imported_profile: bool
    created_at: datetime


class UsersResponse(BaseModel):
    users: list[UserOut]
    total_count: int
    total_pages: int
    current_page: int


class MergeUsersResponse(BaseModel):
    success: bool = True
    primary_user_id: str
    merged_user_ids: list[str]


class TransactionCreator(BaseModel):
    id: str
    email: str | None
    name: str | None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_type: str
    entity_id: str
    action: str
    details: str
    pod_id: str | None
    created_by_id: str
    created_at: datetime
    created_by: TransactionCreator | None = None


class TransactionsResponse(BaseModel):
    transactions: list[TransactionOut]
    total_count: int
    total_pages: int
    current_page: int


class NotificationOut(BaseModel):
    id: str
    message: str
    created_at: datetime
    read: bool
    pod_id: str | None
    created_by_email: str


class NotificationsResponse(BaseModel):
    notifications: list[NotificationOut]
    total_count: int
    unread_count: int
    total_pages: int
    current_page: int
