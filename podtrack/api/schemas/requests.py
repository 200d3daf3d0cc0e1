"""Request schemas for API endpoints. Actor identity is never accepted in a payload."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from podtrack.api.models.pod import NO_PRIORITY
from podtrack.api.services.visibility import Role


class PodFields(BaseModel):
    """Business fields a caller may set on a pod. Lifecycle flags (history, deleted, visibility) are server-set."""

    model_config = ConfigDict(extra="forbid")

    internal_pod_id: str | None = None
    type: str | None = None
    assigned_engineer: str | None = Field(None, description="Engineer email, or name for imported profiles")
    assigned_engineer_date: datetime | None = None
    status: str | None = None
    sub_status: str | None = None
    org: str | None = None
    clli: str | None = None
    city: str | None = None
    state: str | None = None
    router_type: str | None = None
    router1: str | None = None
    router2: str | None = None
    pod_program_type: str | None = None
    tenant_name: str | None = None
    current_lep_version: str | None = None
    lep_version_to_be_applied: str | None = None
    pod_type: str | None = None
    pod_type_original: str | None = None
    special: bool | None = None
    creation_timestamp: datetime | None = None
    sla_calculated_nbd: datetime | None = None
    pod_workable_date: datetime | None = None
    total_elapsed_cycle_time: int | None = Field(None, ge=0)
    workable_cycle_time: int | None = Field(None, ge=0)
    notes: str | None = None


class PodCreate(PodFields):
    """Request body for POST /pods and each item of POST /pods/import."""

    pod: str = Field(..., min_length=1, description="Business code; immutable once created")
    priority: int | None = Field(None, ge=0, lt=NO_PRIORITY, description="Omit or null for no priority")


class PodUpdate(PodFields):
    """Request body for PUT /pods/{id}. Only the fields sent are changed; pod and priority are not accepted."""


class PodImportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pods: list[PodCreate]
    is_history: bool = False


class PriorityUpdate(BaseModel):
    """Request body for PATCH /pods/{id}/priority. null clears the priority."""

    model_config = ConfigDict(extra="forbid")

    priority: int | None = Field(..., ge=0, lt=NO_PRIORITY)


class DuplicateCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[str] = Field(default_factory=list, description="Pod codes to check against active pods")


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Role


class MergeUsersRequest(BaseModel):
    """Request body for POST /users/merge."""

    model_config = ConfigDict(extra="forbid")

    user_ids: list[str] = Field(..., min_length=2)
    primary_user_id: str = Field(..., min_length=1)


class TransactionCreate(BaseModel):
    """Request body for POST /transactions. created_by is the authenticated actor."""

    model_config = ConfigDict(extra="forbid")

    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    details: Any = Field(..., description="Snapshot; stored as JSON text")
    pod_id: str | None = None


class NotificationIdsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[str] = Field(..., min_length=1)
