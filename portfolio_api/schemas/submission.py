"""Schemas for the admin submissions dashboard (Appwrite documents)."""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SubmissionStatus(str, Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusLogEntry(_CamelModel):
    previous_status: Optional[SubmissionStatus] = None
    new_status: SubmissionStatus
    timestamp: str
    updated_by: str = "system"

    def to_storage(self) -> str:
        # Appwrite string arrays cannot hold objects
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_storage(cls, raw: Any) -> "StatusLogEntry":
        if isinstance(raw, str):
            raw = json.loads(raw)
        return cls.model_validate(raw)


class StoredSubmission(_CamelModel):
    id: str = Field(..., alias="$id")
    created_at: Optional[str] = Field(None, alias="$createdAt")
    updated_at: Optional[str] = Field(None, alias="$updatedAt")
    name: str
    email: str
    subject: str = ""
    message: str
    timestamp: Optional[str] = None
    user_agent: Optional[str] = None
    source: Optional[str] = None
    ip_address: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.NEW
    status_log: List[StatusLogEntry] = Field(default_factory=list)
    priority: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    last_updated: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "StoredSubmission":
        data = dict(document)
        data["statusLog"] = [
            StatusLogEntry.from_storage(raw) for raw in data.get("statusLog") or []
        ]
        data["status"] = data.get("status") or SubmissionStatus.NEW.value
        data["tags"] = data.get("tags") or []
        return cls.model_validate(data)


class SubmissionList(BaseModel):
    submissions: List[StoredSubmission]
    total: int


class StatusUpdateRequest(_CamelModel):
    status: SubmissionStatus
    updated_by: str = Field("admin", max_length=100)


class PriorityUpdateRequest(BaseModel):
    priority: int = Field(..., ge=1, le=5)


class TagsUpdateRequest(BaseModel):
    tags: List[str] = Field(default_factory=list, max_length=20)


class StatusUpdateResult(_CamelModel):
    success: bool = True
    id: str
    message: str
    unchanged: bool = False
    previous_status: Optional[SubmissionStatus] = None
    new_status: SubmissionStatus
    timestamp: Optional[str] = None
