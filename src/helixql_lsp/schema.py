from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class WorkspaceSchemaRequest(BaseModel):
    uri: str


class FieldDTO(BaseModel):
    name: str
    type: str
    indexed: bool = False
    default: Optional[str] = None


class EntityDTO(BaseModel):
    kind: str
    name: str
    fields: List[FieldDTO] = []
    from_type: Optional[str] = None
    to_type: Optional[str] = None


class SchemaVersionDTO(BaseModel):
    version: int
    entities: List[EntityDTO] = []


class QueryDTO(BaseModel):
    name: str
    parameters: List[str] = []
    path: Optional[str] = None


class WorkspaceSchemaResponse(BaseModel):
    workspace: Optional[str] = None
    status: Optional[str] = None
    versions: List[SchemaVersionDTO] = []
    queries: List[QueryDTO] = []
    errors: List[str] = []
