from __future__ import annotations

"""
Common API model types.

- ApiModel:          base model; snake_case fields, camelCase on the wire.
- ProjectFileModel:  one record of the studio's virtual file system.
- FilesPayload:      a list of ProjectFileModel records (flat or nested).

Structural validation of the tree (unknown parents, duplicate sibling names,
folder cycles) is done by the engine when the snapshot is built, not here.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ProjectFileModel(ApiModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    kind: Literal["file", "folder"] = Field("file", validation_alias=AliasChoices("kind", "type"))
    content: Optional[str] = None
    parent: Optional[str] = None
    children: Optional[List[Any]] = None

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "content": self.content,
            "parent": self.parent,
        }
        if self.children:
            rec["children"] = [
                c.to_record() if isinstance(c, ProjectFileModel) else c for c in self.children
            ]
        return rec


class FilesPayload(ApiModel):
    files: List[ProjectFileModel] = Field(default_factory=list)

    def records(self) -> List[Dict[str, Any]]:
        return [f.to_record() for f in self.files]


__all__ = ["ApiModel", "FilesPayload", "ProjectFileModel"]
