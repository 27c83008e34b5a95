# -*- coding: utf-8 -*-
"""
Object ACL model.

An ACL policy travels with every stored object as a small JSON document:

    {
        "owner": "<user id>",
        "visibility": "private",
        "rules": [
            {"group": {"type": "user", "id": "<user id>"}, "permission": "read"},
            {"group": {"type": "public"}, "permission": "read"}
        ]
    }

The policy is written once at upload time and is read-only afterwards.
Purchases never add rules; purchase-based access is derived at check time
by the entitlement engine.
"""
from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

OBJECT_PATH_PREFIX = "/objects/"


class ObjectPermission(str, Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _PERMISSION_RANK[self]

    def covers(self, requested: "ObjectPermission") -> bool:
        """A granted permission covers every weaker one (admin > write > read)."""
        return self.rank >= requested.rank


_PERMISSION_RANK = {
    ObjectPermission.READ: 1,
    ObjectPermission.WRITE: 2,
    ObjectPermission.ADMIN: 3,
}


class AccessGroupType(str, Enum):
    PUBLIC = "public"
    USER = "user"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class InvalidAclPolicy(ValueError):
    """Raised when stored ACL metadata cannot be parsed."""


@dataclass(frozen=True)
class AclRule:
    group: AccessGroupType
    permission: ObjectPermission
    subject_id: Optional[str] = None

    def applies_to(self, user_id: Optional[str]) -> bool:
        if self.group is AccessGroupType.PUBLIC:
            return True
        return user_id is not None and self.subject_id == user_id

    def to_dict(self) -> Dict[str, Any]:
        group: Dict[str, Any] = {"type": self.group.value}
        if self.subject_id is not None:
            group["id"] = self.subject_id
        return {"group": group, "permission": self.permission.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AclRule":
        try:
            group = data["group"]
            group_type = AccessGroupType(group["type"])
            permission = ObjectPermission(data["permission"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidAclPolicy(f"invalid ACL rule: {data!r}") from exc
        subject_id = group.get("id")
        if group_type is AccessGroupType.USER and not subject_id:
            raise InvalidAclPolicy("user rule without a subject id")
        return cls(group=group_type, permission=permission, subject_id=subject_id)


@dataclass(frozen=True)
class ObjectAclPolicy:
    owner: str
    visibility: Visibility = Visibility.PRIVATE
    rules: Tuple[AclRule, ...] = field(default_factory=tuple)

    def is_public_readable(self) -> bool:
        if self.visibility is Visibility.PUBLIC:
            return True
        return any(
            rule.group is AccessGroupType.PUBLIC and rule.permission.covers(ObjectPermission.READ)
            for rule in self.rules
        )

    def is_owner(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id == self.owner

    def grants(self, user_id: Optional[str], permission: ObjectPermission) -> bool:
        """True if an explicit user rule grants `permission` to `user_id`."""
        return any(
            rule.group is AccessGroupType.USER
            and rule.applies_to(user_id)
            and rule.permission.covers(permission)
            for rule in self.rules
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "visibility": self.visibility.value,
            "rules": [rule.to_dict() for rule in self.rules],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectAclPolicy":
        if not isinstance(data, dict):
            raise InvalidAclPolicy("ACL policy must be an object")
        owner = data.get("owner")
        if not owner or not isinstance(owner, str):
            raise InvalidAclPolicy("ACL policy without an owner")
        try:
            visibility = Visibility(data.get("visibility", Visibility.PRIVATE.value))
        except ValueError as exc:
            raise InvalidAclPolicy(f"invalid visibility: {data.get('visibility')!r}") from exc
        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise InvalidAclPolicy("ACL rules must be a list")
        return cls(owner=owner, visibility=visibility, rules=tuple(AclRule.from_dict(r) for r in rules))

    @classmethod
    def from_json(cls, raw: str) -> "ObjectAclPolicy":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidAclPolicy("ACL policy is not valid JSON") from exc
        return cls.from_dict(data)


def normalize_object_path(raw_path: str) -> Optional[str]:
    """
    Canonicalize a requested object path to ``/objects/<entity id>``.

    Accepts either the full ``/objects/...`` form or a bare entity id.
    Returns None for paths that try to escape the object namespace.
    """
    if not raw_path:
        return None
    path = raw_path.strip()
    if path.startswith(OBJECT_PATH_PREFIX):
        path = path[len(OBJECT_PATH_PREFIX):]
    path = path.lstrip("/")
    segments = path.split("/")
    if not path or any(seg in ("", ".", "..") for seg in segments):
        return None
    if "\\" in path or "\x00" in path:
        return None
    return OBJECT_PATH_PREFIX + posixpath.join(*segments)


def entity_key(canonical_path: str) -> str:
    """Storage key of a canonical object path (the part after /objects/)."""
    return canonical_path[len(OBJECT_PATH_PREFIX):]
