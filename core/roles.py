"""
core/roles.py — User Roles
===========================
Roles form a closed set. A role assignment is a tagged union keyed on
"role": each variant carries exactly the fields that role needs, so a
block officer cannot exist without a district and an official member
cannot exist without a designation.

    {"role": "admin"}
    {"role": "block_officer", "district": "Sangli"}
    {"role": "Official_member", "official_role": "Secretary"}
    {"role": "public"}
"""

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError, errors_from_pydantic

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Role(str, enum.Enum):
    ADMIN = "admin"
    BLOCK_OFFICER = "block_officer"
    OFFICIAL_MEMBER = "Official_member"
    PUBLIC = "public"


# Roles allowed to manage events
EVENT_MANAGERS = (Role.ADMIN, Role.BLOCK_OFFICER, Role.OFFICIAL_MEMBER)


class AdminRole(BaseModel):
    role: Literal["admin"]


class BlockOfficerRole(BaseModel):
    role: Literal["block_officer"]
    district: NonEmptyStr


class OfficialMemberRole(BaseModel):
    role: Literal["Official_member"]
    official_role: NonEmptyStr


class PublicRole(BaseModel):
    role: Literal["public"]


RoleAssignment = Annotated[
    Union[AdminRole, BlockOfficerRole, OfficialMemberRole, PublicRole],
    Field(discriminator="role"),
]


def apply_role(user, assignment) -> None:
    """Write an assignment onto a User row, clearing other variants' fields."""
    user.role = assignment.role
    user.district = getattr(assignment, "district", None)
    user.official_role = getattr(assignment, "official_role", None)


_assignment_adapter = TypeAdapter(RoleAssignment)


def parse_assignment(data: dict):
    """Validate a raw {"role": ..., ...} payload into its variant, or raise a 400."""
    try:
        return _assignment_adapter.validate_python(data)
    except PydanticValidationError as exc:
        raise ValidationError(errors_from_pydantic(exc.errors()))
