"""User directory models."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, validator


# Fields a conversion needs from the user directory
CONVERSION_FIELDS = ['id', 'user_email', 'user_registered']


class User(BaseModel):
    """Site user record."""

    id: int = Field(..., description='User ID')
    user_email: str = Field(..., description='Email address')
    user_registered: datetime = Field(..., description='Registration timestamp')
    roles: List[str] = Field(default_factory=list, description='Assigned roles')

    @validator('user_email')
    def validate_email(cls, v):
        """Basic email validation."""
        if '@' not in v:
            raise ValueError('Invalid email format')
        return v.lower()

    def has_any_role(self, roles) -> bool:
        """Return whether the user holds at least one of ``roles``."""
        return bool(set(self.roles) & set(roles))


class UserQuery(BaseModel):
    """Filter passed to the user directory."""

    role_in: List[str] = Field(default_factory=list, description='Match any role')
    exclude: List[int] = Field(default_factory=list, description='User IDs to skip')
    offset: int = Field(default=0, description='Rows to skip')
    limit: int = Field(default=-1, description='Maximum rows, -1 for all')
    order_by: str = Field(default='id', description='Sort field')
    order: str = Field(default='ASC', description='Sort direction')
    fields: List[str] = Field(
        default_factory=lambda: list(CONVERSION_FIELDS),
        description='Fields to return',
    )

    @validator('offset')
    def validate_offset(cls, v):
        """Validate offset is not negative."""
        if v < 0:
            raise ValueError('Offset must not be negative')
        return v

    @validator('limit')
    def validate_limit(cls, v):
        """Validate limit is positive or unbounded."""
        if v == 0 or v < -1:
            raise ValueError('Limit must be positive or -1 for no limit')
        return v

    @validator('order')
    def validate_order(cls, v):
        """Validate sort direction."""
        if v.upper() not in ('ASC', 'DESC'):
            raise ValueError('Order must be ASC or DESC')
        return v.upper()

    def to_payload(self) -> dict:
        """Render the query as a JSON request body.

        The exclusion list grows with every existing affiliate, so it travels
        in the body rather than the query string.
        """
        return {
            'role__in': sorted(self.role_in),
            'exclude': list(self.exclude),
            'offset': self.offset,
            'number': self.limit,
            'orderby': self.order_by,
            'order': self.order,
            'fields': list(self.fields),
        }
