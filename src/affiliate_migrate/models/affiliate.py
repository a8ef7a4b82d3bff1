"""Affiliate entity models."""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field, validator

from .user import User


class AffiliateCreate(BaseModel):
    """Model for creating a new affiliate from a user."""

    status: str = Field(default='active', description='Affiliate status')
    user_id: int = Field(..., description='Owning user ID')
    payment_email: str = Field(..., description='Payout email address')
    date_registered: datetime = Field(..., description='Registration timestamp')

    @validator('status')
    def validate_status(cls, v):
        """Validate affiliate status."""
        valid_states = ['active', 'inactive', 'pending', 'rejected']
        if v not in valid_states:
            raise ValueError(f'Status must be one of: {valid_states}')
        return v

    @classmethod
    def from_user(cls, user: User) -> 'AffiliateCreate':
        """Build an active affiliate for ``user``."""
        return cls(
            status='active',
            user_id=user.id,
            payment_email=user.user_email,
            date_registered=user.user_registered,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the site API."""
        return {
            'status': self.status,
            'user_id': self.user_id,
            'payment_email': self.payment_email,
            'date_registered': self.date_registered.isoformat(),
        }


class Affiliate(AffiliateCreate):
    """Stored affiliate record."""

    affiliate_id: int = Field(..., description='Affiliate ID')
