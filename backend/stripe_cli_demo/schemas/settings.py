"""Pydantic schemas for the settings API"""
from typing import Optional
from pydantic import BaseModel, Field


class StripeCredentialsUpdate(BaseModel):
    """Schema for updating Stripe credentials; omitted fields stay unchanged"""
    publishable_key: Optional[str] = Field(None, max_length=255)
    secret_key: Optional[str] = Field(None, max_length=255)
    webhook_secret: Optional[str] = Field(None, max_length=255)
