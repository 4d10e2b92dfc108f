"""Pydantic schemas for pm_session inputs."""

from pydantic import BaseModel, Field

from config.settings import settings
from src.pm_session.protocol.messages import Allowance


class AuthParams(BaseModel):
    application: str = settings.AUTH_APPLICATION
    scope: str = settings.AUTH_SCOPE
    allowances: list[Allowance] = []
    expires_in_seconds: int = Field(default=settings.SESSION_EXPIRES_IN_SECONDS, gt=0)
