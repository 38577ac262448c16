"""
Database Models

- AuthSession: a logged-in visitor's session, keyed by the id stored in
  the session cookie. The backend access token never leaves the server.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel


class AuthSession(SQLModel, table=True):
    """
    Persisted authentication session.

    Fields:
    - session_id: Random id handed to the browser in a cookie
    - access_token: Backend bearer token
    - user_json: Serialized User returned by the backend at login
    - created_at: Login time
    - expires_at: When the session stops being valid (indexed for cleanup)
    """
    __tablename__ = "auth_sessions"

    session_id: str = Field(
        sa_column=Column(String(64), primary_key=True)
    )
    access_token: str = Field(sa_column=Column(Text, nullable=False))
    user_json: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True)
    )
