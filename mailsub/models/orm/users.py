"""
Directory user ORM model.

Read-only mirror of the organisation's user directory. Subscriptions
reference it by foreign key; this package never writes to it.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from mailsub.models.orm.base import Base


class DirectoryUser(Base):
    """A mailbox owner known to the directory."""

    __tablename__ = "org_users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_principal_name: Mapped[str | None] = mapped_column(String(320), default=None)
    mail: Mapped[str | None] = mapped_column(String(320), default=None)
    display_name: Mapped[str | None] = mapped_column(String(255), default=None)
