"""
SQLAlchemy ORM models for database tables.

For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import BigInteger, CheckConstraint, Column, Index, Integer, String, Text

from messagewall.storage import Base


class Message(Base):
    """
    A posted wall message or note. Rows are only ever inserted.

    Table: messages
    Primary Key: id (AUTOINCREMENT, never reused)
    """
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("kind IN ('wall', 'note')", name="ck_messages_kind"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    identity = Column(String, nullable=False)
    nickname = Column(String, nullable=True)
    content = Column(Text, nullable=False)  # HTML-escaped
    kind = Column(String, nullable=False)
    created_at = Column(BigInteger, nullable=False)  # ms since epoch


Index("idx_messages_created_at", Message.created_at.desc())
Index("idx_messages_identity", Message.identity)
