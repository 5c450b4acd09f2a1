from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.mysql import BIGINT, DATETIME, SMALLINT, VARCHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MIN_NUMBER = 0
MAX_NUMBER = 100

FINGERPRINT_MAX_LENGTH = 128
IP_MAX_LENGTH = 64
USER_AGENT_MAX_LENGTH = 512

UNKNOWN_IP = "unknown"

# SQLite only autoincrements an INTEGER PRIMARY KEY.
_ID = BIGINT(unsigned=True).with_variant(Integer, "sqlite")

# Fingerprints are opaque: compare byte for byte, never case- or accent-folded.
FINGERPRINT_COLLATION = "utf8mb4_bin"
_FINGERPRINT = VARCHAR(
    FINGERPRINT_MAX_LENGTH, collation=FINGERPRINT_COLLATION
).with_variant(String(FINGERPRINT_MAX_LENGTH), "sqlite")


class Base(DeclarativeBase):
    pass


class Vote(Base):
    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    number: Mapped[int] = mapped_column(SMALLINT, nullable=False)
    fingerprint: Mapped[str] = mapped_column(_FINGERPRINT, nullable=False)
    ip: Mapped[str] = mapped_column(
        VARCHAR(IP_MAX_LENGTH), nullable=False, default=UNKNOWN_IP
    )
    user_agent: Mapped[str | None] = mapped_column(
        VARCHAR(USER_AGENT_MAX_LENGTH), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DATETIME, server_default=func.current_timestamp()
    )

    __table_args__ = (
        UniqueConstraint("fingerprint", name="uniq_vote_fingerprint"),
        CheckConstraint(
            f"number >= {MIN_NUMBER} AND number <= {MAX_NUMBER}",
            name="ck_votes_number_range",
        ),
        Index("idx_votes_created", "created_at"),
    )
