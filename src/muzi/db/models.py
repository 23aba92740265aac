"""History table model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from muzi.db.base import Base

# Identity key of a play, in primary key order.
IDENTITY_COLUMNS = ("timestamp", "ms_played", "artist", "song_name")


class HistoryEntry(Base):
    """One persisted play, unique on (timestamp, ms_played, artist, song_name).

    Album is not part of the key: two plays that differ only by album collide
    and the later one is reported as a duplicate.
    """

    __tablename__ = "history"

    ms_played: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    song_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    artist: Mapped[str] = mapped_column(Text, nullable=False, default="")
    album_name: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (PrimaryKeyConstraint(*IDENTITY_COLUMNS, name="history_pkey"),)
