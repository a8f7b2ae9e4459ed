# camfleet/models/channel_log.py
"""
Channel logbook table.
Rows with new_status or action_taken set are system events; the rest are operator notes.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from camfleet.database import Base


class ChannelLog(Base):
    __tablename__ = "channel_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(Integer, ForeignKey("channels.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    log_entry = Column(Text, nullable=False)
    new_status = Column(String(20))
    action_taken = Column(String(100))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<ChannelLog {self.id} channel={self.channel_id}>"
