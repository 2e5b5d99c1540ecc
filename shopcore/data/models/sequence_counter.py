from sqlalchemy import Column, Integer, String

from shopcore.data.database import Base


class SequenceCounterModel(Base):
    __tablename__ = "sequence_counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)
