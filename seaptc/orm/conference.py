"""
seaptc/orm/conference.py
Tables backing the conference blob store.

All rows share one entity group (group_id). A versioned write reads and
increments the meta row and stamps every blob it writes with the new version in
the same transaction. Blobs written with version 0 (loginCodes,
printSignatures) are read directly and never seen by a snapshot refresh.
"""
from sqlalchemy import BigInteger, Column, Integer, LargeBinary, String

from seaptc.orm.base import Base, CONFERENCE_GROUP_ID

META_ID = 1


class MetaRecord(Base):
    """Singleton version counter."""
    __tablename__ = "conference_meta"

    group_id = Column(Integer, primary_key=True, default=CONFERENCE_GROUP_ID)
    id = Column(Integer, primary_key=True, default=META_ID)
    version = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<MetaRecord(version={self.version})>"


class BlobRecord(Base):
    """A named, versioned payload."""
    __tablename__ = "conference_blobs"

    group_id = Column(Integer, primary_key=True, default=CONFERENCE_GROUP_ID)
    name = Column(String(64), primary_key=True)
    version = Column(BigInteger, nullable=False, default=0, index=True)
    data = Column(LargeBinary, nullable=False)

    def __repr__(self):
        return f"<BlobRecord(name={self.name}, version={self.version}, size={len(self.data or b'')})>"


class EvaluationRecord(Base):
    """Evaluation of one participant, merged in place."""
    __tablename__ = "conference_evaluations"

    group_id = Column(Integer, primary_key=True, default=CONFERENCE_GROUP_ID)
    participant_id = Column(String(64), primary_key=True)
    data = Column(LargeBinary, nullable=False)

    def __repr__(self):
        return f"<EvaluationRecord(participant_id={self.participant_id})>"
