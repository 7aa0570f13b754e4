from .base import Base, CONFERENCE_GROUP_ID

# Blob store
from .conference import MetaRecord, BlobRecord, EvaluationRecord
