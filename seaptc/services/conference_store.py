"""
seaptc/services/conference_store.py
Versioned blob store and the process-wide Conference snapshot.

Design:
- Every record lives under one entity group (group_id column)
- A versioned write reads and increments the meta row and stamps its blobs
  with the new version, all in one transaction
- Writers serialize in the database: SQLite transactions begin IMMEDIATE,
  other backends lock the meta, blob and evaluation rows they read. Conflicting
  transactions are retried, exhaustion re-raises the backend error
- Readers get the published Conference without blocking. A stale snapshot is
  refreshed by one query for blobs newer than the high-water version, run
  before the snapshot lock is taken
- A refresh applies every newer blob or publishes nothing
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seaptc.conference.conference import Conference
from seaptc.conference.evaluation import Evaluation
from seaptc.conference.identity import with_participant_id
from seaptc.conference.models import NUM_SESSION, ConferenceClass, Configuration, Participant
from seaptc.exceptions import BlobDecodeError, InvalidInputError
from seaptc.orm.base import CONFERENCE_GROUP_ID
from seaptc.orm.conference import META_ID, BlobRecord, EvaluationRecord, MetaRecord
from seaptc.services.blob_codecs import (
    CLASSES,
    CONFIGURATION,
    EVALUATION_ADAPTER,
    INSTRUCTOR_CLASSES,
    LOGIN_CODES,
    PARTICIPANTS,
    PRINT_SIGNATURES,
    get_codec,
)
from seaptc.services.login_codes import assign_login_codes

logger = logging.getLogger(__name__)

# Snapshot max age before a read triggers a refresh
MAX_AGE_SECONDS = 600

MAX_RETRIES = 3
RETRY_BACKOFF_MS = (50, 150, 300)


async def _with_retry(operation: Callable[[], Awaitable[Any]], max_retries: int = MAX_RETRIES) -> Any:
    """Execute operation with retry on IntegrityError or OperationalError."""
    for attempt in range(max_retries):
        try:
            return await operation()
        except (IntegrityError, OperationalError) as e:
            if attempt >= max_retries - 1:
                raise
            delay = RETRY_BACKOFF_MS[min(attempt, len(RETRY_BACKOFF_MS) - 1)] / 1000
            logger.warning(f"Transaction retry {attempt + 1}/{max_retries} after error: {e}. Waiting {delay}s")
            await asyncio.sleep(delay)


class ConferenceStore:
    """
    Holder of the conference data.

    One instance is owned by the application and passed to request handlers.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_age_seconds: float = MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self._max_age_seconds = max_age_seconds
        self._clock = clock

        # Protects the snapshot fields below
        self._lock = asyncio.Lock()
        self._conf = Conference()
        self._versions: Dict[str, int] = {}
        self._max_version = 0
        self._last_sync: Optional[float] = None

    @property
    def max_version(self) -> int:
        return self._max_version

    @property
    def versions(self) -> Dict[str, int]:
        return dict(self._versions)

    # ============================================
    # Snapshot
    # ============================================

    async def get_conference(self, no_cache: bool = False) -> Tuple[Conference, bool]:
        """
        Return (conference, from_cache).

        The cached value is returned without I/O while it is younger than the
        max age, unless no_cache is set. On error the published snapshot and
        its bookkeeping are left unchanged.
        """
        conf = self._conf
        last_sync = self._last_sync
        max_version = self._max_version

        if not no_cache and last_sync is not None and self._clock() - last_sync < self._max_age_seconds:
            return conf, True

        async with self._session_factory() as session:
            result = await session.execute(
                select(BlobRecord.name, BlobRecord.version, BlobRecord.data)
                .where(
                    BlobRecord.group_id == CONFERENCE_GROUP_ID,
                    BlobRecord.version > max_version,
                )
                .order_by(BlobRecord.version)
            )
            blobs = result.all()

        async with self._lock:
            # Another refresh may have applied some of these while we queried
            conf = self._conf
            versions = dict(self._versions)
            new_max_version = self._max_version

            for name, version, data in blobs:
                if version <= versions.get(name, 0):
                    continue
                codec = get_codec(name)
                logger.info(f"Loading blob {name} (version {version})")
                conf = codec.decode_and_apply(conf, data)
                versions[name] = version
                if version > new_max_version:
                    new_max_version = version

            self._conf = conf
            self._versions = versions
            self._max_version = new_max_version
            self._last_sync = self._clock()
            return conf, False

    # ============================================
    # Transactions
    # ============================================

    async def _run_in_transaction(self, fn: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        async def operation():
            async with self._session_factory() as session:
                async with session.begin():
                    return await fn(session)

        return await _with_retry(operation)

    async def _next_version(self, session: AsyncSession) -> int:
        result = await session.execute(
            select(MetaRecord)
            .where(MetaRecord.group_id == CONFERENCE_GROUP_ID, MetaRecord.id == META_ID)
            .with_for_update()
        )
        meta = result.scalar_one_or_none()
        if meta is None:
            meta = MetaRecord(group_id=CONFERENCE_GROUP_ID, id=META_ID, version=0)
            session.add(meta)
        meta.version = (meta.version or 0) + 1
        return meta.version

    async def _get_blob_data(self, session: AsyncSession, name: str, for_update: bool = False) -> Optional[bytes]:
        query = select(BlobRecord.data).where(
            BlobRecord.group_id == CONFERENCE_GROUP_ID,
            BlobRecord.name == name,
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def _read_blob(self, session: AsyncSession, name: str, default: Any, for_update: bool = False) -> Any:
        data = await self._get_blob_data(session, name, for_update)
        if not data:
            return default
        return get_codec(name).decode(data)

    async def _write_blob(self, session: AsyncSession, name: str, value: Any, version: int = 0) -> None:
        data = get_codec(name).encode(value)
        await session.merge(BlobRecord(
            group_id=CONFERENCE_GROUP_ID,
            name=name,
            version=version,
            data=data,
        ))

    async def _put_versioned(self, name: str, value: Any) -> int:
        async def put(session: AsyncSession) -> int:
            version = await self._next_version(session)
            await self._write_blob(session, name, value, version)
            return version

        version = await self._run_in_transaction(put)
        logger.info(f"Stored blob {name} at version {version}")
        return version

    # ============================================
    # Versioned blobs
    # ============================================

    async def put_configuration(self, config: Configuration) -> int:
        return await self._put_versioned(CONFIGURATION, config)

    async def put_classes(self, classes: Iterable[ConferenceClass]) -> int:
        return await self._put_versioned(CLASSES, list(classes))

    async def put_participants(self, participants: Iterable[Participant]) -> List[Participant]:
        """
        Store the registered participants, assigning login codes.

        Participants without an ID get one derived from their identifying
        fields. Returns the stored participants with login codes set.
        """
        participants = [with_participant_id(p) for p in participants]

        async def put(session: AsyncSession) -> List[Participant]:
            version = await self._next_version(session)
            login_codes = dict(await self._read_blob(session, LOGIN_CODES, {}, for_update=True))
            stored = assign_login_codes(login_codes, participants)
            await self._write_blob(session, LOGIN_CODES, login_codes)
            await self._write_blob(session, PARTICIPANTS, stored, version)
            return stored

        stored = await self._run_in_transaction(put)
        logger.info(f"Stored {len(stored)} participants")
        return stored

    async def modify_instructor_classes(self, participant_id: str, modifications: Mapping[int, int]) -> None:
        """
        Set instructor class numbers by session index for one participant.

        The participant's entry is removed when every slot is zero.
        """
        bad = [i for i in modifications if not 0 <= i < NUM_SESSION]
        if bad:
            raise InvalidInputError(["session"], f"session index out of range: {bad}")

        async def modify(session: AsyncSession) -> None:
            version = await self._next_version(session)
            instructor_classes = dict(await self._read_blob(session, INSTRUCTOR_CLASSES, {}, for_update=True))

            numbers = list(instructor_classes.get(participant_id) or [0] * NUM_SESSION)
            if len(numbers) < NUM_SESSION:
                numbers += [0] * (NUM_SESSION - len(numbers))
            for i, n in modifications.items():
                numbers[i] = n

            if all(n == 0 for n in numbers):
                instructor_classes.pop(participant_id, None)
            else:
                instructor_classes[participant_id] = numbers

            await self._write_blob(session, INSTRUCTOR_CLASSES, instructor_classes, version)

        await self._run_in_transaction(modify)

    async def delete_blob(self, name: str) -> None:
        """Delete a blob. Deleting a missing blob is not an error."""
        if not name:
            raise InvalidInputError(["name"], "store: empty blob name")

        async def remove(session: AsyncSession) -> None:
            await session.execute(
                delete(BlobRecord).where(
                    BlobRecord.group_id == CONFERENCE_GROUP_ID,
                    BlobRecord.name == name,
                )
            )

        await self._run_in_transaction(remove)
        logger.warning(f"Deleted blob {name}")

    # ============================================
    # Print signatures
    # ============================================

    async def get_print_signatures(self) -> Dict[str, str]:
        async with self._session_factory() as session:
            return dict(await self._read_blob(session, PRINT_SIGNATURES, {}))

    async def set_print_signatures(self, modified: Mapping[str, str]) -> None:
        """Record printed signatures. An empty signature removes the entry."""
        async def update(session: AsyncSession) -> None:
            signatures = dict(await self._read_blob(session, PRINT_SIGNATURES, {}, for_update=True))
            for participant_id, signature in modified.items():
                if signature:
                    signatures[participant_id] = signature
                else:
                    signatures.pop(participant_id, None)
            await self._write_blob(session, PRINT_SIGNATURES, signatures)

        await self._run_in_transaction(update)

    # ============================================
    # Evaluations
    # ============================================

    async def _read_evaluation(self, session: AsyncSession, participant_id: str,
                               for_update: bool = False) -> Evaluation:
        query = select(EvaluationRecord.data).where(
            EvaluationRecord.group_id == CONFERENCE_GROUP_ID,
            EvaluationRecord.participant_id == participant_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        data = result.scalar_one_or_none()
        if not data:
            return Evaluation(participant_id=participant_id)
        try:
            evaluation = EVALUATION_ADAPTER.validate_json(data)
        except ValueError as e:
            raise BlobDecodeError("eval", str(e)) from e
        evaluation.participant_id = participant_id
        return evaluation

    async def get_evaluation(self, participant_id: str) -> Evaluation:
        """Return the participant's evaluation; empty if none was submitted."""
        async with self._session_factory() as session:
            return await self._read_evaluation(session, participant_id)

    async def set_evaluation(self, participant_id: str, modified: Evaluation) -> Evaluation:
        """Merge modified into the stored evaluation and return the result."""
        async def update(session: AsyncSession) -> Evaluation:
            evaluation = await self._read_evaluation(session, participant_id, for_update=True)
            evaluation.merge(modified)
            await session.merge(EvaluationRecord(
                group_id=CONFERENCE_GROUP_ID,
                participant_id=participant_id,
                data=EVALUATION_ADAPTER.dump_json(evaluation, by_alias=True),
            ))
            return evaluation

        return await self._run_in_transaction(update)

    # ============================================
    # Inspection
    # ============================================

    async def get_meta_version(self) -> int:
        """Current value of the version counter; 0 before the first versioned write."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(MetaRecord.version).where(
                    MetaRecord.group_id == CONFERENCE_GROUP_ID,
                    MetaRecord.id == META_ID,
                )
            )
            return result.scalar_one_or_none() or 0
