# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mutation boundary: the authoritative write path for tasks and exams.

Every state-changing request runs the same steps in order and stops at
the first failure:

    (a) permission check for the caller's role
    (b) rate limit for the caller and action class
    (c) input validation
    (d) lifecycle precondition
    (e) conflict detection for exam schedule changes (attached, not blocking)
    (f) one atomic storage commit
    (g) audit entry, best-effort

Nothing is written before (f), so a rejected request leaves no trace in
the entity collections. Audit and side-effect failures after (f) are
logged and never change the result.

Example:
    boundary = MutationBoundary(store, AuditRecorder(store), limiter)
    task = await boundary.create_task(actor, CreateTaskRequest(title="Leak", ...))
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar
from uuid import uuid4

from campusiq.core.config import MutationSettings
from campusiq.domains.access import Permission, allows, in_scope, scoped_query
from campusiq.domains.audit import AuditError, AuditRecorder, SecurityEventLog
from campusiq.domains.lifecycle import (
    ACTIVE_STATUSES,
    EXAM_LIFECYCLE,
    TASK_LIFECYCLE,
    can_delete,
    can_publish_results,
    required_permission,
    transition_fields,
)
from campusiq.domains.mutation.errors import (
    FailedPreconditionError,
    InvalidArgumentError,
    MutationTimeoutError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    StorageUnavailableError,
    VersionConflictError,
)
from campusiq.domains.mutation.rate_limit import MutationRateLimiter, RateLimitBackendError
from campusiq.domains.mutation.validation import (
    SCHEDULE_FIELDS,
    validate_comment,
    validate_create_exam,
    validate_create_task,
    validate_results,
    validate_task_status,
    validate_update_exam,
)
from campusiq.domains.scheduling import schedule_warnings
from campusiq.infrastructure.dispatch import SideEffectDispatcher
from campusiq.infrastructure.events import EventTypes
from campusiq.infrastructure.storage import (
    Collections,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    Query,
    StoreError,
    WriteOp,
)
from campusiq.infrastructure.storage import VersionConflictError as StoreVersionConflict
from campusiq.models.audit import (
    AuditAction,
    AuditLogEntry,
    AuditLogEntryDraft,
    CommentAddedDetails,
    DetailValue,
    ExamCreatedDetails,
    ExamDeletedDetails,
    ExamUpdatedDetails,
    PerformedBy,
    ResultsPublishedDetails,
    SecuritySeverity,
    TaskCreatedDetails,
)
from campusiq.models.common import Actor, EntityType, Role
from campusiq.models.exam import (
    ConflictRecord,
    CreateExamRequest,
    Exam,
    ExamScheduleFields,
    ExamStatus,
    PublishExamResultsRequest,
    UpdateExamRequest,
)
from campusiq.models.task import (
    AddTaskCommentRequest,
    CreateTaskRequest,
    Task,
    TaskComment,
    TaskPriority,
    UpdateTaskStatusRequest,
)
from campusiq.utils.datetime import utc_now
from campusiq.utils.logging import bind_context, get_logger, unbind_context

logger = get_logger(__name__)

T = TypeVar("T")

ConflictDetector = Callable[[ExamScheduleFields, list[Exam]], list[ConflictRecord]]

COMMENT_PREVIEW_LENGTH = 100
VIOLATION_ESCALATION_THRESHOLD = 3


class Operations:
    """Operation names, also used as security signal prefixes."""

    CREATE_TASK = "task:create"
    UPDATE_TASK_STATUS = "task:status_change"
    ADD_TASK_COMMENT = "task:comment"
    CREATE_EXAM = "exam:create"
    UPDATE_EXAM = "exam:update"
    DELETE_EXAM = "exam:delete"
    PUBLISH_EXAM_RESULTS = "exam:publish"


# Rate-limit action class per operation. Exam writes share the task
# counters; classes without a configured rule are unlimited.
RATE_LIMIT_CLASSES: dict[str, str] = {
    Operations.CREATE_TASK: "task:create",
    Operations.UPDATE_TASK_STATUS: "task:status_change",
    Operations.ADD_TASK_COMMENT: "task:comment",
    Operations.CREATE_EXAM: "task:create",
    Operations.UPDATE_EXAM: "task:update",
    Operations.DELETE_EXAM: "exam:delete",
    Operations.PUBLISH_EXAM_RESULTS: "exam:publish",
}


def _detail_value(value: Any) -> DetailValue:
    if isinstance(value, Enum):
        return str(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [str(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class MutationBoundary:
    """Single authoritative write path for tasks and exams.

    Attributes:
        _store: Document store.
        _audit: Audit recorder for step (g).
        _rate_limiter: Per caller and action class limiter.
        _security_log: Optional security event sink.
        _dispatcher: Optional side-effect dispatcher.
        _settings: Validation limits and default deadline.
        _detect: Conflict detector used in step (e).
    """

    def __init__(
        self,
        store: DocumentStore,
        audit: AuditRecorder,
        rate_limiter: MutationRateLimiter,
        security_log: SecurityEventLog | None = None,
        dispatcher: SideEffectDispatcher | None = None,
        settings: MutationSettings | None = None,
        detector: ConflictDetector = schedule_warnings,
    ):
        self._store = store
        self._audit = audit
        self._rate_limiter = rate_limiter
        self._security_log = security_log
        self._dispatcher = dispatcher
        self._settings = settings or MutationSettings()
        self._detect = detector
        self._finalizing: set[asyncio.Task[Any]] = set()

    # =========================================================================
    # Call envelope
    # =========================================================================

    async def _run(
        self,
        operation: str,
        actor: Actor | None,
        body: Callable[[], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        """Run one boundary call under a deadline with error translation."""
        deadline = self._settings.default_timeout_seconds if timeout is None else timeout
        bind_context(operation=operation, actor_id=actor.id if actor else None)
        try:
            return await asyncio.wait_for(body(), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning("mutation_timed_out", timeout=deadline)
            raise MutationTimeoutError(deadline, operation=operation) from None
        except RateLimitBackendError as e:
            logger.error("rate_limit_backend_failed", error=str(e))
            raise StorageUnavailableError(
                "Rate limit store unavailable", operation=operation, original_error=e
            ) from e
        except StoreError as e:
            logger.error("store_failed", error=str(e))
            raise StorageUnavailableError(
                "Document store unavailable", operation=operation, original_error=e
            ) from e
        finally:
            unbind_context("operation", "actor_id")

    async def _read(self, body: Callable[[], Awaitable[T]]) -> T:
        try:
            return await body()
        except StoreError as e:
            raise StorageUnavailableError("Document store unavailable", original_error=e) from e

    # =========================================================================
    # Steps (a) and (b)
    # =========================================================================

    async def _signal(
        self,
        actor: Actor | None,
        action: str,
        reason: str,
        severity: SecuritySeverity,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self._security_log is None:
            return
        try:
            await self._security_log.record(actor, action, reason, severity, metadata)
        except Exception as e:
            logger.warning("security_event_failed", action=action, error=str(e))

    async def _authorize(
        self,
        actor: Actor | None,
        permission: Permission,
        operation: str,
    ) -> Actor:
        """Step (a). Returns the identified admin actor."""
        if actor is None:
            await self._signal(
                None,
                f"{operation}:unauthenticated",
                "Anonymous mutation attempt",
                SecuritySeverity.MEDIUM,
            )
            raise PermissionDeniedError(
                permission.value,
                operation=operation,
                reason="Authentication required",
            )

        if not actor.is_admin or not allows(actor.role, permission):
            role = actor.role.value if actor.role else None
            await self._signal(
                actor,
                f"{operation}:permission_denied",
                f"Missing {permission.value}",
                SecuritySeverity.MEDIUM,
                {"permission": permission.value},
            )
            raise PermissionDeniedError(permission.value, role=role, operation=operation)
        return actor

    async def _throttle(self, actor: Actor, operation: str) -> None:
        """Step (b)."""
        action_class = RATE_LIMIT_CLASSES[operation]
        decision = await self._rate_limiter.check(action_class, actor.id)
        if decision.allowed:
            return

        violations = self._rate_limiter.violations(actor.id)
        severity = (
            SecuritySeverity.HIGH
            if decision.burst or violations > VIOLATION_ESCALATION_THRESHOLD
            else SecuritySeverity.MEDIUM
        )
        await self._signal(
            actor,
            f"rate_limit:{action_class}",
            f"Exceeded {'burst' if decision.burst else 'rate'} limit: "
            f"{decision.count}/{decision.limit}",
            severity,
            {
                "action": action_class,
                "count": decision.count,
                "limit": decision.limit,
                "is_burst": decision.burst,
            },
        )
        raise RateLimitedError(
            action_class,
            decision.retry_after,
            burst=decision.burst,
            operation=operation,
        )

    # =========================================================================
    # Shared helpers
    # =========================================================================

    async def _load(self, collection: str, entity: str, entity_id: str, operation: str) -> dict:
        document = await self._store.get(collection, entity_id)
        if document is None:
            raise NotFoundError(entity, entity_id, operation=operation)
        return document

    @staticmethod
    def _check_version(
        entity: str,
        document: dict,
        expected_version: int | None,
        operation: str,
    ) -> None:
        if expected_version is not None and document["version"] != expected_version:
            raise VersionConflictError(
                entity, document["id"], expected_version, document["version"], operation
            )

    async def _commit(self, writes: list[WriteOp], entity: str, operation: str) -> list[dict]:
        """Step (f)."""
        try:
            return await self._store.commit(writes)
        except StoreVersionConflict as e:
            raise VersionConflictError(
                entity, e.document_id, e.expected, e.actual, operation
            ) from e
        except DocumentNotFoundError as e:
            raise NotFoundError(entity, e.document_id, operation=operation) from e

    async def _record_audit(self, draft: AuditLogEntryDraft) -> AuditLogEntry | None:
        """Step (g). Failures are logged, never raised."""
        try:
            return await self._audit.record(draft)
        except Exception as e:
            logger.warning(
                "audit_record_failed",
                action=draft.action.value,
                entity_id=draft.entity_id,
                error=str(e),
            )
            return None

    async def _commit_and_audit(
        self,
        write: Callable[[], Awaitable[T]],
        draft_for: Callable[[T], AuditLogEntryDraft | None],
    ) -> T:
        """Steps (f) and (g) as one unit the call deadline cannot split.

        The unit runs in its own task under ``asyncio.shield``: when the
        deadline fires mid-write, the caller sees a timeout while the write
        and its audit entry still complete.
        """

        async def unit() -> T:
            result = await write()
            draft = draft_for(result)
            if draft is not None:
                await self._record_audit(draft)
            return result

        task = asyncio.ensure_future(unit())
        self._finalizing.add(task)
        task.add_done_callback(self._write_finished)
        return await asyncio.shield(task)

    def _write_finished(self, task: "asyncio.Task[Any]") -> None:
        self._finalizing.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("write_unit_failed", error=str(task.exception()))

    @property
    def pending_writes(self) -> int:
        """Shielded write units still running after their caller gave up."""
        return sum(1 for t in self._finalizing if not t.done())

    async def drain(self) -> None:
        """Wait for shielded write units to finish."""
        if self._finalizing:
            await asyncio.gather(*list(self._finalizing), return_exceptions=True)

    def _dispatch(self, job_type: str, payload: dict[str, Any]) -> None:
        if self._dispatcher is None:
            return
        try:
            self._dispatcher.dispatch(job_type, payload)
        except Exception as e:
            logger.warning("dispatch_failed", job_type=job_type, error=str(e))

    @staticmethod
    def _performer(actor: Actor) -> PerformedBy:
        return PerformedBy(id=actor.id, name=actor.name, role=actor.role)

    @staticmethod
    def _idempotency_id(actor: Actor, operation: str, key: str) -> str:
        return f"{actor.id}:{operation}:{key}"

    async def _replay(
        self,
        actor: Actor,
        operation: str,
        key: str | None,
        collection: str,
    ) -> dict | None:
        """Return the entity created earlier under the same idempotency key."""
        if not key:
            return None
        record = await self._store.get(
            Collections.IDEMPOTENCY_KEYS, self._idempotency_id(actor, operation, key)
        )
        if record is None:
            return None
        document = await self._store.get(collection, record["entity_id"])
        if document is not None:
            logger.info("idempotent_replay", entity_id=record["entity_id"])
        return document

    def _idempotency_write(
        self,
        actor: Actor,
        operation: str,
        key: str | None,
        collection: str,
        entity_id: str,
    ) -> list[WriteOp]:
        if not key:
            return []
        return [
            WriteOp.create(
                Collections.IDEMPOTENCY_KEYS,
                self._idempotency_id(actor, operation, key),
                {
                    "actor_id": actor.id,
                    "operation": operation,
                    "collection": collection,
                    "entity_id": entity_id,
                    "created_at": utc_now(),
                },
            )
        ]

    async def _create_once(
        self,
        actor: Actor,
        operation: str,
        key: str | None,
        collection: str,
        entity: str,
        entity_id: str,
        data: dict[str, Any],
    ) -> tuple[dict, bool]:
        """Commit a new entity together with its idempotency record.

        Returns:
            The stored document and whether it was created by this call.
        """
        writes = [WriteOp.create(collection, entity_id, data)]
        writes += self._idempotency_write(actor, operation, key, collection, entity_id)
        try:
            stored = await self._commit(writes, entity, operation)
        except DocumentExistsError:
            # A concurrent call with the same key won the race.
            existing = await self._replay(actor, operation, key, collection)
            if existing is None:
                raise
            return existing, False
        return stored[0], True

    # =========================================================================
    # Tasks
    # =========================================================================

    async def create_task(
        self,
        actor: Actor | None,
        request: CreateTaskRequest,
        timeout: float | None = None,
    ) -> Task:
        """Create a task in status NEW.

        Raises:
            PermissionDeniedError: Caller lacks task:create.
            RateLimitedError: Hourly or burst limit exceeded.
            InvalidArgumentError: A field is missing or invalid.
            MutationTimeoutError: The deadline passed.
            StorageUnavailableError: A backing store failed.
        """
        operation = Operations.CREATE_TASK

        async def body() -> Task:
            caller = await self._authorize(actor, Permission.TASK_CREATE, operation)
            replayed = await self._replay(
                caller, operation, request.idempotency_key, Collections.TASKS
            )
            if replayed is not None:
                return Task.model_validate(replayed)

            await self._throttle(caller, operation)
            fields = validate_create_task(request, self._settings)

            task = Task(
                id=uuid4().hex,
                created_by=caller.id,
                created_by_name=caller.name,
                created_at=utc_now(),
                **fields,
            )
            def created_entry(outcome: tuple[dict, bool]) -> AuditLogEntryDraft | None:
                if not outcome[1]:
                    return None
                return AuditLogEntryDraft(
                    action=AuditAction.TASK_CREATED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.TASK,
                    entity_id=task.id,
                    new_value=task.status.value,
                    details=TaskCreatedDetails(
                        title=task.title,
                        category=task.category,
                        priority=task.priority.value,
                    ),
                )

            stored, created = await self._commit_and_audit(
                lambda: self._create_once(
                    caller,
                    operation,
                    request.idempotency_key,
                    Collections.TASKS,
                    "Task",
                    task.id,
                    task.model_dump(exclude={"id", "version"}),
                ),
                created_entry,
            )
            task = Task.model_validate(stored)
            if not created:
                return task

            self._dispatch(
                EventTypes.Jobs.AI_SUMMARY_REQUESTED,
                {"task_id": task.id, "title": task.title, "description": task.description},
            )
            if task.priority == TaskPriority.HIGH:
                self._dispatch(
                    EventTypes.Jobs.NOTIFY_ADMINS_HIGH_PRIORITY,
                    {"task_id": task.id, "title": task.title, "created_by": caller.id},
                )
            logger.info("task_created", task_id=task.id, priority=task.priority.value)
            return task

        return await self._run(operation, actor, body, timeout)

    async def update_task_status(
        self,
        actor: Actor | None,
        task_id: str,
        request: UpdateTaskStatusRequest,
        timeout: float | None = None,
    ) -> Task:
        """Move a task to a new status.

        Registrars may never change task status. Escalation additionally
        requires task:escalate. Entering RESOLVED stamps ``resolved_at``.

        Raises:
            PermissionDeniedError: Caller may not change status.
            RateLimitedError: Limit exceeded.
            InvalidArgumentError: Unknown status.
            NotFoundError: No such task.
            VersionConflictError: ``expected_version`` is stale.
            FailedPreconditionError: The move is not a valid transition.
        """
        operation = Operations.UPDATE_TASK_STATUS

        async def body() -> Task:
            if actor is not None and actor.role == Role.REGISTRAR:
                await self._signal(
                    actor,
                    f"{operation}:role_violation",
                    "REGISTRAR role cannot change task status",
                    SecuritySeverity.HIGH,
                    {"task_id": task_id, "attempted_status": request.new_status},
                )
                raise PermissionDeniedError(
                    Permission.TASK_CLOSE.value,
                    role=Role.REGISTRAR.value,
                    operation=operation,
                    reason="REGISTRAR role cannot change task status",
                )
            caller = await self._authorize(actor, Permission.TASK_CLOSE, operation)
            await self._throttle(caller, operation)

            new_status = validate_task_status(request.new_status)
            needed = required_permission(new_status)
            if needed != Permission.TASK_CLOSE:
                await self._authorize(caller, needed, operation)

            document = await self._load(Collections.TASKS, "Task", task_id, operation)
            current = Task.model_validate(document)
            self._check_version("Task", document, request.expected_version, operation)

            if not TASK_LIFECYCLE.permits(current.status, new_status):
                await self._signal(
                    caller,
                    f"{operation}:invalid_transition",
                    f"Invalid status transition: {current.status.value} -> {new_status.value}",
                    SecuritySeverity.MEDIUM,
                    {"task_id": task_id},
                )
                raise FailedPreconditionError(
                    f"Invalid status transition from {current.status.value} "
                    f"to {new_status.value}",
                    current=current.status.value,
                    requested=new_status.value,
                    operation=operation,
                )

            stored = await self._commit_and_audit(
                lambda: self._commit(
                    [
                        WriteOp.update(
                            Collections.TASKS,
                            task_id,
                            transition_fields(new_status, utc_now()),
                            request.expected_version,
                        )
                    ],
                    "Task",
                    operation,
                ),
                lambda _: AuditLogEntryDraft(
                    action=AuditAction.TASK_STATUS_CHANGED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.TASK,
                    entity_id=task_id,
                    previous_value=current.status.value,
                    new_value=new_status.value,
                ),
            )
            task = Task.model_validate(stored[0])

            self._dispatch(
                EventTypes.Jobs.NOTIFY_STATUS_CHANGED,
                {
                    "task_id": task_id,
                    "previous_status": current.status.value,
                    "new_status": new_status.value,
                    "created_by": current.created_by,
                },
            )
            logger.info(
                "task_status_changed",
                task_id=task_id,
                previous=current.status.value,
                new=new_status.value,
            )
            return task

        return await self._run(operation, actor, body, timeout)

    async def add_task_comment(
        self,
        actor: Actor | None,
        task_id: str,
        request: AddTaskCommentRequest,
        timeout: float | None = None,
    ) -> TaskComment:
        """Append an immutable comment to a task.

        Any administrator who can view tasks may comment.
        """
        operation = Operations.ADD_TASK_COMMENT

        async def body() -> TaskComment:
            caller = await self._authorize(actor, Permission.TASK_VIEW, operation)
            await self._throttle(caller, operation)
            text = validate_comment(request.text, self._settings)
            await self._load(Collections.TASKS, "Task", task_id, operation)

            comment = TaskComment(
                id=f"comment_{uuid4().hex}",
                text=text,
                author_id=caller.id,
                author_name=caller.name,
                author_role=caller.role,
                created_at=utc_now(),
            )
            async def append() -> None:
                try:
                    await self._store.append_to_array(
                        Collections.TASKS, task_id, "comments", comment.model_dump()
                    )
                except DocumentNotFoundError as e:
                    raise NotFoundError("Task", task_id, operation=operation) from e

            await self._commit_and_audit(
                append,
                lambda _: AuditLogEntryDraft(
                    action=AuditAction.TASK_COMMENT_ADDED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.TASK,
                    entity_id=task_id,
                    details=CommentAddedDetails(
                        comment_id=comment.id,
                        comment_preview=text[:COMMENT_PREVIEW_LENGTH],
                    ),
                ),
            )
            logger.info("task_comment_added", task_id=task_id, comment_id=comment.id)
            return comment

        return await self._run(operation, actor, body, timeout)

    async def attach_ai_summary(self, task_id: str, summary: str) -> bool:
        """Store an externally generated summary on a task.

        Best-effort: failures are logged and reported as False. No audit
        entry is written because the summary is derived data.
        """
        text = summary.strip()
        if not text:
            return False
        try:
            await self._store.update(Collections.TASKS, task_id, {"ai_summary": text})
        except StoreError as e:
            logger.warning("ai_summary_attach_failed", task_id=task_id, error=str(e))
            return False
        return True

    # =========================================================================
    # Exams
    # =========================================================================

    async def _schedule_warnings(self, candidate: ExamScheduleFields) -> list[ConflictRecord]:
        """Step (e): scan same-day active exams."""
        documents = await self._store.query(
            Collections.EXAMS,
            Query(
                filters=[
                    Filter("scheduled_date", "==", candidate.scheduled_date),
                    Filter("status", "in", [s.value for s in ACTIVE_STATUSES]),
                ]
            ),
        )
        existing = sorted(
            (Exam.model_validate(d) for d in documents),
            key=lambda e: (e.start_time, e.id),
        )
        return self._detect(candidate, existing)

    async def create_exam(
        self,
        actor: Actor | None,
        request: CreateExamRequest,
        timeout: float | None = None,
    ) -> Exam:
        """Create an exam in DRAFT with its conflict warnings attached.

        Conflicts never block creation.

        Raises:
            PermissionDeniedError: Caller lacks exam:create.
            RateLimitedError: Limit exceeded.
            InvalidArgumentError: A field is missing or invalid.
        """
        operation = Operations.CREATE_EXAM

        async def body() -> Exam:
            caller = await self._authorize(actor, Permission.EXAM_CREATE, operation)
            replayed = await self._replay(
                caller, operation, request.idempotency_key, Collections.EXAMS
            )
            if replayed is not None:
                return Exam.model_validate(replayed)

            await self._throttle(caller, operation)
            fields = validate_create_exam(request, self._settings)

            exam_id = uuid4().hex
            candidate = ExamScheduleFields(
                exam_id=exam_id,
                scheduled_date=fields["scheduled_date"],
                start_time=fields["start_time"],
                end_time=fields["end_time"],
                room=fields["room"],
                enrolled_students=fields["enrolled_students"],
                capacity=fields["capacity"],
            )
            warnings = await self._schedule_warnings(candidate)

            now = utc_now()
            exam = Exam(
                id=exam_id,
                status=ExamStatus.DRAFT,
                created_by=caller.id,
                created_by_name=caller.name,
                conflict_warnings=warnings,
                created_at=now,
                updated_at=now,
                **fields,
            )
            def created_entry(outcome: tuple[dict, bool]) -> AuditLogEntryDraft | None:
                if not outcome[1]:
                    return None
                return AuditLogEntryDraft(
                    action=AuditAction.EXAM_CREATED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.EXAM,
                    entity_id=exam.id,
                    new_value=exam.status.value,
                    details=ExamCreatedDetails(
                        title=exam.title,
                        course_code=exam.course_code,
                        exam_type=exam.exam_type.value,
                        conflict_count=len(warnings),
                    ),
                )

            stored, created = await self._commit_and_audit(
                lambda: self._create_once(
                    caller,
                    operation,
                    request.idempotency_key,
                    Collections.EXAMS,
                    "Exam",
                    exam_id,
                    exam.model_dump(exclude={"id", "version"}),
                ),
                created_entry,
            )
            exam = Exam.model_validate(stored)
            if not created:
                return exam

            logger.info("exam_created", exam_id=exam.id, conflicts=len(warnings))
            return exam

        return await self._run(operation, actor, body, timeout)

    async def update_exam(
        self,
        actor: Actor | None,
        exam_id: str,
        request: UpdateExamRequest,
        timeout: float | None = None,
    ) -> Exam:
        """Apply a partial update to an exam.

        A status change must follow the exam lifecycle. Changes to any
        schedule field recompute the conflict warnings.

        Raises:
            PermissionDeniedError: Caller lacks exam:edit.
            RateLimitedError: Limit exceeded.
            InvalidArgumentError: A field is invalid or nothing changes.
            NotFoundError: No such exam.
            VersionConflictError: ``expected_version`` is stale.
            FailedPreconditionError: Invalid status transition.
        """
        operation = Operations.UPDATE_EXAM

        async def body() -> Exam:
            caller = await self._authorize(actor, Permission.EXAM_EDIT, operation)
            await self._throttle(caller, operation)

            document = await self._load(Collections.EXAMS, "Exam", exam_id, operation)
            current = Exam.model_validate(document)
            changes = validate_update_exam(request, current, self._settings)
            if not changes:
                raise InvalidArgumentError("updates", "No fields to update", operation)
            self._check_version("Exam", document, request.expected_version, operation)

            new_status = changes.get("status")
            if new_status is not None and new_status == current.status:
                del changes["status"]
                new_status = None
            if new_status is not None and not EXAM_LIFECYCLE.permits(current.status, new_status):
                await self._signal(
                    caller,
                    f"{operation}:invalid_transition",
                    f"Invalid status transition: {current.status.value} -> {new_status.value}",
                    SecuritySeverity.MEDIUM,
                    {"exam_id": exam_id},
                )
                raise FailedPreconditionError(
                    f"Cannot change exam status from {current.status.value} "
                    f"to {new_status.value}",
                    current=current.status.value,
                    requested=new_status.value,
                    operation=operation,
                )

            conflict_count: int | None = None
            if SCHEDULE_FIELDS.intersection(changes):
                candidate = current.schedule_fields().model_copy(
                    update={k: v for k, v in changes.items() if k in SCHEDULE_FIELDS}
                )
                warnings = await self._schedule_warnings(candidate)
                changes["conflict_warnings"] = [w.model_dump() for w in warnings]
                conflict_count = len(warnings)

            audited = {k: _detail_value(v) for k, v in changes.items() if k != "conflict_warnings"}
            changes["updated_at"] = utc_now()
            stored = await self._commit_and_audit(
                lambda: self._commit(
                    [
                        WriteOp.update(
                            Collections.EXAMS, exam_id, changes, request.expected_version
                        )
                    ],
                    "Exam",
                    operation,
                ),
                lambda _: AuditLogEntryDraft(
                    action=AuditAction.EXAM_UPDATED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.EXAM,
                    entity_id=exam_id,
                    previous_value=current.status.value if new_status else None,
                    new_value=new_status.value if new_status else None,
                    details=ExamUpdatedDetails(
                        changes=audited,
                        conflict_count=conflict_count or 0,
                    ),
                ),
            )
            exam = Exam.model_validate(stored[0])

            logger.info("exam_updated", exam_id=exam_id, fields=sorted(audited))
            return exam

        return await self._run(operation, actor, body, timeout)

    async def delete_exam(
        self,
        actor: Actor | None,
        exam_id: str,
        expected_version: int | None = None,
        timeout: float | None = None,
    ) -> None:
        """Delete a DRAFT exam.

        Raises:
            PermissionDeniedError: Caller lacks exam:delete.
            NotFoundError: No such exam.
            FailedPreconditionError: The exam is no longer a draft.
        """
        operation = Operations.DELETE_EXAM

        async def body() -> None:
            caller = await self._authorize(actor, Permission.EXAM_DELETE, operation)
            await self._throttle(caller, operation)

            document = await self._load(Collections.EXAMS, "Exam", exam_id, operation)
            exam = Exam.model_validate(document)
            self._check_version("Exam", document, expected_version, operation)
            if not can_delete(exam.status):
                raise FailedPreconditionError(
                    f"Only draft exams can be deleted (status is {exam.status.value})",
                    current=exam.status.value,
                    requirement=ExamStatus.DRAFT.value,
                    operation=operation,
                )

            async def remove() -> None:
                try:
                    await self._store.delete(Collections.EXAMS, exam_id, expected_version)
                except StoreVersionConflict as e:
                    raise VersionConflictError(
                        "Exam", exam_id, e.expected, e.actual, operation
                    ) from e
                except DocumentNotFoundError as e:
                    raise NotFoundError("Exam", exam_id, operation=operation) from e

            await self._commit_and_audit(
                remove,
                lambda _: AuditLogEntryDraft(
                    action=AuditAction.EXAM_DELETED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.EXAM,
                    entity_id=exam_id,
                    previous_value=exam.status.value,
                    details=ExamDeletedDetails(title=exam.title, course_code=exam.course_code),
                ),
            )
            logger.info("exam_deleted", exam_id=exam_id)

        await self._run(operation, actor, body, timeout)

    async def publish_exam_results(
        self,
        actor: Actor | None,
        exam_id: str,
        request: PublishExamResultsRequest,
        timeout: float | None = None,
    ) -> Exam:
        """Publish results for a COMPLETED exam.

        The result rows and the exam's ``published_at`` stamp are written
        in one atomic commit.

        Raises:
            PermissionDeniedError: Caller lacks exam:publish.
            InvalidArgumentError: Missing or malformed result rows.
            NotFoundError: No such exam.
            FailedPreconditionError: The exam is not completed.
        """
        operation = Operations.PUBLISH_EXAM_RESULTS

        async def body() -> Exam:
            caller = await self._authorize(actor, Permission.EXAM_PUBLISH, operation)
            await self._throttle(caller, operation)
            rows = validate_results(request)

            document = await self._load(Collections.EXAMS, "Exam", exam_id, operation)
            exam = Exam.model_validate(document)
            if not can_publish_results(exam.status):
                raise FailedPreconditionError(
                    f"Results can only be published for completed exams "
                    f"(status is {exam.status.value})",
                    current=exam.status.value,
                    requirement=ExamStatus.COMPLETED.value,
                    operation=operation,
                )

            now = utc_now()
            stored = await self._commit_and_audit(
                lambda: self._commit(
                    [
                        WriteOp.put(
                            Collections.EXAM_RESULTS,
                            exam_id,
                            {
                                "exam_id": exam_id,
                                "results": [r.model_dump() for r in rows],
                                "published_by": caller.id,
                                "published_at": now,
                            },
                        ),
                        WriteOp.update(
                            Collections.EXAMS,
                            exam_id,
                            {"published_at": now, "updated_at": now},
                        ),
                    ],
                    "Exam",
                    operation,
                ),
                lambda _: AuditLogEntryDraft(
                    action=AuditAction.EXAM_RESULTS_PUBLISHED,
                    performed_by=self._performer(caller),
                    entity_type=EntityType.EXAM,
                    entity_id=exam_id,
                    details=ResultsPublishedDetails(result_count=len(rows)),
                ),
            )
            published = Exam.model_validate(stored[1])

            logger.info("exam_results_published", exam_id=exam_id, results=len(rows))
            return published

        return await self._run(operation, actor, body, timeout)

    # =========================================================================
    # Reads (no rate limit)
    # =========================================================================

    def _require_view(self, actor: Actor | None, permission: Permission) -> Actor:
        if actor is None:
            raise PermissionDeniedError(permission.value, reason="Authentication required")
        if actor.is_admin and not allows(actor.role, permission):
            raise PermissionDeniedError(
                permission.value, role=actor.role.value if actor.role else None
            )
        return actor

    async def _get_scoped(
        self,
        actor: Actor | None,
        permission: Permission,
        collection: str,
        entity: str,
        entity_id: str,
    ) -> dict:
        caller = self._require_view(actor, permission)
        document = await self._read(lambda: self._store.get(collection, entity_id))
        if document is None:
            raise NotFoundError(entity, entity_id)
        if not in_scope(caller, document):
            raise PermissionDeniedError(
                permission.value, reason=f"{entity} belongs to another user"
            )
        return document

    async def _list_scoped(
        self,
        actor: Actor | None,
        permission: Permission,
        collection: str,
        limit: int | None,
    ) -> list[dict]:
        caller = self._require_view(actor, permission)
        return await self._read(
            lambda: self._store.query(collection, scoped_query(caller, collection, limit))
        )

    async def get_task(self, actor: Actor | None, task_id: str) -> Task:
        """Fetch one task visible to the caller."""
        document = await self._get_scoped(
            actor, Permission.TASK_VIEW, Collections.TASKS, "Task", task_id
        )
        return Task.model_validate(document)

    async def list_tasks(self, actor: Actor | None, limit: int | None = None) -> list[Task]:
        """List tasks in the caller's scope, newest first."""
        documents = await self._list_scoped(actor, Permission.TASK_VIEW, Collections.TASKS, limit)
        return [Task.model_validate(d) for d in documents]

    async def get_exam(self, actor: Actor | None, exam_id: str) -> Exam:
        """Fetch one exam visible to the caller."""
        document = await self._get_scoped(
            actor, Permission.EXAM_VIEW, Collections.EXAMS, "Exam", exam_id
        )
        return Exam.model_validate(document)

    async def list_exams(self, actor: Actor | None, limit: int | None = None) -> list[Exam]:
        """List exams in the caller's scope by sitting date."""
        documents = await self._list_scoped(actor, Permission.EXAM_VIEW, Collections.EXAMS, limit)
        return [Exam.model_validate(d) for d in documents]

    async def fetch_audit(
        self,
        actor: Actor | None,
        entity_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        """Recent audit history. Requires audit:view on an admin account."""
        if actor is None or not actor.is_admin or not allows(actor.role, Permission.AUDIT_VIEW):
            raise PermissionDeniedError(
                Permission.AUDIT_VIEW.value,
                role=actor.role.value if actor and actor.role else None,
            )
        try:
            return await self._audit.fetch_recent(entity_id=entity_id, limit=limit)
        except AuditError as e:
            raise StorageUnavailableError(e.message, original_error=e) from e
