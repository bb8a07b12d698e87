"""
Task service for the posted-task lifecycle.

Handles the full task lifecycle: post, apply, assign, start, complete,
cancel. Status only moves forward through the transition table, with
cancelled reachable from every non-terminal state. Every transition is a
single check-and-set against the stored version.
"""

import logging
from uuid import UUID, uuid4

from clients.store import RecordStore
from core.audit import AuditLogger, AuditAction
from core.event_bus import EventBus
from core.events import TaskAssigned, TaskCancelled, TaskCompleted, TaskPosted, TaskStarted
from core.exceptions import InvalidTransition, NotFound, NotOwner
from core.models import Actor, Application, Task, TaskCreate, TaskStatus
from core.retry import with_conflict_retry
from core.transitions import ensure_transition
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_TASK_EVENTS = {
    TaskStatus.ASSIGNED: TaskAssigned,
    TaskStatus.IN_PROGRESS: TaskStarted,
    TaskStatus.COMPLETED: TaskCompleted,
    TaskStatus.CANCELLED: TaskCancelled,
}


class TaskService:
    """Service for task and application operations."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditLogger,
        event_bus: EventBus,
        conflict_retries: int = 1,
    ):
        self.store = store
        self.audit = audit
        self.event_bus = event_bus
        self.conflict_retries = conflict_retries

    def post_task(self, actor: Actor, data: TaskCreate) -> Task:
        """
        Post a new task.

        Args:
            actor: Customer posting the task
            data: Task creation data

        Returns:
            Created task in OPEN status

        Raises:
            NotOwner: If the actor is not a customer
        """
        if not actor.is_customer:
            raise NotOwner("Only customers can post tasks")

        now = now_utc()
        row = self.store.create("tasks", {
            "id": uuid4(),
            "customer_id": actor.id,
            "title": data.title,
            "description": data.description,
            "category_id": data.category_id,
            "location": data.location,
            "budget_min_cents": data.budget_min_cents,
            "budget_max_cents": data.budget_max_cents,
            "pricing_type": data.pricing_type.value,
            "urgent": data.urgent,
            "status": TaskStatus.OPEN.value,
            "assigned_provider_id": None,
            "assigned_application_id": None,
            "created_at": now,
            "updated_at": now,
        })

        task = Task.model_validate(row)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="task",
            entity_id=task.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")}
        )
        logger.info(f"Task {task.id} posted by customer {actor.id}")
        self.event_bus.publish(TaskPosted(task=task, actor_id=actor.id))

        return task

    def get(self, task_id: UUID) -> Task:
        """
        Get task by ID.

        Raises:
            NotFound: If no task has this id
        """
        row = self.store.get("tasks", task_id)
        if row is None:
            raise NotFound("task", task_id)
        return Task.model_validate(row)

    @with_conflict_retry
    def apply(self, actor: Actor, task_id: UUID, message: str | None = None) -> Application:
        """
        Register a provider's interest in an open task.

        Applying twice returns the existing application rather than creating
        a duplicate.

        Args:
            actor: Provider applying
            task_id: Task UUID
            message: Optional note to the customer

        Returns:
            The provider's application for this task

        Raises:
            NotOwner: If the actor is not a provider, or owns the task
            InvalidTransition: If the task is no longer open
        """
        if not actor.is_provider:
            raise NotOwner("Only providers can apply to tasks")

        with self.store.atomic():
            task = self.get(task_id)
            if task.customer_id == actor.id:
                raise NotOwner(f"Cannot apply to own task {task_id}")

            existing = self._application_of(task_id, actor.id)
            if existing is not None:
                return existing

            if task.status != TaskStatus.OPEN:
                raise InvalidTransition(
                    f"Task {task_id} is {task.status.value} and no longer accepts applications"
                )

            row = self.store.create("applications", {
                "id": uuid4(),
                "task_id": task_id,
                "provider_id": actor.id,
                "message": message,
                "created_at": now_utc(),
            })
        application = Application.model_validate(row)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="application",
            entity_id=application.id,
            action=AuditAction.CREATE,
            changes={"created": application.model_dump(mode="json")}
        )
        logger.info(f"Provider {actor.id} applied to task {task_id}")

        return application

    def list_applications(self, task_id: UUID) -> list[Application]:
        """
        List every application for a task, oldest first.

        Applications are never deleted; see projections.application_state
        for whether each is pending, accepted or closed.
        """
        rows = self.store.list(
            "applications", filters={"task_id": task_id}, order_by=("created_at", "id")
        )
        return [Application.model_validate(row) for row in rows]

    @with_conflict_retry
    def assign_provider(self, actor: Actor, task_id: UUID, application_id: UUID) -> Task:
        """
        Accept one application and assign its provider.

        All other applications for the task become closed implicitly.

        Args:
            actor: Customer who owns the task
            task_id: Task UUID
            application_id: Chosen application

        Returns:
            Task in ASSIGNED status

        Raises:
            NotFound: If the task or application is unknown
            NotOwner: If the actor does not own the task
            InvalidTransition: If the task is not open
            Conflict: If another assignment won the race twice in a row
        """
        task = self.get(task_id)
        self._require_owner(actor, task)

        row = self.store.get("applications", application_id)
        if row is None or row["task_id"] != task_id:
            raise NotFound("application", application_id)
        application = Application.model_validate(row)

        return self._transition(
            actor,
            task,
            TaskStatus.ASSIGNED,
            {
                "assigned_provider_id": application.provider_id,
                "assigned_application_id": application.id,
            },
        )

    @with_conflict_retry
    def start_work(self, actor: Actor, task_id: UUID) -> Task:
        """
        Mark work as begun on an assigned task.

        Either the owning customer or the assigned provider may do this.

        Raises:
            NotOwner: If the actor is neither
            InvalidTransition: If the task is not assigned
        """
        task = self.get(task_id)
        if actor.id not in (task.customer_id, task.assigned_provider_id):
            raise NotOwner(f"Actor {actor.id} cannot start task {task_id}")

        return self._transition(actor, task, TaskStatus.IN_PROGRESS)

    @with_conflict_retry
    def complete(self, actor: Actor, task_id: UUID) -> Task:
        """
        Mark an in-progress task done. Owning customer only.

        Raises:
            NotOwner: If the actor does not own the task
            InvalidTransition: If the task is not in progress
        """
        task = self.get(task_id)
        self._require_owner(actor, task)

        return self._transition(actor, task, TaskStatus.COMPLETED)

    @with_conflict_retry
    def cancel(self, actor: Actor, task_id: UUID) -> Task:
        """
        Cancel a task from any non-terminal state. Owning customer only.

        Raises:
            NotOwner: If the actor does not own the task
            InvalidTransition: If the task is already completed or cancelled
        """
        task = self.get(task_id)
        self._require_owner(actor, task)

        return self._transition(actor, task, TaskStatus.CANCELLED)

    def list_for_customer(self, customer_id: UUID, limit: int | None = 50) -> list[Task]:
        """List a customer's tasks, newest first."""
        rows = self.store.list(
            "tasks",
            filters={"customer_id": customer_id},
            order_by=("-created_at", "id"),
            limit=limit,
        )
        return [Task.model_validate(row) for row in rows]

    def list_for_provider(self, provider_id: UUID, limit: int | None = 50) -> list[Task]:
        """List tasks assigned to a provider, newest first."""
        rows = self.store.list(
            "tasks",
            filters={"assigned_provider_id": provider_id},
            order_by=("-created_at", "id"),
            limit=limit,
        )
        return [Task.model_validate(row) for row in rows]

    def _application_of(self, task_id: UUID, provider_id: UUID) -> Application | None:
        rows = self.store.list(
            "applications", filters={"task_id": task_id, "provider_id": provider_id}
        )
        return Application.model_validate(rows[0]) if rows else None

    def _require_owner(self, actor: Actor, task: Task) -> None:
        if task.customer_id != actor.id:
            logger.warning(f"Actor {actor.id} rejected on task {task.id}: not owner")
            raise NotOwner(f"Task {task.id} belongs to another customer")

    def _transition(
        self,
        actor: Actor,
        task: Task,
        target: TaskStatus,
        extra: dict | None = None,
    ) -> Task:
        ensure_transition("task", task.id, task.status, target)

        changes = {"status": target.value, "updated_at": now_utc(), **(extra or {})}
        row = self.store.update("tasks", task.id, changes, expected_version=task.version)
        updated = Task.model_validate(row)

        audit_changes = {"status": {"old": task.status.value, "new": target.value}}
        for field, value in (extra or {}).items():
            audit_changes[field] = {"old": None, "new": str(value)}
        self.audit.log_change(
            actor_id=actor.id,
            entity_type="task",
            entity_id=task.id,
            action=AuditAction.TRANSITION,
            changes=audit_changes,
        )
        logger.info(f"Task {task.id} moved {task.status.value} -> {target.value}")
        self.event_bus.publish(_TASK_EVENTS[target](task=updated, actor_id=actor.id))

        return updated
