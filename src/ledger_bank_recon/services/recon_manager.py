"""Task allocation and compilation requests."""

from typing import Optional
import logging
import uuid

from ..models.events import CompilerEvent, CompilerRequest, UploadTask
from ..models.transaction import BANK_STATEMENT_FILE, TRANSACTION_FILE
from ..storage.interfaces import ObjectStore
from ..utils.exceptions import ValidationError
from .events import EventPublisher

logger = logging.getLogger(__name__)


class ReconManager:
    """Hands out task ids and turns compilation requests into compiler events."""

    def __init__(
        self,
        publisher: EventPublisher,
        compiler_topic: str,
        upload_prefix: str = "uploads",
        object_store: Optional[ObjectStore] = None,
    ):
        """
        Initialize the manager.

        Args:
            publisher: Where compiler events are published
            compiler_topic: Topic of compiler events
            upload_prefix: Root of the per-task object references
            object_store: When given, references to objects that were never
                uploaded are left empty so the compiler skips them
        """
        self.publisher = publisher
        self.compiler_topic = compiler_topic
        self.upload_prefix = upload_prefix
        self.object_store = object_store

    def new_task(self) -> UploadTask:
        """Allocate a task id and the object references its two files belong at."""
        task_id = str(uuid.uuid4())
        return UploadTask(
            task_id=task_id,
            transaction_object=self.transaction_object(task_id),
            bank_statement_object=self.bank_statement_object(task_id),
        )

    def initiate_compilation(self, request: CompilerRequest) -> CompilerEvent:
        """
        Validate a compilation request and publish its compiler event.

        Raises:
            ValidationError: If the task id or bank name is missing, or no
                file was uploaded for the task
        """
        if not request.task_id:
            raise ValidationError("task ID is required", stage="initiate_compilation")
        if not request.bank_name:
            raise ValidationError("bank name is required", stage="initiate_compilation")

        transaction = self._uploaded(self.transaction_object(request.task_id))
        bank_statement = self._uploaded(self.bank_statement_object(request.task_id))
        if not transaction and not bank_statement:
            raise ValidationError(
                f"no files uploaded for task {request.task_id}", stage="initiate_compilation"
            )

        event = CompilerEvent(
            task_id=request.task_id,
            bank_name=request.bank_name,
            transaction=transaction,
            bank_statement=bank_statement,
            start_date=request.start_date,
            end_date=request.end_date,
        )
        logger.info(f"Initiating compilation for task {request.task_id} ({request.bank_name})")
        self.publisher.publish(self.compiler_topic, request.task_id, event)
        return event

    def _uploaded(self, object_ref: str) -> str:
        if self.object_store is None or self.object_store.exists(object_ref):
            return object_ref
        logger.info(f"Object {object_ref} was not uploaded; skipping")
        return ""

    def transaction_object(self, task_id: str) -> str:
        return f"{self.upload_prefix}/{task_id}/{TRANSACTION_FILE}"

    def bank_statement_object(self, task_id: str) -> str:
        return f"{self.upload_prefix}/{task_id}/{BANK_STATEMENT_FILE}"
