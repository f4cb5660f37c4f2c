"""Filesystem-backed object store for uploaded ledger and bank statement files."""

from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union
import logging
import shutil

from ..utils.exceptions import IngestionError, NotFoundError, ValidationError
from .interfaces import ObjectStore

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Objects live as files under ``base_dir``; the object reference is the relative path."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir).resolve()

    def path_for(self, object_ref: str) -> Path:
        """Resolve an object reference to a path, refusing references outside the store."""
        path = (self.base_dir / object_ref).resolve()
        if not path.is_relative_to(self.base_dir):
            raise ValidationError(
                f"object reference {object_ref!r} escapes the store", stage="object_store"
            )
        return path

    def exists(self, object_ref: str) -> bool:
        return self.path_for(object_ref).is_file()

    @contextmanager
    def open(self, object_ref: str) -> Iterator[BinaryIO]:
        path = self.path_for(object_ref)
        if not path.is_file():
            raise NotFoundError(f"object {object_ref!r} not found", stage="object_store.open")

        try:
            stream = open(path, "rb")
        except OSError as e:
            raise IngestionError(
                f"cannot open object {object_ref!r}: {e}", stage="object_store.open"
            ) from e

        try:
            yield stream
        finally:
            stream.close()

    def put(self, object_ref: str, source: Path) -> Path:
        """Copy a local file into the store under ``object_ref``."""
        target = self.path_for(object_ref)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        logger.info(f"Stored {source} as object {object_ref}")
        return target
