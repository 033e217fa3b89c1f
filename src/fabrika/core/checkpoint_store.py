"""Durable per-step checkpoint persistence.

One JSON file per step lives in the checkpoints directory, named
``<stepId>.json``. Writes go to a temporary file in the same directory,
are fsynced and then atomically renamed over the target, so a reader
never sees a half-written record.

Records carry a ``schemaVersion`` tag. Untagged records predate the tag:
those with a ``status`` field are current-shape records, the rest use the
legacy ``executedAt``/``success`` format and are migrated in memory. A
read never rewrites the file on disk.
"""

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..constants import CHECKPOINT_SCHEMA_VERSION
from ..errors import CheckpointReadFailed, CheckpointWriteFailed
from ..models import LegacyStepCheckpoint, StepCheckpoint, StepId

LEGACY_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class SaveOptions:
    """Options for ``CheckpointStore.save``.

    Attributes:
        durable: fsync the file and its directory before returning.
        indent: JSON indentation of the written record.
    """

    durable: bool = True
    indent: int = 2


def _detect_version(data: dict[str, Any]) -> int:
    version = data.get("schemaVersion")
    if version is not None:
        return int(version)
    return CHECKPOINT_SCHEMA_VERSION if "status" in data else LEGACY_SCHEMA_VERSION


def _fsync_directory(directory: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class CheckpointStore:
    """Read and write step checkpoints under a directory."""

    def __init__(self, checkpoints_dir: Path, logger: logging.Logger | None = None) -> None:
        self.checkpoints_dir = checkpoints_dir
        self.logger = logger or logging.getLogger(__name__)

    def path_for(self, step_id: StepId) -> Path:
        """Get path to a step's checkpoint file."""
        return self.checkpoints_dir / f"{StepId(step_id).value}.json"

    def exists(self, step_id: StepId) -> bool:
        return self.path_for(step_id).is_file()

    def save(
        self,
        step_id: StepId,
        checkpoint: StepCheckpoint,
        options: SaveOptions | None = None,
    ) -> None:
        """Replace a step's checkpoint wholesale.

        Args:
            step_id: Step the record belongs to
            checkpoint: Complete record to persist
            options: Write options (durability, formatting)

        Raises:
            ValueError: If ``checkpoint.step_id`` does not match ``step_id``
            CheckpointWriteFailed: If the record could not be written
        """
        options = options or SaveOptions()
        step_id = StepId(step_id)
        if checkpoint.step_id != step_id:
            raise ValueError(
                f"Checkpoint for {checkpoint.step_id.value} cannot be saved as {step_id.value}"
            )

        path = self.path_for(step_id)
        payload = checkpoint.model_dump_json(
            by_alias=True, exclude_none=True, indent=options.indent
        )
        tmp_name: str | None = None
        try:
            self.checkpoints_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.checkpoints_dir,
                prefix=f".{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(payload)
                f.flush()
                if options.durable:
                    os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
            if options.durable:
                _fsync_directory(self.checkpoints_dir)
        except OSError as e:
            raise CheckpointWriteFailed(step_id.value, path, e) from e
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)

        self.logger.debug("Saved checkpoint %s (%s)", step_id.value, checkpoint.status.value)

    def load(self, step_id: StepId) -> StepCheckpoint | None:
        """Load a step's checkpoint.

        Returns:
            The checkpoint in the current schema, or None if no record exists

        Raises:
            CheckpointReadFailed: If the record exists but cannot be read,
                parsed, or validated
        """
        step_id = StepId(step_id)
        path = self.path_for(step_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CheckpointReadFailed(step_id.value, path, e) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CheckpointReadFailed(step_id.value, path, e) from e
        if not isinstance(data, dict):
            raise CheckpointReadFailed(step_id.value, path, "record is not a JSON object")

        try:
            version = _detect_version(data)
            if version == LEGACY_SCHEMA_VERSION:
                checkpoint = LegacyStepCheckpoint.model_validate(data).migrate()
                self.logger.debug("Migrated legacy checkpoint %s", step_id.value)
            elif version == CHECKPOINT_SCHEMA_VERSION:
                checkpoint = StepCheckpoint.model_validate(
                    {**data, "schemaVersion": CHECKPOINT_SCHEMA_VERSION}
                )
            else:
                raise CheckpointReadFailed(
                    step_id.value, path, f"unsupported schema version {version}"
                )
        except (ValidationError, ValueError, TypeError) as e:
            raise CheckpointReadFailed(step_id.value, path, e) from e

        if checkpoint.step_id != step_id:
            raise CheckpointReadFailed(
                step_id.value, path, f"record belongs to {checkpoint.step_id.value}"
            )
        return checkpoint

    def load_all(self, step_ids: list[StepId] | None = None) -> dict[StepId, StepCheckpoint]:
        """Load every existing checkpoint, in the given (or workflow) order."""
        order = step_ids if step_ids is not None else list(StepId)
        checkpoints: dict[StepId, StepCheckpoint] = {}
        for step_id in order:
            checkpoint = self.load(step_id)
            if checkpoint is not None:
                checkpoints[step_id] = checkpoint
        return checkpoints

    def delete(self, step_id: StepId) -> bool:
        """Remove a step's checkpoint. Returns True if a file was removed."""
        path = self.path_for(step_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CheckpointWriteFailed(StepId(step_id).value, path, e) from e
        return True

    def clear(self) -> int:
        """Remove all checkpoint files. Returns the number removed."""
        return sum(1 for step_id in StepId if self.delete(step_id))
