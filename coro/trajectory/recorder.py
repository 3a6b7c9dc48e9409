"""
Trajectory recorder - append-only execution journal.

Features:
- Concurrent appenders serialized by an asyncio.Lock
- Optional auto-persist: every record rewrites the whole document
- Atomic file replace so readers never see a half-written document
"""

import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from pydantic import ValidationError

from coro.exceptions import TrajectoryFormatError, TrajectoryLoadError, TrajectoryRecordingError
from coro.trajectory.models import (
    TRAJECTORY_FORMAT_VERSION,
    TaskCompleteEntry,
    TaskStartEntry,
    Trajectory,
    TrajectoryEntry,
    TrajectoryMetadata,
)
from coro.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_AGENT_TYPE = "coro_agent"


class TrajectoryRecorder:
    """
    Records execution trajectories for debugging and analysis.

    Examples:
        >>> recorder = TrajectoryRecorder.with_auto_filename()
        >>> await recorder.record(TrajectoryEntry.task_start("fix bug", {}))
        >>> trajectory = await TrajectoryRecorder.load(recorder.file_path)
    """

    def __init__(self, file_path: str | Path | None = None, agent_type: str = DEFAULT_AGENT_TYPE):
        self._entries: list[TrajectoryEntry] = []
        self._lock = asyncio.Lock()
        self._file_path = Path(file_path) if file_path is not None else None
        self._id = str(uuid4())
        self.agent_type = agent_type

    @classmethod
    def with_file(cls, path: str | Path) -> "TrajectoryRecorder":
        """Recorder that persists after every record."""
        return cls(file_path=path)

    @classmethod
    def with_auto_filename(cls, directory: str | Path | None = None) -> "TrajectoryRecorder":
        """Recorder persisting to <directory>/trajectory_<YYYYmmdd_HHMMSS>.json."""
        if directory is None:
            from coro.config import settings

            directory = settings.trajectory_dir
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return cls.with_file(Path(directory) / f"trajectory_{timestamp}.json")

    @property
    def file_path(self) -> Path | None:
        return self._file_path

    @property
    def id(self) -> str:
        return self._id

    async def record(self, entry: TrajectoryEntry) -> None:
        """
        Append an entry; with a file configured, persist before returning.

        Raises:
            TrajectoryRecordingError: Persisting failed
        """
        async with self._lock:
            self._entries.append(entry)
            if self._file_path is not None:
                await self._write(self._build())

    async def entries(self) -> list[TrajectoryEntry]:
        async with self._lock:
            return list(self._entries)

    async def entry_count(self) -> int:
        async with self._lock:
            return len(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def save(self) -> None:
        """Persist the current document. No-op without a file."""
        async with self._lock:
            if self._file_path is not None:
                await self._write(self._build())

    async def build_trajectory(self) -> Trajectory:
        async with self._lock:
            return self._build()

    @staticmethod
    async def load(path: str | Path) -> Trajectory:
        """
        Load a trajectory document.

        Raises:
            TrajectoryLoadError: The path does not exist or cannot be read
            TrajectoryFormatError: The file is not a trajectory document
        """
        path = Path(path)
        if not path.exists():
            raise TrajectoryLoadError(str(path))
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("trajectory_read_failed", path=str(path), error=str(e))
            raise TrajectoryLoadError(str(path)) from e

        try:
            return Trajectory.model_validate_json(content)
        except ValidationError as e:
            raise TrajectoryFormatError(str(path), f"{e.error_count()} validation errors") from e

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _build(self) -> Trajectory:
        entries = list(self._entries)

        started_at = entries[0].timestamp if entries else datetime.now(timezone.utc)
        completed_at = entries[-1].timestamp if entries else None
        duration_ms = None
        if completed_at is not None:
            duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        task = None
        success = None
        completed_steps = []
        for entry in entries:
            payload = entry.entry_type
            if isinstance(payload, TaskStartEntry):
                task = payload.task
            elif isinstance(payload, TaskCompleteEntry):
                success = payload.success
                completed_steps.append(payload.total_steps)

        if completed_steps:
            total_steps = sum(completed_steps)
        else:
            total_steps = max((e.step for e in entries), default=0)

        metadata = TrajectoryMetadata(
            id=self._id,
            started_at=started_at,
            completed_at=completed_at,
            version=TRAJECTORY_FORMAT_VERSION,
            agent_type=self.agent_type,
            task=task,
            success=success,
            total_steps=total_steps,
            duration_ms=duration_ms,
        )
        return Trajectory(metadata=metadata, entries=entries)

    async def _write(self, trajectory: Trajectory) -> None:
        path = self._file_path
        try:
            document = trajectory.model_dump_json(indent=2)
        except (ValueError, TypeError) as e:
            raise TrajectoryRecordingError(f"Failed to serialize trajectory: {e}") from e

        # The worker thread cannot be stopped; hold the lock until it is done
        write = asyncio.ensure_future(asyncio.to_thread(_atomic_write, path, document))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            await asyncio.wait({write})
            if not write.cancelled() and write.exception() is not None:
                logger.error("trajectory_write_failed", path=str(path), error=str(write.exception()))
            raise
        except OSError as e:
            logger.error("trajectory_write_failed", path=str(path), error=str(e))
            raise TrajectoryRecordingError(f"Failed to write trajectory to {path}: {e}") from e


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp:
        tmp.write(content)
    try:
        os.replace(tmp.name, path)
    except OSError:
        os.unlink(tmp.name)
        raise


__all__ = ["TrajectoryRecorder", "DEFAULT_AGENT_TYPE"]
