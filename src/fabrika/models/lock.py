"""Lock model for single-writer enforcement.

Implements PID-based file locking so only one fabrika process mutates
a project's checkpoints at a time.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Lock(BaseModel):
    """Active lock written to .fabrika/active.lock.

    Attributes:
        pid: Process ID of the lock holder.
        project: Project path being modified.
        command: Command that acquired the lock.
        started_at: When the lock was acquired.
        last_heartbeat: Last heartbeat update (for stale detection).
    """

    pid: int = Field(description="Process ID holding the lock")
    project: str = Field(description="Project path being modified")
    command: str = Field(description="Command that acquired lock")
    started_at: datetime = Field(default_factory=datetime.now)
    last_heartbeat: datetime = Field(default_factory=datetime.now)
