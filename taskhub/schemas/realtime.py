"""Realtime event and client message schemas."""
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import Field, TypeAdapter

from taskhub.schemas.common import CamelModel
from taskhub.schemas.task import TaskResponse
from taskhub.schemas.user import UserResponse
from taskhub.utils.time import utc_now


class _TaskEventBase(CamelModel):
    task_id: int
    user: UserResponse
    timestamp: datetime = Field(default_factory=utc_now)


class TaskCreatedEvent(_TaskEventBase):
    type: Literal["task_created"] = "task_created"
    task: TaskResponse


class TaskUpdatedEvent(_TaskEventBase):
    type: Literal["task_updated"] = "task_updated"
    task: TaskResponse
    changes: Dict[str, Any] = {}


class TaskDeletedEvent(_TaskEventBase):
    type: Literal["task_deleted"] = "task_deleted"


TaskEvent = Annotated[
    Union[TaskCreatedEvent, TaskUpdatedEvent, TaskDeletedEvent],
    Field(discriminator="type"),
]


class AuthMessage(CamelModel):
    type: Literal["auth"]
    user_id: str = Field(min_length=1)


class JoinTaskMessage(CamelModel):
    type: Literal["join_task"]
    task_id: int


class PingMessage(CamelModel):
    type: Literal["ping"]


ClientMessage = Annotated[
    Union[AuthMessage, JoinTaskMessage, PingMessage],
    Field(discriminator="type"),
]

client_message_adapter = TypeAdapter(ClientMessage)
task_event_adapter = TypeAdapter(TaskEvent)
