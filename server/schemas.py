"""Pydantic request schemas for the room API and websocket messages."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from guesswho.roster import DEFAULT_VARIANT

SessionModeName = Literal["multi-participant", "stand-in-augmented"]


class JoinRequest(BaseModel):
    """Request body for joining (or creating) a room."""

    participant_id: str = Field(min_length=1, max_length=64)
    variant: str = DEFAULT_VARIANT
    mode: SessionModeName = "multi-participant"


class AskPayload(BaseModel):
    type: Literal["ask"]
    question: str


class AnswerPayload(BaseModel):
    type: Literal["answer"]
    answer: str


class GuessPayload(BaseModel):
    type: Literal["guess"]
    candidate: str


class EliminatePayload(BaseModel):
    type: Literal["eliminate"]
    index: int = Field(ge=0)


class RevivePayload(BaseModel):
    type: Literal["revive"]
    index: int = Field(ge=0)


class ReadyPayload(BaseModel):
    type: Literal["ready"]


ActionPayload = Annotated[
    Union[AskPayload, AnswerPayload, GuessPayload, EliminatePayload, RevivePayload, ReadyPayload],
    Field(discriminator="type"),
]

action_payload_adapter: TypeAdapter[ActionPayload] = TypeAdapter(ActionPayload)


class ActionRequest(BaseModel):
    """Request body for submitting one gameplay action."""

    participant_id: str = Field(min_length=1, max_length=64)
    action: ActionPayload
