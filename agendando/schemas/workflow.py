# ===== agendando/schemas/workflow.py =====
"""
Workflow schemas. Action configs are a closed tagged union keyed by `type`.
"""
from typing import Annotated, List, Literal, Union
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from pydantic import Field, TypeAdapter, field_validator

from agendando.models.workflow import TriggerType
from agendando.schemas.base import CamelModel


class SendEmailConfig(CamelModel):
    type: Literal["SEND_EMAIL"] = "SEND_EMAIL"
    to: str = Field(..., min_length=1)  # "guest", "host" or an address
    subject: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1)

    @field_validator("to")
    @classmethod
    def check_recipient(cls, v):
        if v in ("guest", "host"):
            return v
        try:
            return validate_email(v, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValueError(f"to must be 'guest', 'host' or an email address: {e}")


class SendWebhookConfig(CamelModel):
    type: Literal["SEND_WEBHOOK"] = "SEND_WEBHOOK"
    url: str = Field(..., pattern=r"^https?://", max_length=2000)
    method: Literal["POST", "PUT", "PATCH"] = "POST"


ActionConfig = Annotated[Union[SendEmailConfig, SendWebhookConfig], Field(discriminator="type")]

action_config_adapter = TypeAdapter(ActionConfig)


class WorkflowCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True
    triggers: List[TriggerType] = Field(..., min_length=1)
    actions: List[ActionConfig] = Field(..., min_length=1)


class WorkflowOut(CamelModel):
    id: UUID
    name: str
    is_active: bool
    triggers: List[TriggerType]
    actions: List[ActionConfig]
