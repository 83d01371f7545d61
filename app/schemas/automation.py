"""Typed payloads for workflow actions, one model per action type."""
import json
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, Union
from pydantic import BaseModel, Field, model_validator

from app.models.workflow import ActionType


class PayloadError(ValueError):
    """Payload text is not a JSON object."""
    pass


class ActionPayload(BaseModel):
    # Fields that must be present and truthy for the action to run
    required_fields: ClassVar[Tuple[str, ...]] = ()

    class Config:
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="after")
    def check_required_fields(self):
        missing = [name for name in self.required_fields if not getattr(self, name)]
        if missing:
            raise ValueError(f"Missing required field(s): {', '.join(missing)}")
        return self


class AssignAgentPayload(ActionPayload):
    required_fields: ClassVar[Tuple[str, ...]] = ("agent_id",)
    agent_id: Optional[Union[int, str]] = Field(None, alias="agentId")


class UpdateStatusPayload(ActionPayload):
    required_fields: ClassVar[Tuple[str, ...]] = ("status",)
    status: Optional[str] = None


class SetPriorityPayload(ActionPayload):
    required_fields: ClassVar[Tuple[str, ...]] = ("priority",)
    priority: Optional[str] = None


class AddTagPayload(ActionPayload):
    tag_name: Optional[str] = Field(None, alias="tagName")
    tag_id: Optional[Union[int, str]] = Field(None, alias="tagId")


class SendEmailPayload(ActionPayload):
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


class SendNotificationPayload(ActionPayload):
    required_fields: ClassVar[Tuple[str, ...]] = ("user_id", "title", "message")
    user_id: Optional[Union[int, str]] = Field(None, alias="userId")
    title: Optional[str] = None
    message: Optional[str] = None


class UpdateFieldPayload(ActionPayload):
    required_fields: ClassVar[Tuple[str, ...]] = ("field",)
    field: Optional[str] = None
    value: Any = None


ACTION_PAYLOADS: Dict[ActionType, Type[ActionPayload]] = {
    ActionType.ASSIGN_AGENT: AssignAgentPayload,
    ActionType.UPDATE_STATUS: UpdateStatusPayload,
    ActionType.SET_PRIORITY: SetPriorityPayload,
    ActionType.ADD_TAG: AddTagPayload,
    ActionType.SEND_EMAIL: SendEmailPayload,
    ActionType.SEND_NOTIFICATION: SendNotificationPayload,
    ActionType.UPDATE_FIELD: UpdateFieldPayload,
}


def load_payload_json(raw: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    """Decode a stored payload. Empty means {}; anything but a JSON object raises PayloadError."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Invalid JSON payload: {e}") from e
    if not isinstance(data, dict):
        raise PayloadError("Payload must be a JSON object")
    return data


def parse_action_payload(action_type: ActionType, raw: Union[str, Dict[str, Any], None]) -> ActionPayload:
    """
    Decode and validate the payload of one action.

    Raises PayloadError when the text is not a JSON object, and
    pydantic.ValidationError when a required field is missing.
    """
    data = load_payload_json(raw)
    return ACTION_PAYLOADS[action_type].model_validate(data)
