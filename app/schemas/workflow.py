import json
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, validator
from datetime import datetime

from app.automation.conditions import resolve_operator
from app.automation.field_registry import FIELD_REGISTRY
from app.models.workflow import ActionType


class WorkflowConditionBase(BaseModel):
    field: str
    operator: str
    value: Optional[Union[str, int, float, bool]] = None


class WorkflowConditionCreate(WorkflowConditionBase):
    @validator('field')
    def field_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Condition field cannot be empty')
        return v.strip()

    @validator('operator')
    def operator_must_be_known(cls, v, values):
        operator = resolve_operator(v)
        if operator is None:
            raise ValueError(f'Unknown condition operator: {v}')
        # Registered fields only accept the operators listed for them
        definition = FIELD_REGISTRY.get(values.get('field'))
        if definition and operator.value not in definition['operators']:
            raise ValueError(f"Operator '{v}' is not supported for field '{values['field']}'")
        return v.strip().lower()

    @validator('value')
    def value_as_text(cls, v):
        # Conditions store their literal as text
        if isinstance(v, bool):
            return "true" if v else "false"
        return None if v is None else str(v)


class WorkflowActionCreate(BaseModel):
    action_type: str
    payload: Optional[Union[Dict[str, Any], str]] = None
    order: Optional[int] = None

    @validator('action_type')
    def action_type_must_be_known(cls, v):
        value = (v or "").strip().upper()
        if value not in ActionType.__members__:
            raise ValueError(f'Unknown action type: {v}')
        return value

    @validator('payload')
    def payload_as_json_text(cls, v):
        if v is None:
            return "{}"
        if isinstance(v, str):
            try:
                decoded = json.loads(v)
            except ValueError:
                raise ValueError('Payload must be valid JSON')
            if not isinstance(decoded, dict):
                raise ValueError('Payload must be a JSON object')
            return v
        return json.dumps(v)


class WorkflowBase(BaseModel):
    name: str
    description: Optional[str] = None
    trigger: str
    is_active: bool = True


class WorkflowCreate(WorkflowBase):
    conditions: List[WorkflowConditionCreate] = []
    actions: List[WorkflowActionCreate]

    @validator('name')
    def name_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()

    @validator('trigger')
    def trigger_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Trigger cannot be empty')
        return v.strip().upper()

    @validator('actions')
    def at_least_one_action(cls, v):
        if not v:
            raise ValueError('At least one action is required')
        return v


class WorkflowUpdate(WorkflowCreate):
    is_active: Optional[bool] = None


class WorkflowToggle(BaseModel):
    is_active: bool


class WorkflowConditionRead(BaseModel):
    id: Optional[int] = None
    field: Optional[str] = None
    operator: Optional[str] = None
    value: Optional[str] = None

    class Config:
        from_attributes = True


class WorkflowActionRead(BaseModel):
    id: Optional[int] = None
    action_type: Optional[str] = None
    payload: Optional[str] = None
    order: int = 0

    class Config:
        from_attributes = True


class Workflow(WorkflowBase):
    id: int
    workspace_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    conditions: List[WorkflowConditionRead] = []
    actions: List[WorkflowActionRead] = []

    class Config:
        from_attributes = True


class FieldDefinition(BaseModel):
    key: str
    label: str
    type: str
    operators: List[str]
    values: Optional[List[str]] = None
    source: Optional[str] = None
