"""
Fields that the workflow builder offers for conditions.

The engine itself accepts any dotted path; the registry describes the
well-known ticket fields, their type and the operators that make sense
for them.
"""
from typing import Any, Dict

TICKET_STATUSES = ["open", "pending", "on_hold", "resolved", "closed"]
TICKET_PRIORITIES = ["low", "medium", "high", "urgent"]

FIELD_REGISTRY: Dict[str, Dict[str, Any]] = {
    "status": {
        "label": "Status",
        "type": "ENUM",
        "operators": ["equals", "not_equals", "in", "changed"],
        "values": TICKET_STATUSES,
    },
    "priority": {
        "label": "Priority",
        "type": "ENUM",
        "operators": ["equals", "not_equals", "in", "changed"],
        "values": TICKET_PRIORITIES,
    },
    "assignee_id": {
        "label": "Assigned Agent",
        "type": "RELATION",
        "operators": ["equals", "not_equals", "changed", "is_empty", "is_not_empty"],
        "source": "AGENTS",
    },
    "department_id": {
        "label": "Department",
        "type": "RELATION",
        "operators": ["equals", "not_equals", "is_empty", "is_not_empty"],
        "source": "DEPARTMENTS",
    },
    "title": {
        "label": "Subject",
        "type": "TEXT",
        "operators": ["equals", "not_equals", "contains", "not_contains", "is_empty", "is_not_empty"],
    },
    "customer_email": {
        "label": "Customer Email",
        "type": "TEXT",
        "operators": ["equals", "not_equals", "contains", "not_contains", "in"],
    },
    "created_at": {
        "label": "Created Time",
        "type": "DATE",
        "operators": ["greater_than", "less_than", "greater_than_or_equal", "less_than_or_equal"],
    },
}

