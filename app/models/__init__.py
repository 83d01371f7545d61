# Import all models here to ensure they are registered with SQLAlchemy
from app.models.workspace import Workspace
from app.models.agent import Agent, LeaveHistory
from app.models.task import Task
from app.models.activity import TicketActivity
from app.models.notification import Notification
from app.models.workflow import Workflow, WorkflowCondition, WorkflowAction
from app.models.sla import SLAPolicy, SLATimer
from app.models.webhook import Webhook, WebhookLog
