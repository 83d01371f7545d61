"""
Simple logging wrapper - console only, no files
"""
import logging

from app.core.config import settings


# Configure basic logging for the entire app
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger("helpdesk")
automation_logger = logging.getLogger("helpdesk.automation")
leave_logger = logging.getLogger("helpdesk.leave")
webhook_logger = logging.getLogger("helpdesk.webhooks")
