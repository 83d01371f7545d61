import os
from typing import List, Union, Optional
from pydantic_settings import BaseSettings
from pydantic import validator


class Settings(BaseSettings):
    API_V1_STR: str = "/v1"
    PROJECT_NAME: str = "Helpdesk API"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000"]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # JWT Configuration
    JWT_SECRET: str = "temporarysecret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # Database Configuration
    MYSQL_HOST: Optional[str] = None
    MYSQL_USER: Optional[str] = None
    MYSQL_PASSWORD: Optional[str] = None
    MYSQL_DATABASE: Optional[str] = None
    MYSQL_PORT: Optional[str] = None

    DATABASE_URI: Optional[str] = None

    @validator("DATABASE_URI", pre=True)
    def assemble_db_connection(cls, v: Optional[str], values: dict) -> Optional[str]:
        if v:
            return v

        mysql_url = os.getenv("MYSQL_URL") or os.getenv("DATABASE_URL")
        if mysql_url:
            return mysql_url

        db_params = ['MYSQL_USER', 'MYSQL_PASSWORD', 'MYSQL_HOST', 'MYSQL_PORT', 'MYSQL_DATABASE']
        if all(values.get(x) for x in db_params):
            connection_string = "mysql+pymysql://"
            connection_string += f"{values.get('MYSQL_USER')}:{values.get('MYSQL_PASSWORD')}"
            connection_string += f"@{values.get('MYSQL_HOST')}:{values.get('MYSQL_PORT')}/{values.get('MYSQL_DATABASE')}"
            return connection_string

        return None

    # Database Connection Pool
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Logging
    LOG_LEVEL: str = "INFO"

    # Automation engine
    AUTOMATION_ENABLED: bool = True
    AUTOMATION_NOTIFICATION_LINK: str = "/admin/tickets/{ticket_id}"

    # Leave management
    LEAVE_CLOSED_STATUSES: Union[List[str], str] = ["resolved", "closed"]
    LEAVE_UNASSIGNED_REASON: str = "leave"

    @validator("LEAVE_CLOSED_STATUSES", pre=True)
    def assemble_closed_statuses(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            return [i.strip().lower() for i in v.split(",") if i.strip()]
        return [str(i).lower() for i in v]

    # Webhooks
    WEBHOOK_DEFAULT_RETRIES: int = 3
    WEBHOOK_DEFAULT_TIMEOUT: int = 30  # seconds
    WEBHOOK_MAX_BACKOFF: float = 10.0  # seconds
    WEBHOOK_USER_AGENT: str = "HelpDesk-Webhook/1.0"

    # SLA display thresholds (percentage of target elapsed)
    SLA_AT_RISK_PERCENT: int = 80
    SLA_CRITICAL_PERCENT: int = 95

    class Config:
        # Read environment variables directly, no .env file
        env_file = None
        case_sensitive = True


settings = Settings()
