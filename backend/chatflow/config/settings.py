# /chatflow/config/settings.py

import sys
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Deployment
    environment: str = Field(default="production", env="ENVIRONMENT")
    log_level: str = "INFO"

    # Flow engine
    flow_max_auto_advance_steps: int = 20

    # Turn handling
    flow_complete_transition_enabled: bool = True
    flow_init_trigger: str = "init_flow"

    # ---------------- Validators ---------------- #

    @field_validator("flow_max_auto_advance_steps")
    @classmethod
    def step_bound_must_be_positive(cls, v):
        if v < 1:
            raise ValueError("FLOW_MAX_AUTO_ADVANCE_STEPS must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL '{v}'")
        return level

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def validate_environment(settings_obj: Settings):
    try:
        if settings_obj.environment not in {"development", "test", "staging", "production"}:
            raise ValueError(f"ENVIRONMENT '{settings_obj.environment}' is not recognised")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
