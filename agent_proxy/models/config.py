"""Configuration data models"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """Listener configuration"""
    host: str = "0.0.0.0"
    port: int = Field(default=11435, ge=1, le=65535)
    max_body_bytes: int = Field(default=1024 * 1024, ge=1)
    log_level: str = "INFO"

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f'log_level must be one of {valid_levels}')
        return v_upper

    class Config:
        frozen = True


class GatewayConfig(BaseModel):
    """Downstream agent gateway configuration"""
    host: str = "127.0.0.1"
    port: int = Field(default=18800, ge=1, le=65535)
    token: Optional[str] = None
    timeout_seconds: int = Field(default=120, ge=1)
    send_path: str = "/api/sessions/send"
    error_excerpt_chars: int = Field(default=200, ge=0)

    @field_validator('send_path')
    @classmethod
    def validate_send_path(cls, v: str) -> str:
        """Validate the send endpoint path"""
        if not v.startswith('/'):
            raise ValueError('send_path must start with /')
        return v

    @field_validator('token')
    @classmethod
    def empty_token_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank token as no token"""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def address(self) -> str:
        """host:port of the gateway"""
        return f"{self.host}:{self.port}"

    @property
    def send_url(self) -> str:
        """Full URL of the conversational endpoint"""
        return f"http://{self.host}:{self.port}{self.send_path}"

    class Config:
        frozen = True


class ModelConfig(BaseModel):
    """Model identity exposed to clients"""
    name: str = "openclaw-agent"
    owned_by: str = "openclaw"

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate model name is not blank"""
        if not v.strip():
            raise ValueError('model name must not be empty')
        return v

    class Config:
        frozen = True


class StreamingConfig(BaseModel):
    """Simulated streaming configuration"""
    chunk_size: int = Field(default=4, ge=1)

    class Config:
        frozen = True


class AppConfig(BaseModel):
    """Complete application configuration"""
    server: ServerConfig = Field(default_factory=ServerConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)

    class Config:
        frozen = True
        protected_namespaces = ()
