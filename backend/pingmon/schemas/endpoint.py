from pydantic import BaseModel, field_validator


class Endpoint(BaseModel):
    """One monitored target. Identity is the (ip, hostname) pair."""
    ip: str
    hostname: str
    group: str = "default"
    description: str = ""

    model_config = {"frozen": True}

    @field_validator("ip", "hostname")
    @classmethod
    def validate_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("group")
    @classmethod
    def default_group(cls, v: str) -> str:
        return v.strip() or "default"

    @property
    def label(self) -> str:
        return f"{self.hostname} ({self.ip})"
