"""Configuration for the remote session."""

from pydantic import BaseModel, SecretStr


class RemoteSessionConfig(BaseModel):
    """Configuration for a session exposed over HTTP by a REPL bridge."""

    base_url: str
    endpoint: str = "/session/scripts"
    token: SecretStr | None = None
    request_timeout: float = 30.0
