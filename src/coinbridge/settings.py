from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr


class ProxySettings(BaseModel):
    enabled: bool = False
    url: str | None = None
    username: str | None = None
    password: SecretStr | None = None

    model_config = {"extra": "forbid"}


class HttpSettings(BaseModel):
    timeout_ms: int = Field(default=10000, gt=0)
    user_agent: str = "coinbridge/1.0"

    model_config = {"extra": "forbid"}


class ExchangeCredentials(BaseModel):
    api_key: SecretStr | None = None
    api_secret: SecretStr | None = None

    model_config = {"extra": "forbid"}


class ExchangeSettings(BaseModel):
    enabled: bool = True
    sandbox: bool = False
    credentials: ExchangeCredentials | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    env: str = "dev"
    http: HttpSettings = Field(default_factory=HttpSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    exchanges: dict[str, ExchangeSettings] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        for exch in data.get("exchanges", {}).values():
            creds = exch.get("credentials")
            if isinstance(creds, dict):
                for key in ("api_key", "api_secret"):
                    if creds.get(key) is not None:
                        creds[key] = "***"
        proxy = data.get("proxy")
        if isinstance(proxy, dict) and proxy.get("password") is not None:
            proxy["password"] = "***"
        return data
