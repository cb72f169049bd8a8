"""Configuration loading and strongly-typed settings models.

Centralizes parsing of `config.json` (or an override via the ADL_AUTH_CONFIG env var) into dataclasses
so the auth helpers and REST clients get typed access to tenant, audience and account settings.
Optional sections (service principal, sample resources) are handled gracefully; missing required
top-level keys result in errors early.

Security recommendations:
 - Prefer environment variables for secrets (client secret, certificate password) in production.
 - Do not commit real secrets in source control. The sample shows structure only.
 - AZURE_CLIENT_SECRET and AZURE_CLIENT_CERTIFICATE_PASSWORD override the file values.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

CONFIG_FILENAME = os.environ.get("ADL_AUTH_CONFIG", "config.json")

# Well-known public client registration used by the Data Lake tooling for interactive sign-in.
PUBLIC_CLIENT_ID = "1950a258-227b-4e31-a9cf-717495945fc2"

AUTH_MODES = (
    "interactive",
    "interactive_cached",
    "service_principal_secret",
    "service_principal_certificate",
    "device_code",
)
PROMPT_BEHAVIORS = ("auto", "always", "never", "select_account")


@dataclass
class AudienceSettings:
    authority_host: str = "https://login.microsoftonline.com"
    arm: str = "https://management.core.windows.net/"
    adl: str = "https://datalake.azure.net/"
    aad: str = "https://graph.windows.net/"
    arm_endpoint: str = "https://management.azure.com"
    adla_dns_suffix: str = "azuredatalakeanalytics.net"
    adls_dns_suffix: str = "azuredatalakestore.net"
    graph_endpoint: str = "https://graph.windows.net"


@dataclass
class InteractiveSettings:
    client_id: str = PUBLIC_CLIENT_ID
    prompt_behavior: str = "auto"
    # Stored as plain text. Restrict file permissions or use an encrypted store outside of samples.
    token_cache_path: Optional[str] = None
    timeout: Optional[int] = None


@dataclass
class ServicePrincipalSettings:
    """Confidential client registration used by the non-interactive flows."""
    client_id: str
    client_secret: Optional[str] = None
    certificate_path: Optional[str] = None  # .pfx or .pem
    certificate_password: Optional[str] = None
    certificate_thumbprint: Optional[str] = None  # required for PEM certificates only


@dataclass
class SampleSettings:
    subscription_id: str
    resource_group: str
    adla_account: str
    adls_account: Optional[str] = None
    job_script: Optional[str] = None
    user_principal_name: Optional[str] = None


@dataclass
class AppConfig:
    tenant: str  # domain (contoso.onmicrosoft.com) or tenant GUID
    auth_mode: str
    sample: SampleSettings
    audiences: AudienceSettings = field(default_factory=AudienceSettings)
    interactive: InteractiveSettings = field(default_factory=InteractiveSettings)
    service_principal: Optional[ServicePrincipalSettings] = None

    @staticmethod
    def load(path: Optional[str] = None) -> "AppConfig":
        config_path = path or CONFIG_FILENAME
        if not os.path.exists(config_path):
            raise FileNotFoundError(
                f"Config file '{config_path}' not found. Copy 'config.example.json' to 'config.json' and fill values."
            )
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return AppConfig.from_dict(raw)

    @staticmethod
    def from_dict(raw: dict) -> "AppConfig":
        auth_mode = (raw.get("auth_mode") or "interactive").lower()
        if auth_mode not in AUTH_MODES:
            raise ValueError(f"Unknown auth_mode '{auth_mode}'. Expected one of: {', '.join(AUTH_MODES)}")

        audiences = AudienceSettings(**(raw.get("audiences") or {}))
        interactive = InteractiveSettings(**(raw.get("interactive") or {}))
        interactive.prompt_behavior = (interactive.prompt_behavior or "auto").lower()
        if interactive.prompt_behavior not in PROMPT_BEHAVIORS:
            raise ValueError(
                f"Unknown prompt_behavior '{interactive.prompt_behavior}'. "
                f"Expected one of: {', '.join(PROMPT_BEHAVIORS)}"
            )

        sp = None
        if raw.get("service_principal"):
            sp_dict = {**raw["service_principal"]}
            # Environment variable overrides to avoid storing secrets in file
            secret_env = os.environ.get("AZURE_CLIENT_SECRET")
            if secret_env:
                sp_dict["client_secret"] = secret_env
            password_env = os.environ.get("AZURE_CLIENT_CERTIFICATE_PASSWORD")
            if password_env:
                sp_dict["certificate_password"] = password_env
            sp = ServicePrincipalSettings(**sp_dict)
        if auth_mode.startswith("service_principal") and sp is None:
            raise ValueError(f"auth_mode '{auth_mode}' requires a service_principal section in config.json")

        return AppConfig(
            tenant=raw["tenant"],
            auth_mode=auth_mode,
            sample=SampleSettings(**raw["sample"]),
            audiences=audiences,
            interactive=interactive,
            service_principal=sp,
        )
