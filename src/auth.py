"""Authentication helpers for Azure Data Lake.

This module wraps MSAL's PublicClientApplication and ConfidentialClientApplication to obtain bearer
credentials for the three audiences the Data Lake REST clients need:

 - ARM (management.core.windows.net) for account management.
 - Data Lake (datalake.azure.net) for catalog, job and file system operations.
 - AAD Graph (graph.windows.net) for directory lookups.

Supported flows:
 - Interactive browser sign-in, optionally backed by a token cache file so later runs are silent.
 - Service principal with a secret key.
 - Service principal with a certificate (MSAL builds the signed client assertion).
 - Device code login is NOT supported; asking for it fails immediately.

Every call is blocking. Pass an `executor` to run the MSAL exchange on a specific worker instead of
the calling thread. Failures raise immediately; there is no retry at this layer.
"""

import logging
import time
from concurrent.futures import Executor
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import msal
import requests

from .config import PUBLIC_CLIENT_ID, AppConfig
from .token_cache import TokenCacheFile

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"


class Audience:
    """Well-known token audiences (resource identifiers)."""
    ARM = "https://management.core.windows.net/"
    ADL = "https://datalake.azure.net/"
    AAD = "https://graph.windows.net/"


class PromptBehavior(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"
    SELECT_ACCOUNT = "select_account"

    @property
    def msal_prompt(self) -> Optional[str]:
        if self is PromptBehavior.ALWAYS:
            return msal.Prompt.LOGIN
        if self is PromptBehavior.SELECT_ACCOUNT:
            return msal.Prompt.SELECT_ACCOUNT
        return None


class AuthStrategy(str, Enum):
    INTERACTIVE = "interactive"
    INTERACTIVE_CACHED = "interactive_cached"
    SERVICE_PRINCIPAL_SECRET = "service_principal_secret"
    SERVICE_PRINCIPAL_CERTIFICATE = "service_principal_certificate"
    DEVICE_CODE = "device_code"


class AuthenticationError(RuntimeError):
    """Token acquisition failed (cancelled sign-in, bad secret, invalid certificate, ...)."""

    def __init__(self, message: str, error: Optional[str] = None, error_description: Optional[str] = None):
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class DeviceCodeNotSupportedError(NotImplementedError):
    pass


def audience_to_scopes(audience: str) -> List[str]:
    """Map a v1 resource identifier to the MSAL `.default` scope.

    The trailing slash is part of the resource identifier and must be kept, e.g.
    https://management.core.windows.net/ -> https://management.core.windows.net//.default
    """
    return [f"{audience}/.default"]


def _authority(authority_host: str, tenant: str) -> str:
    # Authority = login host + tenant (tenant GUID or domain)
    return f"{authority_host.rstrip('/')}/{tenant}"


def _check_result(result: Optional[Dict[str, Any]], audience: str) -> Dict[str, Any]:
    if not result or "access_token" not in result:
        result = result or {}
        raise AuthenticationError(
            f"Failed to acquire token for {audience}: {result.get('error')}: {result.get('error_description')}",
            error=result.get("error"),
            error_description=result.get("error_description"),
        )
    return result


def _run(executor: Optional[Executor], fn: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    if executor is None:
        return fn()
    return executor.submit(fn).result()


def _build_app(factory: Callable[..., Any], **kwargs: Any) -> Any:
    """Construct an MSAL application, surfacing authority and certificate problems as auth errors."""
    try:
        return factory(**kwargs)
    except (ValueError, OSError) as e:
        raise AuthenticationError(f"Unable to initialize MSAL client: {e}") from e


class BearerCredential(requests.auth.AuthBase):
    """An access token for one audience, usable as `requests` auth.

    The token is refreshed through MSAL (silently) when it is about to expire. The interactive UI is
    never shown from inside an HTTP request.
    """

    REFRESH_MARGIN_SECS = 300

    def __init__(self, audience: str, result: Dict[str, Any], refresh: Optional[Callable[[], Dict[str, Any]]] = None):
        self.audience = audience
        self._refresh = refresh
        self.exchange_count = 0
        self._apply(result)

    def _apply(self, result: Dict[str, Any]) -> None:
        self.access_token = result["access_token"]
        self.token_type = result.get("token_type") or "Bearer"
        self.expires_on = time.time() + int(result.get("expires_in", 3600))
        self.exchange_count += 1

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_on - self.REFRESH_MARGIN_SECS

    def refresh(self) -> None:
        if self._refresh is None:
            raise AuthenticationError(f"Credential for {self.audience} cannot be refreshed")
        self._apply(_check_result(self._refresh(), self.audience))
        logger.debug("Refreshed access token", extra={"audience": self.audience})

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        if self.expired and self._refresh is not None:
            self.refresh()
        r.headers["Authorization"] = f"{self.token_type} {self.access_token}"
        return r

    def __repr__(self) -> str:
        return f"BearerCredential(audience={self.audience!r}, expires_on={int(self.expires_on)})"


class CertificateCredential:
    """Certificate + private key used to sign the client assertion.

    PFX files are loaded by MSAL directly. PEM files must contain the private key (and certificate)
    and need the certificate thumbprint alongside.
    """

    def __init__(self, path: str, password: Optional[str] = None, thumbprint: Optional[str] = None):
        self.path = path
        self.password = password
        self.thumbprint = thumbprint

    def to_client_credential(self) -> Dict[str, Any]:
        if self.path.lower().endswith(".pem"):
            if not self.thumbprint:
                raise ValueError("A thumbprint is required when using a PEM certificate")
            with open(self.path, "r", encoding="utf-8") as f:
                credential: Dict[str, Any] = {"private_key": f.read(), "thumbprint": self.thumbprint}
        else:
            credential = {"private_key_pfx_path": self.path}
        if self.password:
            credential["passphrase"] = self.password
        return credential

    def __repr__(self) -> str:
        return f"CertificateCredential({self.path!r})"


def get_creds_interactive_popup(
    tenant: str,
    audience: str,
    token_cache: Optional[TokenCacheFile] = None,
    prompt_behavior: PromptBehavior = PromptBehavior.AUTO,
    client_id: str = PUBLIC_CLIENT_ID,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
    timeout: Optional[int] = None,
    executor: Optional[Executor] = None,
) -> BearerCredential:
    """Interactive sign-in through the system browser.

    Without `token_cache` every call signs in from scratch, so the UI is always shown. With a
    `TokenCacheFile` the cache is loaded first; a usable token (or refresh token) for this tenant,
    audience and client suppresses the UI. The cache file is written after a successful sign-in.

    Raises:
        AuthenticationError: if the user cancels or MSAL reports an error.
    """
    prompt_behavior = PromptBehavior(prompt_behavior)
    scopes = audience_to_scopes(audience)
    cache = token_cache.new_cache() if token_cache else msal.SerializableTokenCache()
    app = _build_app(
        msal.PublicClientApplication,
        client_id=client_id,
        authority=_authority(authority_host, tenant),
        token_cache=cache,
    )

    def _silent() -> Optional[Dict[str, Any]]:
        for account in app.get_accounts():
            result = app.acquire_token_silent(scopes, account=account)
            if result and "access_token" in result:
                return result
        return None

    def _acquire() -> Dict[str, Any]:
        result = None
        if prompt_behavior in (PromptBehavior.AUTO, PromptBehavior.NEVER):
            result = _silent()
            if result:
                logger.debug("Using cached token", extra={"audience": audience})
        if result is None:
            if prompt_behavior is PromptBehavior.NEVER:
                raise AuthenticationError(
                    f"No cached token for {audience} and prompt behavior is 'never'",
                    error="interaction_required",
                )
            logger.info("Opening browser for interactive sign-in", extra={"audience": audience})
            result = app.acquire_token_interactive(scopes, prompt=prompt_behavior.msal_prompt, timeout=timeout)
        return _check_result(result, audience)

    result = _run(executor, _acquire)
    if token_cache:
        token_cache.save(cache)

    def _refresh_silently() -> Optional[Dict[str, Any]]:
        if token_cache:
            # Other credentials may have written the file since this one was acquired.
            token_cache.load(cache)
        return _silent()

    def _refresh() -> Dict[str, Any]:
        refreshed = _run(executor, _refresh_silently)
        if not refreshed:
            return {
                "error": "interaction_required",
                "error_description": "Cached session expired; sign in interactively again.",
            }
        if token_cache:
            token_cache.save(cache)
        return refreshed

    logger.info("Acquired token interactively", extra={"audience": audience, "tenant": tenant})
    return BearerCredential(audience, result, refresh=_refresh)


def get_creds_device_code(*args: Any, **kwargs: Any) -> BearerCredential:
    """Device code login is not available in these samples."""
    raise DeviceCodeNotSupportedError(
        "Device code login is not supported; use interactive sign-in or a service principal."
    )


def _confidential_credential(
    tenant: str,
    audience: str,
    client_id: str,
    client_credential: Any,
    authority_host: str,
    executor: Optional[Executor],
) -> BearerCredential:
    scopes = audience_to_scopes(audience)
    app = _build_app(
        msal.ConfidentialClientApplication,
        client_id=client_id,
        client_credential=client_credential,
        authority=_authority(authority_host, tenant),
    )

    # acquire_token_for_client serves from MSAL's in-memory cache until the token nears expiry.
    def _acquire() -> Dict[str, Any]:
        return app.acquire_token_for_client(scopes=scopes)

    result = _check_result(_run(executor, _acquire), audience)
    logger.info(
        "Acquired service principal token",
        extra={"audience": audience, "tenant": tenant, "client_id": client_id},
    )
    return BearerCredential(audience, result, refresh=lambda: _run(executor, _acquire))


def get_creds_service_principal_secret(
    tenant: str,
    audience: str,
    client_id: str,
    secret_key: str,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
    executor: Optional[Executor] = None,
) -> BearerCredential:
    """Non-interactive: service principal / application using a secret key.

    Raises:
        AuthenticationError: wrong secret, unknown principal or missing permissions.
    """
    if not secret_key:
        raise ValueError("secret_key is required for the service principal secret flow")
    return _confidential_credential(tenant, audience, client_id, secret_key, authority_host, executor)


def get_creds_service_principal_certificate(
    tenant: str,
    audience: str,
    client_id: str,
    certificate: CertificateCredential,
    authority_host: str = DEFAULT_AUTHORITY_HOST,
    executor: Optional[Executor] = None,
) -> BearerCredential:
    """Non-interactive: service principal / application using a certificate.

    Raises:
        AuthenticationError: expired or invalid certificate, or signature mismatch.
    """
    try:
        client_credential = certificate.to_client_credential()
    except OSError as e:
        raise AuthenticationError(f"Unable to read certificate {certificate.path}: {e}") from e
    return _confidential_credential(tenant, audience, client_id, client_credential, authority_host, executor)


def acquire_credentials(strategy: AuthStrategy, tenant: str, audience: str, **kwargs: Any) -> BearerCredential:
    """Dispatch to the acquisition function for `strategy`.

    Keyword arguments are passed through unchanged (e.g. `client_id`, `secret_key`, `certificate`,
    `token_cache`, `executor`).
    """
    strategy = AuthStrategy(strategy)
    if strategy is AuthStrategy.DEVICE_CODE:
        return get_creds_device_code(tenant, audience, **kwargs)
    if strategy is AuthStrategy.INTERACTIVE:
        if kwargs.get("token_cache") is not None:
            raise ValueError("The 'interactive' strategy does not use a token cache; use 'interactive_cached'")
        return get_creds_interactive_popup(tenant, audience, **kwargs)
    if strategy is AuthStrategy.INTERACTIVE_CACHED:
        if kwargs.get("token_cache") is None:
            raise ValueError("The 'interactive_cached' strategy requires a token_cache")
        return get_creds_interactive_popup(tenant, audience, **kwargs)
    if strategy is AuthStrategy.SERVICE_PRINCIPAL_SECRET:
        return get_creds_service_principal_secret(tenant, audience, **kwargs)
    return get_creds_service_principal_certificate(tenant, audience, **kwargs)


class AdlAuth:
    """Acquire credentials for each audience using the strategy named in config.json."""

    def __init__(self, cfg: AppConfig, executor: Optional[Executor] = None):
        self.cfg = cfg
        self.strategy = AuthStrategy(cfg.auth_mode)
        self.executor = executor
        self.token_cache: Optional[TokenCacheFile] = None
        if self.strategy is AuthStrategy.INTERACTIVE_CACHED:
            if not cfg.interactive.token_cache_path:
                raise ValueError("interactive.token_cache_path is required for auth_mode 'interactive_cached'")
            self.token_cache = TokenCacheFile(cfg.interactive.token_cache_path)

    def _strategy_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"authority_host": self.cfg.audiences.authority_host}
        if self.strategy is AuthStrategy.DEVICE_CODE:
            return kwargs
        kwargs["executor"] = self.executor
        if self.strategy in (AuthStrategy.INTERACTIVE, AuthStrategy.INTERACTIVE_CACHED):
            kwargs.update(
                client_id=self.cfg.interactive.client_id,
                prompt_behavior=PromptBehavior(self.cfg.interactive.prompt_behavior),
                timeout=self.cfg.interactive.timeout,
                token_cache=self.token_cache,
            )
            return kwargs
        sp = self.cfg.service_principal
        kwargs["client_id"] = sp.client_id
        if self.strategy is AuthStrategy.SERVICE_PRINCIPAL_SECRET:
            kwargs["secret_key"] = sp.client_secret
        else:
            if not sp.certificate_path:
                raise ValueError("service_principal.certificate_path is required for certificate auth")
            kwargs["certificate"] = CertificateCredential(
                sp.certificate_path, sp.certificate_password, sp.certificate_thumbprint
            )
        return kwargs

    def get_credentials(self, audience: str) -> BearerCredential:
        """Return a bearer credential scoped to `audience`."""
        return acquire_credentials(self.strategy, self.cfg.tenant, audience, **self._strategy_kwargs())
