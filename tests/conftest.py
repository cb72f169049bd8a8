"""Shared fakes: MSAL applications and an in-process HTTP transport.

No test talks to the network. MSAL application classes are replaced with fakes that record their
calls, and REST clients get a `requests` adapter that serves canned JSON responses.
"""

import json
import threading

import pytest
import requests

GOOD_SECRET = "correct-secret"
GOOD_CERT_PASSWORD = "cert-password"


def _token(scopes):
    return {"access_token": f"tok:{scopes[0]}", "token_type": "Bearer", "expires_in": 3599}


class FakeConfidentialApp:
    """Stands in for msal.ConfidentialClientApplication."""

    instances = []
    token_calls = []

    def __init__(self, client_id, client_credential=None, authority=None, **kwargs):
        if isinstance(client_credential, dict) and client_credential.get("passphrase") != GOOD_CERT_PASSWORD:
            # MSAL loads the certificate eagerly and fails in the constructor.
            raise ValueError("Could not deserialize PKCS12 data")
        self.client_id = client_id
        self.client_credential = client_credential
        self.authority = authority
        FakeConfidentialApp.instances.append(self)

    def acquire_token_for_client(self, scopes, **kwargs):
        FakeConfidentialApp.token_calls.append((scopes, threading.current_thread().name))
        if isinstance(self.client_credential, dict) or self.client_credential == GOOD_SECRET:
            return _token(scopes)
        return {"error": "invalid_client", "error_description": "AADSTS7000215: Invalid client secret provided."}


class FakePublicApp:
    """Stands in for msal.PublicClientApplication; keeps its state inside the token cache."""

    instances = []
    interactive_calls = []
    silent_threads = []
    cancel = False

    def __init__(self, client_id, authority=None, token_cache=None, **kwargs):
        self.client_id = client_id
        self.authority = authority
        self.token_cache = token_cache
        FakePublicApp.instances.append(self)

    def _state(self):
        return json.loads(self.token_cache.serialize() or "{}")

    def get_accounts(self, **kwargs):
        return list(self._state().get("Account", {}).values())

    def acquire_token_silent(self, scopes, account, **kwargs):
        FakePublicApp.silent_threads.append(threading.current_thread().name)
        if scopes[0] in self._state().get("AccessToken", {}):
            return _token(scopes)
        return None

    def acquire_token_interactive(self, scopes, prompt=None, timeout=None, **kwargs):
        FakePublicApp.interactive_calls.append((scopes, prompt))
        if FakePublicApp.cancel:
            return {"error": "access_denied", "error_description": "AADSTS50126: User canceled authentication."}
        state = self._state()
        state.setdefault("Account", {})["home"] = {"username": "user@contoso.com"}
        state.setdefault("AccessToken", {})[scopes[0]] = "cached"
        self.token_cache.deserialize(json.dumps(state))
        return _token(scopes)


@pytest.fixture
def fake_msal(monkeypatch):
    FakeConfidentialApp.instances = []
    FakeConfidentialApp.token_calls = []
    FakePublicApp.instances = []
    FakePublicApp.interactive_calls = []
    FakePublicApp.silent_threads = []
    FakePublicApp.cancel = False
    monkeypatch.setattr("msal.ConfidentialClientApplication", FakeConfidentialApp)
    monkeypatch.setattr("msal.PublicClientApplication", FakePublicApp)
    return FakeConfidentialApp, FakePublicApp


class FakeTransport(requests.adapters.BaseAdapter):
    """Serve canned responses keyed by (method, url without query string).

    A route value is `(status, body)` or a list of those, consumed in order.
    """

    def __init__(self, routes=None):
        super().__init__()
        self.routes = routes or {}
        self.requests = []

    def send(self, request, **kwargs):
        self.requests.append(request)
        key = (request.method, request.url.split("?")[0])
        route = self.routes.get(key, (404, {"error": {"code": "ResourceNotFound"}}))
        if isinstance(route, list):
            route = route.pop(0)
        status, body = route
        resp = requests.Response()
        resp.status_code = status
        resp.reason = "OK" if status < 400 else "Not Found"
        resp._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
        resp.url = request.url
        resp.request = request
        return resp

    def close(self):
        pass


@pytest.fixture
def transport():
    return FakeTransport()
