"""Tests for the client factory and the REST clients."""

import json
import uuid

import pytest
import requests

from src.analytics_client import CatalogClient, JobClient, JobInformation
from src.auth import Audience, BearerCredential, get_creds_service_principal_secret
from src.client_factory import ServiceKind, make_client
from src.filesystem_client import FileSystemClient
from src.graph_client import GraphRbacClient
from src.management_client import DataLakeAnalyticsAccountClient, DataLakeStoreAccountClient

ARM_ACCOUNTS = "https://management.azure.com/subscriptions/sub-123/resourceGroups/rg/providers"


def _cred(audience):
    return BearerCredential(audience, {"access_token": "t", "expires_in": 3600})


def _attach(client, transport):
    client.session.mount("https://", transport)
    return client


class TestMakeClient:
    def test_management_requires_subscription(self):
        with pytest.raises(ValueError):
            make_client(ServiceKind.ACCOUNT_MANAGEMENT, _cred(Audience.ARM))
        with pytest.raises(ValueError):
            make_client(ServiceKind.STORE_ACCOUNT_MANAGEMENT, _cred(Audience.ARM), subscription_id="")

    def test_management_keeps_subscription(self):
        client = make_client(ServiceKind.ACCOUNT_MANAGEMENT, _cred(Audience.ARM), subscription_id="sub-123")
        assert isinstance(client, DataLakeAnalyticsAccountClient)
        assert client.subscription_id == "sub-123"

    def test_directory_requires_tenant(self):
        with pytest.raises(ValueError):
            make_client(ServiceKind.DIRECTORY_MANAGEMENT, _cred(Audience.AAD))
        client = make_client(ServiceKind.DIRECTORY_MANAGEMENT, _cred(Audience.AAD), tenant_id="contoso.onmicrosoft.com")
        assert client.tenant_id == "contoso.onmicrosoft.com"

    @pytest.mark.parametrize(
        "kind, audience, cls",
        [
            ("store-account-management", Audience.ARM, DataLakeStoreAccountClient),
            ("catalog-management", Audience.ADL, CatalogClient),
            ("job-management", Audience.ADL, JobClient),
            ("filesystem-management", Audience.ADL, FileSystemClient),
        ],
    )
    def test_kinds(self, kind, audience, cls):
        client = make_client(kind, _cred(audience), subscription_id="sub-123")
        assert isinstance(client, cls)
        assert client.session.auth is client.credential

    def test_rejects_credential_for_other_audience(self):
        with pytest.raises(ValueError, match="datalake.azure.net"):
            make_client(ServiceKind.JOB_MANAGEMENT, _cred(Audience.ARM))
        with pytest.raises(ValueError):
            make_client(ServiceKind.ACCOUNT_MANAGEMENT, _cred(Audience.ADL), subscription_id="sub-123")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            make_client("queue-management", _cred(Audience.ADL))


class TestAccountManagement:
    def test_end_to_end_single_token_exchange(self, fake_msal, transport):
        confidential, _ = fake_msal
        cred = get_creds_service_principal_secret(
            "contoso.onmicrosoft.com", Audience.ARM, "app-id", "correct-secret"
        )
        client = _attach(make_client(ServiceKind.ACCOUNT_MANAGEMENT, cred, "sub-123"), transport)
        account_body = {
            "id": "/subscriptions/sub-123/.../acct",
            "name": "acct",
            "location": "eastus2",
            "properties": {"provisioningState": "Succeeded", "endpoint": "acct.azuredatalakeanalytics.net"},
        }
        url = f"{ARM_ACCOUNTS}/Microsoft.DataLakeAnalytics/accounts/acct"
        transport.routes[("GET", url)] = [(200, account_body), (200, account_body)]

        first = client.get_account("rg", "acct")
        second = client.get_account("rg", "acct")

        assert first.location == second.location == "eastus2"
        assert first.provisioning_state == "Succeeded"
        assert len(confidential.token_calls) == 1
        assert cred.exchange_count == 1
        sent = transport.requests[0]
        assert sent.headers["Authorization"] == "Bearer tok:https://management.core.windows.net//.default"
        assert "api-version=2016-11-01" in sent.url

    def test_not_found_propagates(self, transport):
        client = _attach(DataLakeAnalyticsAccountClient(_cred(Audience.ARM), "sub-123"), transport)
        with pytest.raises(requests.HTTPError) as exc_info:
            client.get_account("rg", "missing")
        assert exc_info.value.response.status_code == 404

    def test_list_follows_next_link(self, transport):
        client = _attach(DataLakeStoreAccountClient(_cred(Audience.ARM), "sub-123"), transport)
        url = "https://management.azure.com/subscriptions/sub-123/providers/Microsoft.DataLakeStore/accounts"
        next_link = f"{url}?api-version=2016-11-01&%24skiptoken=abc"
        transport.routes[("GET", url)] = [
            (200, {"value": [{"name": "a", "location": "eastus2"}], "nextLink": next_link}),
            (200, {"value": [{"name": "b", "location": "westus"}]}),
        ]
        accounts = client.list_accounts()
        assert [a.name for a in accounts] == ["a", "b"]
        assert transport.requests[1].url.count("api-version") == 1


class TestJobs:
    def test_create_job(self, transport):
        client = _attach(JobClient(_cred(Audience.ADL)), transport)
        job_id = uuid.UUID("6fa5a1c7-3c2d-4b0a-9e8e-8b9a2c1d0e11")
        url = f"https://acct.azuredatalakeanalytics.net/jobs/{job_id}"
        transport.routes[("PUT", url)] = (200, {"jobId": str(job_id), "state": "Accepted"})

        result = client.create_job("acct", job_id, JobInformation(name="testJob", script="FOO"))

        assert result["state"] == "Accepted"
        body = json.loads(transport.requests[0].body)
        assert body == {
            "name": "testJob",
            "type": "USql",
            "degreeOfParallelism": 1,
            "properties": {"type": "USql", "script": "FOO"},
        }

    def test_list_jobs_top(self, transport):
        client = _attach(JobClient(_cred(Audience.ADL)), transport)
        transport.routes[("GET", "https://acct.azuredatalakeanalytics.net/jobs")] = (200, {"value": [{"name": "j"}]})
        assert client.list_jobs("acct", top=5) == [{"name": "j"}]
        assert "%24top=5" in transport.requests[0].url


class TestCatalog:
    def test_list_tables(self, transport):
        client = _attach(CatalogClient(_cred(Audience.ADL)), transport)
        url = "https://acct.azuredatalakeanalytics.net/catalog/usql/databases/master/schemas/dbo/tables"
        transport.routes[("GET", url)] = (200, {"value": [{"tableName": "t1"}]})
        assert client.list_tables("acct", "master") == [{"tableName": "t1"}]


class TestFileSystem:
    def test_list_status_encodes_path(self, transport):
        client = _attach(FileSystemClient(_cred(Audience.ADL)), transport)
        url = "https://store.azuredatalakestore.net/webhdfs/v1/my%20data/in"
        transport.routes[("GET", url)] = (200, {"FileStatuses": {"FileStatus": [{"pathSuffix": "a.csv"}]}})
        assert client.list_status("store", "/my data/in/") == [{"pathSuffix": "a.csv"}]
        assert "op=LISTSTATUS" in transport.requests[0].url

    def test_open_returns_bytes(self, transport):
        client = _attach(FileSystemClient(_cred(Audience.ADL)), transport)
        transport.routes[("GET", "https://store.azuredatalakestore.net/webhdfs/v1/a.csv")] = (200, b"x,y\n1,2\n")
        assert client.open("store", "a.csv") == b"x,y\n1,2\n"


class TestGraph:
    def test_get_user(self, transport):
        client = _attach(GraphRbacClient(_cred(Audience.AAD), "contoso.onmicrosoft.com"), transport)
        url = "https://graph.windows.net/contoso.onmicrosoft.com/users/tim%40contoso.com"
        transport.routes[("GET", url)] = (
            200,
            {"objectId": "oid", "displayName": "Tim", "userPrincipalName": "tim@contoso.com"},
        )
        user = client.get_user("tim@contoso.com")
        assert user.display_name == "Tim"
        assert "api-version=1.6" in transport.requests[0].url
