"""Entry point for the Azure Data Lake authentication samples.

Execution flow:
 1. Load configuration (tenant, auth mode, audiences, sample account names).
 2. Acquire one bearer credential per audience (ARM, Data Lake, AAD Graph) using the configured flow:
    interactive, interactive with a token cache file, service principal secret or certificate.
 3. Build a client for every service kind from those credentials.
 4. Read the Data Lake Analytics account and print its location.
 5. Optionally look up a user in the directory and submit the configured U-SQL job.

Device code login is not supported and fails immediately when selected.
"""

import logging
import os
import sys
import uuid
from typing import Optional

from src.analytics_client import JobInformation
from src.auth import AdlAuth, AuthenticationError, DeviceCodeNotSupportedError
from src.client_factory import ServiceKind, make_client
from src.config import AppConfig


def main(config_path: Optional[str] = None) -> int:
    logging.basicConfig(
        level=os.environ.get("ADL_AUTH_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = AppConfig.load(config_path)
    auth = AdlAuth(cfg)
    audiences = cfg.audiences
    sample = cfg.sample

    try:
        arm_creds = auth.get_credentials(audiences.arm)
        adl_creds = auth.get_credentials(audiences.adl)
        aad_creds = auth.get_credentials(audiences.aad)
    except DeviceCodeNotSupportedError as e:
        print(f"Device code login unavailable: {e}")
        return 1
    except AuthenticationError as e:
        print(f"Authentication failed: {e}")
        return 1

    adla_account_client = make_client(
        ServiceKind.ACCOUNT_MANAGEMENT, arm_creds, subscription_id=sample.subscription_id, settings=audiences
    )
    adls_account_client = make_client(
        ServiceKind.STORE_ACCOUNT_MANAGEMENT, arm_creds, subscription_id=sample.subscription_id, settings=audiences
    )
    adla_catalog_client = make_client(ServiceKind.CATALOG_MANAGEMENT, adl_creds, settings=audiences)
    adla_job_client = make_client(ServiceKind.JOB_MANAGEMENT, adl_creds, settings=audiences)
    adls_filesystem_client = make_client(ServiceKind.FILESYSTEM_MANAGEMENT, adl_creds, settings=audiences)
    graph_client = make_client(ServiceKind.DIRECTORY_MANAGEMENT, aad_creds, tenant_id=cfg.tenant, settings=audiences)

    account = adla_account_client.get_account(sample.resource_group, sample.adla_account)
    print(f"My account's location is: {account.location}!")
    databases = adla_catalog_client.list_databases(sample.adla_account)
    print(f"U-SQL databases: {', '.join(d.get('databaseName', '?') for d in databases) or '(none)'}")

    if sample.adls_account:
        store = adls_account_client.get_account(sample.resource_group, sample.adls_account)
        entries = adls_filesystem_client.list_status(sample.adls_account, "/")
        print(f"Store '{store.name}' root holds {len(entries)} entries.")

    if sample.user_principal_name:
        user = graph_client.get_user(sample.user_principal_name)
        print(f"The display name for {sample.user_principal_name} is {user.display_name}!")

    if sample.job_script:
        job_id = uuid.uuid4()
        job = JobInformation(name="testJob", script=sample.job_script, degree_of_parallelism=1)
        adla_job_client.create_job(sample.adla_account, job_id, job)
        print(f"Submitted job {job_id} to {sample.adla_account}.")

    return 0


if __name__ == "__main__":
    path = None
    if len(sys.argv) > 1:
        path = sys.argv[1]
    raise SystemExit(main(path))
